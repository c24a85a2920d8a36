"""Static platform manifest."""

from osharness.platforms.manifest import PlatformManifest
from osharness.platforms.static.config import StaticPlatformConfig
from osharness.platforms.static.driver import StaticPlatformDriver

static_manifest = PlatformManifest(
    config_cls=StaticPlatformConfig,
    driver_factory=StaticPlatformDriver.from_config,
)
