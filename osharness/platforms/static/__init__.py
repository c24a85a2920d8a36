"""Static platform module."""

from osharness.platforms.static.config import StaticHost, StaticPlatformConfig
from osharness.platforms.static.driver import StaticPlatformDriver
from osharness.platforms.static.manifest import static_manifest

__all__ = [
    "StaticHost",
    "StaticPlatformConfig",
    "StaticPlatformDriver",
    "static_manifest",
]
