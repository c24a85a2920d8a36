"""Platform manifests and their lookup through entry points."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any

from pydantic import BaseModel

from osharness.errors import HarnessError
from osharness.platforms.base import PlatformDriver

ENTRY_POINT_GROUP = "osharness.platforms"


class PlatformNotFoundError(HarnessError):
    """Raised when no usable platform is installed under a key."""


@dataclass(frozen=True, kw_only=True)
class PlatformManifest[ConfigT: BaseModel]:
    """Manifest describing a platform plugin.

    Platforms register an instance under the ``osharness.platforms`` entry
    point group. The driver factory receives the parsed configuration and
    yields a driver for the duration of the run.
    """

    config_cls: type[ConfigT]
    driver_factory: Callable[[ConfigT], AbstractAsyncContextManager[PlatformDriver]]


def load_platform_manifest(key: str) -> PlatformManifest[Any]:
    """Return the manifest installed under ``key`` (e.g. "static").

    Raises:
        PlatformNotFoundError: If no entry point has that name, or it does not
            resolve to a manifest

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)
    matches = [entry for entry in entries if entry.name == key]
    if not matches:
        available = sorted(entry.name for entry in entries)
        raise PlatformNotFoundError(
            f"Platform '{key}' not found. Available platforms: {available}"
        )

    manifest = matches[0].load()
    if not isinstance(manifest, PlatformManifest):
        raise PlatformNotFoundError(
            f"Platform '{key}' resolves to {type(manifest).__name__}, "
            "not a PlatformManifest"
        )
    return manifest
