"""Models describing the build and platform a run targets."""

from dataclasses import dataclass
from typing import Annotated

import semver
from pydantic import BeforeValidator, Field, PlainSerializer

from osharness.models.base import Model


def parse_version(value: object) -> semver.Version:
    """Parse an OS version, accepting short forms such as ``3034`` or ``3034.1``."""
    if isinstance(value, semver.Version):
        return value
    if isinstance(value, int):
        return semver.Version(major=value)
    if isinstance(value, str):
        return semver.Version.parse(value.strip(), optional_minor_and_patch=True)
    raise ValueError(f"Cannot parse version from {value!r}")


Version = Annotated[
    semver.Version,
    BeforeValidator(parse_version),
    PlainSerializer(str, return_type=str),
]


@dataclass(frozen=True, kw_only=True)
class SkipContext:
    """Input record for test skip predicates."""

    version: semver.Version
    channel: str
    arch: str
    platform: str


class ExecutionContext(Model):
    """Resolved facts about the current run."""

    platform: str = Field(..., description="Platform name (e.g. 'qemu', 'aws')")
    distro: str = Field(..., description="Distribution tag (e.g. 'cl')")
    channel: str = Field(..., description="Release channel (e.g. 'stable')")
    version: Version = Field(..., description="OS version under test")
    architecture: str = Field(..., description="CPU architecture (e.g. 'amd64')")
    enabled_flags: frozenset[str] = Field(
        default_factory=frozenset,
        description="Run-level feature flags handed to the platform driver",
    )

    @property
    def skip_context(self) -> SkipContext:
        """Return the record passed to skip predicates."""
        return SkipContext(
            version=self.version,
            channel=self.channel,
            arch=self.architecture,
            platform=self.platform,
        )
