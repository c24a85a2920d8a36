"""Configuration for the static platform."""

from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field

from osharness.machine import DEFAULT_SSH_OPTIONS


class StaticHost(BaseModel):
    """A pre-existing machine reachable over SSH."""

    address: str
    private_address: str | None = None
    user: str = "core"
    port: int = 22


class StaticPlatformConfig(BaseModel):
    """Configuration for the static platform."""

    hosts: Sequence[StaticHost] = Field(..., min_length=1)
    identity_file: Path | None = None
    ssh_options: Sequence[str] = Field(default_factory=lambda: list(DEFAULT_SSH_OPTIONS))
