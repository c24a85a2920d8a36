"""Shared fixtures for unit tests."""

import pytest

from osharness.models.context import ExecutionContext
from osharness.testing.fakes import FakePlatformDriver


@pytest.fixture
def context() -> ExecutionContext:
    """Create a context for a stable amd64 build on qemu."""
    return ExecutionContext(
        platform="qemu",
        distro="cl",
        channel="stable",
        version="3510.2.0",
        architecture="amd64",
    )


@pytest.fixture
def driver() -> FakePlatformDriver:
    """Create a fake platform driver."""
    return FakePlatformDriver()
