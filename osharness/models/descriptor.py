"""Models for test descriptors registered by test catalogs."""

from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum

from pydantic import Field

from osharness.models.base import Model
from osharness.models.context import SkipContext, Version

# Test bodies receive an osharness.cluster.TestCluster.
TestBody = Callable[..., Awaitable[None]]
NativeFunc = Callable[..., None]
SkipFunc = Callable[[SkipContext], bool]


class Flag(StrEnum):
    """Behavioral toggles consumed by platform drivers when provisioning."""

    NO_SSH_KEY_IN_USER_DATA = "no-ssh-key-in-user-data"
    NO_SSH_KEY_IN_METADATA = "no-ssh-key-in-metadata"
    NO_EMERGENCY_SHELL_CHECK = "no-emergency-shell-check"
    NO_ENABLE_SELINUX = "no-enable-selinux"
    NO_KERNEL_PANIC_CHECK = "no-kernel-panic-check"


class TestDescriptor(Model):
    """A registered test and the conditions under which it applies."""

    __test__ = False

    name: str = Field(..., min_length=1, description="Unique dotted test name")
    run: TestBody = Field(..., description="Test body, called with the cluster")
    cluster_size: int = Field(
        default=0,
        ge=0,
        description="Machines to provision before running (0 = test manages its own)",
    )
    native_funcs: Mapping[str, NativeFunc] = Field(
        default_factory=dict,
        description="Guest-side functions invocable by name through the agent",
    )
    platforms: frozenset[str] = Field(
        default_factory=frozenset,
        description="Allowed platforms (empty means all)",
    )
    exclude_platforms: frozenset[str] = Field(
        default_factory=frozenset, description="Platforms the test never runs on"
    )
    distros: frozenset[str] = Field(
        default_factory=frozenset, description="Applicable distros (empty means all)"
    )
    architectures: frozenset[str] = Field(
        default_factory=frozenset,
        description="Applicable architectures (empty means all)",
    )
    min_version: Version | None = Field(
        default=None, description="Minimum OS version required"
    )
    skip_func: SkipFunc | None = Field(
        default=None, description="Returns True to skip the test for a context"
    )
    flags: frozenset[Flag] = Field(
        default_factory=frozenset, description="Provisioning toggles"
    )
    guest_config: str | None = Field(
        default=None,
        description="Opaque guest configuration used for pre-provisioned machines",
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Seconds before the test body is cancelled"
    )
