"""Abstract base class for platform drivers."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from osharness.machine import Machine
from osharness.models.context import ExecutionContext
from osharness.models.descriptor import Flag

if TYPE_CHECKING:
    from osharness.cluster import TestCluster


@dataclass(frozen=True, kw_only=True)
class PlatformDriver(ABC):
    """Abstract base for provisioning backends (clouds, local hypervisors).

    Drivers remember which machines they created for which cluster so that
    ``destroy`` can release everything, including machines left over from a
    provisioning call that failed halfway.
    """

    @abstractmethod
    async def provision(
        self,
        context: ExecutionContext,
        guest_config: str | None,
        count: int,
        *,
        cluster_id: str,
        flags: frozenset[Flag] = frozenset(),
    ) -> Sequence[Machine]:
        """Create ``count`` machines booted with ``guest_config``.

        Args:
            context: Facts about the run (platform, distro, version, ...)
            guest_config: Opaque guest configuration, passed through untouched
            count: Number of machines to create
            cluster_id: Identifier of the cluster the machines belong to
            flags: Provisioning toggles declared by the test

        Returns:
            The created machines

        Raises:
            ProvisioningError: If the machines cannot be created

        """

    @abstractmethod
    async def destroy(self, cluster: "TestCluster") -> None:
        """Release every machine created for ``cluster``.

        Must be safe to call after a failed or partial ``provision``.
        """
