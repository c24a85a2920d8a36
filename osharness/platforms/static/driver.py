"""Static platform: leases pre-existing SSH hosts instead of creating machines."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osharness.errors import ProvisioningError
from osharness.machine import Machine, SSHMachine
from osharness.models.context import ExecutionContext
from osharness.models.descriptor import Flag
from osharness.platforms.base import PlatformDriver
from osharness.platforms.static.config import StaticHost, StaticPlatformConfig

if TYPE_CHECKING:
    from osharness.cluster import TestCluster

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class StaticPlatformDriver(PlatformDriver):
    """Platform driver handing out hosts from a fixed pool.

    Hosts go back to the pool when their cluster is destroyed, and requests
    the pool cannot serve yet wait for them. Guest configuration cannot be
    applied to existing hosts and is ignored.
    """

    config: StaticPlatformConfig
    free_hosts: list[StaticHost] = field(default_factory=list)
    leases: dict[str, list[StaticHost]] = field(default_factory=dict)
    available: asyncio.Condition = field(
        default_factory=asyncio.Condition, repr=False
    )

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: StaticPlatformConfig
    ) -> AsyncGenerator["StaticPlatformDriver", None]:
        """Create driver with the configured host pool."""
        driver = cls(config=config, free_hosts=list(config.hosts))
        try:
            yield driver
        finally:
            if driver.leases:
                log.warning(
                    "Hosts still leased at shutdown: %s",
                    ", ".join(sorted(driver.leases)),
                )

    async def provision(
        self,
        context: ExecutionContext,
        guest_config: str | None,
        count: int,
        *,
        cluster_id: str,
        flags: frozenset[Flag] = frozenset(),
    ) -> Sequence[Machine]:
        """Lease ``count`` hosts from the pool, waiting until they are free.

        Raises:
            ProvisioningError: If the pool is too small to ever serve the request

        """
        if guest_config is not None:
            log.debug("Static platform ignores guest configuration for %s", cluster_id)

        async with self.available:
            held = len(self.leases.get(cluster_id, ()))
            if held + count > len(self.config.hosts):
                raise ProvisioningError(
                    f"Requested {count} host(s) with {held} already leased but the "
                    f"static pool only has {len(self.config.hosts)}"
                )
            if count > len(self.free_hosts):
                log.info("Waiting for %d free host(s) for %s", count, cluster_id)
            await self.available.wait_for(lambda: count <= len(self.free_hosts))

            hosts = self.free_hosts[:count]
            del self.free_hosts[:count]
            self.leases.setdefault(cluster_id, []).extend(hosts)

        log.info(
            "Leased %d host(s) to %s: %s",
            count,
            cluster_id,
            ", ".join(host.address for host in hosts),
        )
        return [self._machine(host) for host in hosts]

    async def destroy(self, cluster: "TestCluster") -> None:
        """Return the cluster's hosts to the pool."""
        async with self.available:
            hosts = self.leases.pop(cluster.id, [])
            self.free_hosts.extend(hosts)
            self.available.notify_all()

        if hosts:
            log.info("Released %d host(s) from %s", len(hosts), cluster.id)

    def _machine(self, host: StaticHost) -> SSHMachine:
        return SSHMachine(
            id=host.address,
            ip=host.address,
            private_ip=host.private_address or host.address,
            user=host.user,
            port=host.port,
            identity_file=self.config.identity_file,
            ssh_options=tuple(self.config.ssh_options),
        )
