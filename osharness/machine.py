"""Machine handles and command execution over SSH."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from osharness.errors import CommandError, SSHTransportError
from osharness.retry import retry

log = logging.getLogger(__name__)

# ssh reserves this exit status for its own errors.
SSH_ERROR_EXIT_STATUS = 255

DEFAULT_SSH_OPTIONS: Sequence[str] = (
    "-o",
    "BatchMode=yes",
    "-o",
    "StrictHostKeyChecking=no",
    "-o",
    "UserKnownHostsFile=/dev/null",
    "-o",
    "ConnectTimeout=10",
    "-o",
    "ServerAliveInterval=5",
    "-o",
    "LogLevel=ERROR",
)

BOOT_ID_COMMAND = "cat /proc/sys/kernel/random/boot_id"


@dataclass(frozen=True, kw_only=True)
class Machine(ABC):
    """A provisioned machine, exclusively owned by one cluster."""

    id: str
    ip: str
    private_ip: str

    @abstractmethod
    async def exec(self, command: str) -> str:
        """Run a shell command on the machine and return its trimmed stdout.

        Raises:
            CommandError: If the command exits with a non-zero status
            SSHTransportError: If the machine cannot be reached

        """

    async def reboot(self, attempts: int = 30, interval: float = 10) -> None:
        """Reboot the machine and wait until it is reachable again.

        A new boot is detected by a change of the kernel boot ID.
        """
        boot_id = await self.exec(BOOT_ID_COMMAND)
        log.info("Rebooting machine %s", self.id)

        try:
            await self.exec("sudo systemctl reboot")
        except SSHTransportError as exc:
            log.debug("Connection to %s dropped during reboot: %s", self.id, exc)

        async def rebooted() -> None:
            if await self.exec(BOOT_ID_COMMAND) == boot_id:
                raise RuntimeError(f"machine {self.id} has not rebooted yet")

        await retry(attempts, interval, rebooted)
        log.info("Machine %s is back up", self.id)


@dataclass(frozen=True, kw_only=True)
class SSHMachine(Machine):
    """Machine reached through the system ``ssh`` client."""

    user: str = "core"
    port: int = 22
    identity_file: Path | None = None
    ssh_options: Sequence[str] = DEFAULT_SSH_OPTIONS

    def ssh_command(self, command: str) -> Sequence[str]:
        """Build the ``ssh`` argument vector running ``command`` remotely."""
        argv = ["ssh", "-p", str(self.port), *self.ssh_options]
        if self.identity_file is not None:
            argv.extend(["-i", str(self.identity_file)])
        argv.extend([f"{self.user}@{self.ip}", command])
        return argv

    async def exec(self, command: str) -> str:
        """Run ``command`` over SSH and return its trimmed stdout."""
        log.debug("%s: running %s", self.id, command)

        process = await asyncio.create_subprocess_exec(
            *self.ssh_command(command),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except BaseException:
            # Cancelled (e.g. test timeout): do not leave ssh running.
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        out = stdout.decode(errors="replace")
        err = stderr.decode(errors="replace")

        if process.returncode == SSH_ERROR_EXIT_STATUS:
            raise SSHTransportError(command, SSH_ERROR_EXIT_STATUS, out, err)
        if process.returncode != 0:
            raise CommandError(command, process.returncode, out, err)

        return out.strip()
