"""Cluster handle passed to test bodies.

A :class:`TestCluster` gives a test body access to its machines, runs shell
commands on them, starts guest agent functions and runs nested sub-tests.
Sub-tests receive their own handle over the same machines; each handle
records the outcome of exactly one node of the result tree.
"""

import asyncio
import copy
import logging
import shlex
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import NoReturn, Self

from osharness.errors import CommandError, TestAborted, TestFailure, TestSkipped
from osharness.machine import Machine
from osharness.models.context import ExecutionContext
from osharness.models.descriptor import TestDescriptor
from osharness.models.result import Outcome, ResultNode
from osharness.platforms.base import PlatformDriver

log = logging.getLogger(__name__)

DEFAULT_AGENT_COMMAND = "osharness-agent"

type SubTestBody = Callable[["TestCluster"], Awaitable[None]]


@dataclass(kw_only=True)
class _Resources:
    """Machines shared by a test and all of its sub-tests."""

    id: str
    machines: list[Machine] = field(default_factory=list)
    acquired: bool = False
    released: bool = False


@dataclass(kw_only=True)
class _Frame:
    """Result node under construction."""

    name: str
    path: str
    started: float = field(default_factory=time.monotonic)
    children: list[ResultNode] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class TestCluster:
    """Handle over the machines of one test execution."""

    __test__ = False

    def __init__(
        self,
        *,
        test: TestDescriptor,
        context: ExecutionContext,
        driver: PlatformDriver,
        agent_command: str = DEFAULT_AGENT_COMMAND,
    ) -> None:
        self.test = test
        self.context = context
        self.driver = driver
        self.agent_command = agent_command
        self._resources = _Resources(id=f"{test.name}-{uuid.uuid4().hex[:8]}")
        self._frame = _Frame(name=test.name, path=test.name)

    @property
    def id(self) -> str:
        """Identifier shared by the test and its sub-tests."""
        return self._resources.id

    @property
    def name(self) -> str:
        """Path of the current node, e.g. ``docker.torcx/torcx-pkg-1.12``."""
        return self._frame.path

    @property
    def platform(self) -> str:
        """Name of the platform the run targets."""
        return self.context.platform

    @property
    def machines(self) -> Sequence[Machine]:
        """Machines of the cluster, in creation order."""
        return tuple(self._resources.machines)

    @property
    def leaked(self) -> bool:
        """Whether machines were acquired but never released."""
        return self._resources.acquired and not self._resources.released

    async def provision(
        self, count: int, guest_config: str | None = None
    ) -> Sequence[Machine]:
        """Create ``count`` machines and add them to the cluster.

        Raises:
            ProvisioningError: If the platform driver cannot create them

        """
        self._resources.acquired = True
        log.info("%s: provisioning %d machine(s)", self.id, count)
        machines = await self.driver.provision(
            self.context,
            guest_config,
            count,
            cluster_id=self.id,
            flags=self.test.flags,
        )
        self._resources.machines.extend(machines)
        return machines

    async def new_machine(self, guest_config: str | None = None) -> Machine:
        """Create one more machine booted with ``guest_config``."""
        machines = await self.provision(1, guest_config)
        return machines[0]

    async def release(self) -> None:
        """Destroy every machine of the cluster. Only the first call has effect."""
        if not self._resources.acquired or self._resources.released:
            return
        self._resources.released = True
        log.info("%s: releasing %d machine(s)", self.id, len(self.machines))
        await self.driver.destroy(self)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await asyncio.shield(self.release())

    async def exec(self, machine: Machine, command: str) -> str:
        """Run ``command`` on ``machine`` and return its trimmed stdout.

        Raises:
            CommandError: If the command fails or the machine is unreachable

        """
        return await machine.exec(command)

    async def must_exec(self, machine: Machine, command: str) -> str:
        """Like :meth:`exec`, but any failure fails the current node."""
        try:
            return await machine.exec(command)
        except CommandError as exc:
            raise TestFailure(f"{machine.id}: {exc}") from exc

    async def start_native(
        self,
        machine: Machine,
        func: str,
        *args: str,
        detach: bool = True,
    ) -> str:
        """Invoke a native function of this test through the guest agent.

        Detached invocations are started as a transient systemd unit so the
        function keeps running (e.g. a server) while the test goes on; the
        command returns as soon as the unit is started. Attached invocations
        return once the function has finished.

        Raises:
            ValueError: If the test does not declare ``func``
            CommandError: If the agent exits with a non-zero status

        """
        if func not in self.test.native_funcs:
            raise ValueError(
                f"Test '{self.test.name}' has no native function '{func}'"
            )

        invocation = shlex.join(
            [*shlex.split(self.agent_command), "run", self.test.name, func, *args]
        )
        if detach:
            invocation = f"sudo systemd-run --quiet {invocation}"

        log.info(
            "%s: starting native function %s on %s", self.name, func, machine.id
        )
        return await self.exec(machine, invocation)

    def fail(self, message: str) -> NoReturn:
        """Fail the current node and stop executing it."""
        raise TestFailure(message)

    def error(self, message: str) -> None:
        """Fail the current node but keep executing it."""
        log.error("%s: %s", self.name, message)
        self._frame.errors.append(message)

    def skip(self, message: str) -> NoReturn:
        """Skip the rest of the current node."""
        raise TestSkipped(message)

    def abort(self, message: str) -> NoReturn:
        """Fail the whole test, skipping any remaining sub-tests."""
        raise TestAborted(message)

    def warn(self, message: str) -> None:
        """Attach a warning to the current node without changing its outcome."""
        log.warning("%s: %s", self.name, message)
        self._frame.warnings.append(message)

    async def run(self, name: str, body: SubTestBody) -> ResultNode:
        """Run a nested sub-test and return its result.

        A failing sub-test fails this node but does not stop it; sibling
        sub-tests still run. An abort inside the sub-test propagates.
        """
        child = self._child(name)
        try:
            node, aborted = await child.execute(body)
        except asyncio.CancelledError:
            # Keep the interrupted sub-test in the tree, e.g. on a test timeout.
            self._frame.children.append(child._interrupted())
            raise
        self._frame.children.append(node)
        if aborted is not None:
            raise aborted
        return node

    async def execute(
        self, body: SubTestBody, timeout: float | None = None
    ) -> tuple[ResultNode, TestAborted | None]:
        """Run ``body`` against this handle and build the node's result.

        Returns the finished node and, if the body aborted, the abort to
        propagate to ancestors.
        """
        self._frame.started = time.monotonic()
        outcome: Outcome = "pass"
        message: str | None = None
        aborted: TestAborted | None = None

        scope = asyncio.timeout(timeout)
        try:
            async with scope:
                await body(self)
        except TestSkipped as exc:
            outcome, message = "skip", str(exc)
        except TestAborted as exc:
            outcome, message, aborted = "fail", str(exc), exc
        except TestFailure as exc:
            outcome, message = "fail", str(exc)
        except TimeoutError as exc:
            if scope.expired():
                outcome, message = "fail", f"timed out after {timeout}s"
            else:
                outcome, message = "fail", f"TimeoutError: {exc}"
        except Exception as exc:
            log.exception("%s: unexpected error", self.name)
            outcome, message = "fail", f"{type(exc).__name__}: {exc}"

        if outcome != "fail":
            failed_children = [c.name for c in self._frame.children if c.failed]
            if self._frame.errors:
                outcome, message = "fail", "; ".join(self._frame.errors)
            elif failed_children:
                outcome = "fail"
                message = f"sub-test(s) failed: {', '.join(failed_children)}"

        node = ResultNode(
            name=self._frame.name,
            outcome=outcome,
            duration=time.monotonic() - self._frame.started,
            message=message,
            warnings=tuple(self._frame.warnings),
            children=tuple(self._frame.children),
        )
        log.info("%s: %s", self.name, outcome)
        return node, aborted

    def _interrupted(self) -> ResultNode:
        return ResultNode(
            name=self._frame.name,
            outcome="fail",
            duration=time.monotonic() - self._frame.started,
            message="cancelled while running",
            warnings=tuple(self._frame.warnings),
            children=tuple(self._frame.children),
        )

    def _child(self, name: str) -> "TestCluster":
        child = copy.copy(self)
        child._frame = _Frame(name=name, path=f"{self._frame.path}/{name}")
        return child
