"""Test scheduler coordinating test execution on a single platform."""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, replace

from osharness.applicability import decide
from osharness.cluster import DEFAULT_AGENT_COMMAND, TestCluster
from osharness.models.context import ExecutionContext
from osharness.models.descriptor import TestDescriptor
from osharness.models.result import ResultNode, RunReport
from osharness.platforms.base import PlatformDriver

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestScheduler:
    """Runs tests on a single platform, a bounded number at a time."""

    __test__ = False

    driver: PlatformDriver
    context: ExecutionContext
    parallelism: int = 1
    agent_command: str = DEFAULT_AGENT_COMMAND

    async def run_tests(
        self,
        tests: Sequence[TestDescriptor],
        stop: asyncio.Event | None = None,
    ) -> RunReport:
        """Run all given tests and aggregate their results.

        Args:
            tests: Test descriptors to consider, typically the whole registry
            stop: When set, tests that have not started yet are not started;
                running tests still finish and tear down

        Returns:
            Report with one result per test, sorted by name

        """
        if not tests:
            log.info("No tests selected")
            return RunReport()

        stop = stop or asyncio.Event()
        semaphore = asyncio.Semaphore(self.parallelism)

        log.info(
            "Running %d test(s) on %s with parallelism %d...",
            len(tests),
            self.context.platform,
            self.parallelism,
        )
        tasks = [self._run_in_slot(test, semaphore, stop) for test in tests]

        results = await asyncio.gather(*tasks, return_exceptions=True)
        log.info("Test execution completed")

        return RunReport(results=self._process_results(tests, results))

    def _process_results(
        self,
        tests: Sequence[TestDescriptor],
        results: Sequence[ResultNode | BaseException],
    ) -> Sequence[ResultNode]:
        """Process results from test execution, handling exceptions."""
        final_results: list[ResultNode] = []

        for test, result in zip(tests, results, strict=True):
            if isinstance(result, ResultNode):
                log.info(
                    "Test completed: name=%s outcome=%s duration=%.1fs",
                    result.name,
                    result.outcome,
                    result.duration,
                )
                final_results.append(result)
            elif isinstance(result, Exception):
                log.error("Test execution failed: %s", result, exc_info=result)
                final_results.append(
                    ResultNode(name=test.name, outcome="fail", message=str(result))
                )
            else:
                raise result

        return final_results

    async def _run_in_slot(
        self,
        test: TestDescriptor,
        semaphore: asyncio.Semaphore,
        stop: asyncio.Event,
    ) -> ResultNode:
        async with semaphore:
            if stop.is_set():
                return ResultNode(
                    name=test.name,
                    outcome="skip",
                    message="run cancelled before the test started",
                )
            return await self.run_test(test)

    async def run_test(self, test: TestDescriptor) -> ResultNode:
        """Filter, provision, execute and tear down a single test."""
        decision = decide(test, self.context)
        if decision.action == "exclude":
            log.info("Excluding %s: %s", test.name, decision.reason)
            return ResultNode(name=test.name, outcome="exclude", message=decision.reason)
        if decision.action == "skip":
            log.info("Skipping %s: %s", test.name, decision.reason)
            return ResultNode(name=test.name, outcome="skip", message=decision.reason)

        cluster = TestCluster(
            test=test,
            context=self.context,
            driver=self.driver,
            agent_command=self.agent_command,
        )
        start = time.monotonic()
        node: ResultNode | None = None

        try:
            if test.cluster_size > 0:
                node = await self._provision(test, cluster)
            if node is None:
                node, _ = await cluster.execute(test.run, timeout=test.timeout)
        finally:
            warnings = await asyncio.shield(self._teardown(test, cluster))

        return replace(
            node,
            duration=time.monotonic() - start,
            warnings=(*node.warnings, *warnings),
        )

    async def _provision(
        self, test: TestDescriptor, cluster: TestCluster
    ) -> ResultNode | None:
        """Provision the declared machines, returning a failed node on error."""
        try:
            await cluster.provision(test.cluster_size, test.guest_config)
        except Exception as exc:
            log.error("Provisioning for %s failed: %s", test.name, exc, exc_info=exc)
            return ResultNode(
                name=test.name,
                outcome="fail",
                message=f"provisioning failed: {exc}",
            )
        return None

    async def _teardown(
        self, test: TestDescriptor, cluster: TestCluster
    ) -> Sequence[str]:
        """Release the cluster, returning warnings instead of raising."""
        if test.cluster_size == 0:
            # Self-managed clusters release their own machines.
            if cluster.leaked:
                message = f"test left {len(cluster.machines)} machine(s) unreleased"
                log.warning("%s: %s", test.name, message)
                return [message]
            return []

        try:
            await cluster.release()
        except Exception as exc:
            log.warning("Teardown of %s failed: %s", cluster.id, exc, exc_info=exc)
            return [f"teardown failed: {exc}"]
        return []
