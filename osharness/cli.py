"""CLI entry point for the OS integration test harness."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from pydantic import ValidationError

from osharness.cluster import DEFAULT_AGENT_COMMAND
from osharness.models.context import ExecutionContext
from osharness.models.result import RunReport
from osharness.platforms.manifest import load_platform_manifest
from osharness.registry import TestRegistry, load_catalogs
from osharness.report import format_output, log_results_summary
from osharness.scheduler import TestScheduler

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def stop_on_signals(stop: asyncio.Event) -> Iterator[None]:
    """Set ``stop`` on SIGINT/SIGTERM while the block runs."""
    log = logging.getLogger("osharness")
    loop = asyncio.get_running_loop()

    def request_stop() -> None:
        if not stop.is_set():
            log.warning("Interrupted: not starting new tests, waiting for teardown")
        stop.set()

    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, request_stop)
    try:
        yield
    finally:
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)


async def run(
    platform_key: str,
    platform_config_json: str,
    context: ExecutionContext,
    parallelism: int = 1,
    patterns: Sequence[str] = (),
    agent_command: str = DEFAULT_AGENT_COMMAND,
) -> int:
    """Run the selected tests and return the exit code."""
    log = logging.getLogger("osharness")

    log.info("Loading platform: %s", platform_key)
    manifest = load_platform_manifest(platform_key)

    config_dict = json.loads(platform_config_json)
    config = manifest.config_cls(**config_dict)

    log.info("Loading test catalogs...")
    registry = load_catalogs(TestRegistry())
    tests = registry.select(patterns)

    if not tests:
        log.info("No tests selected (%d registered)", len(registry))
        print(json.dumps(format_output(RunReport())))
        return 0

    log.info(
        "Target: platform=%s distro=%s channel=%s version=%s arch=%s",
        context.platform,
        context.distro,
        context.channel,
        context.version,
        context.architecture,
    )

    stop = asyncio.Event()
    async with manifest.driver_factory(config) as driver:
        scheduler = TestScheduler(
            driver=driver,
            context=context,
            parallelism=parallelism,
            agent_command=agent_command,
        )
        with stop_on_signals(stop):
            report = await scheduler.run_tests(tests, stop)

    log_results_summary(log, report)

    output = format_output(report)
    print(json.dumps(output, indent=2))

    return 1 if report.has_failures else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run OS integration tests on a provisioning platform"
    )
    parser.add_argument(
        "patterns",
        nargs="*",
        help="Glob patterns selecting tests by name (default: all tests)",
    )
    parser.add_argument(
        "--platform",
        required=True,
        help="Platform key (e.g., static)",
    )
    parser.add_argument(
        "--platform-config",
        default="{}",
        help="JSON configuration for the platform",
    )
    parser.add_argument(
        "--platform-name",
        help="Platform name tests are filtered against (default: --platform)",
    )
    parser.add_argument("--distro", default="cl", help="Distribution under test")
    parser.add_argument("--channel", default="stable", help="Release channel")
    parser.add_argument(
        "--os-version", required=True, help="OS version under test (e.g., 3033.2.4)"
    )
    parser.add_argument("--arch", default="amd64", help="CPU architecture")
    parser.add_argument(
        "--flag",
        action="append",
        default=[],
        dest="flags",
        help="Enable a run-level feature flag (repeatable)",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=1,
        help="Maximum number of tests running at once",
    )
    parser.add_argument(
        "--agent-command",
        default=DEFAULT_AGENT_COMMAND,
        help="Command starting the guest agent on machines",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs")

    args = parser.parse_args()

    if args.parallel < 1:
        parser.error("--parallel must be at least 1")

    try:
        context = ExecutionContext(
            platform=args.platform_name or args.platform,
            distro=args.distro,
            channel=args.channel,
            version=args.os_version,
            architecture=args.arch,
            enabled_flags=frozenset(args.flags),
        )
    except ValidationError as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            platform_key=args.platform,
            platform_config_json=args.platform_config,
            context=context,
            parallelism=args.parallel,
            patterns=args.patterns,
            agent_command=args.agent_command,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
