"""Guest agent running native test functions by name.

The agent is installed in guest images and started by the harness over SSH::

    osharness-agent run <test-name> <function> [args...]

It reports back only through its exit status: 0 when the function returned,
1 when it raised, 2 when the test or function is unknown.
"""

import argparse
import logging
import sys
from collections.abc import Sequence

from osharness.errors import TestNotFoundError
from osharness.registry import TestRegistry, load_catalogs

log = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_UNKNOWN = 2


def dispatch(
    registry: TestRegistry, test_name: str, func_name: str, args: Sequence[str]
) -> int:
    """Run a registered native function and return the exit status."""
    try:
        test = registry.get(test_name)
    except TestNotFoundError as exc:
        log.error("%s", exc)
        return EXIT_UNKNOWN

    func = test.native_funcs.get(func_name)
    if func is None:
        log.error(
            "Test '%s' has no native function '%s'. Available: %s",
            test_name,
            func_name,
            sorted(test.native_funcs),
        )
        return EXIT_UNKNOWN

    log.info("Running %s.%s", test_name, func_name)
    try:
        func(*args)
    except Exception as exc:
        log.error("%s.%s failed: %s", test_name, func_name, exc, exc_info=exc)
        return EXIT_FAILURE

    return EXIT_SUCCESS


def main() -> None:
    """Agent entry point."""
    parser = argparse.ArgumentParser(description="Run native test functions")
    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Run a native function")
    run_parser.add_argument("test", help="Name of the registered test")
    run_parser.add_argument("function", help="Native function of the test")
    run_parser.add_argument(
        "args", nargs=argparse.REMAINDER, help="Arguments for the function"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    registry = load_catalogs(TestRegistry())
    sys.exit(dispatch(registry, args.test, args.function, args.args))


if __name__ == "__main__":  # pragma: no cover
    main()
