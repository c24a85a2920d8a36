"""Test registry and loading of test catalogs from entry points."""

import fnmatch
import logging
from collections.abc import Callable, Iterator, Sequence
from importlib.metadata import entry_points

from osharness.errors import DuplicateTestError, TestNotFoundError
from osharness.models.descriptor import TestDescriptor

log = logging.getLogger(__name__)

CATALOG_ENTRY_POINT_GROUP = "osharness.catalogs"


class TestRegistry:
    """Append-only catalog of test descriptors keyed by name.

    Populated during start-up, before the scheduler runs, and only read
    afterwards.
    """

    __test__ = False

    def __init__(self) -> None:
        self._tests: dict[str, TestDescriptor] = {}

    def add(self, test: TestDescriptor) -> None:
        """Register a test.

        Raises:
            DuplicateTestError: If a test with the same name is registered

        """
        if test.name in self._tests:
            raise DuplicateTestError(f"Test '{test.name}' is already registered")
        self._tests[test.name] = test

    def get(self, name: str) -> TestDescriptor:
        """Return the test registered under ``name``.

        Raises:
            TestNotFoundError: If no such test is registered

        """
        try:
            return self._tests[name]
        except KeyError:
            raise TestNotFoundError(f"Test '{name}' is not registered") from None

    def select(self, patterns: Sequence[str] = ()) -> Sequence[TestDescriptor]:
        """Return tests whose names match any glob pattern, sorted by name.

        No patterns selects every test.
        """
        return [
            test
            for name, test in sorted(self._tests.items())
            if not patterns
            or any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._tests

    def __iter__(self) -> Iterator[TestDescriptor]:
        return iter(self.select())

    def __len__(self) -> int:
        return len(self._tests)


type Catalog = Callable[[TestRegistry], None]


def load_catalogs(registry: TestRegistry) -> TestRegistry:
    """Register the tests of every installed catalog into ``registry``.

    Each entry point in the ``osharness.catalogs`` group must resolve to a
    callable taking the registry.
    """
    for entry in entry_points(group=CATALOG_ENTRY_POINT_GROUP):
        catalog: Catalog = entry.load()
        before = len(registry)
        catalog(registry)
        log.info(
            "Loaded catalog %s (%d test(s))", entry.name, len(registry) - before
        )
    return registry
