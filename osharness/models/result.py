"""Models for test execution results."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal

Outcome = Literal["pass", "fail", "skip", "exclude"]


@dataclass(frozen=True, kw_only=True)
class ResultNode:
    """Outcome of a test or sub-test, with its sub-tests in execution order."""

    name: str
    outcome: Outcome
    duration: float = 0.0
    message: str | None = None
    warnings: Sequence[str] = ()
    children: Sequence["ResultNode"] = ()

    @property
    def failed(self) -> bool:
        """Whether this node failed."""
        return self.outcome == "fail"

    def walk(self, prefix: str = "") -> Iterator[tuple[str, "ResultNode"]]:
        """Yield ``(path, node)`` for this node and all descendants, depth first.

        Paths join nested names with ``/``, e.g. ``kubeadm.base/node readiness``.
        """
        path = f"{prefix}/{self.name}" if prefix else self.name
        yield path, self
        for child in self.children:
            yield from child.walk(path)


@dataclass(frozen=True, kw_only=True)
class RunReport:
    """Aggregated results of a run, one root node per selected test."""

    results: Sequence[ResultNode] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "results", tuple(sorted(self.results, key=lambda r: r.name))
        )

    @property
    def has_failures(self) -> bool:
        """Whether any top-level test failed."""
        return any(result.failed for result in self.results)

    @property
    def warnings(self) -> Sequence[tuple[str, str]]:
        """Return ``(test name, warning)`` pairs, e.g. teardown failures."""
        return [
            (result.name, warning)
            for result in self.results
            for warning in result.warnings
        ]

    def count(self, outcome: Outcome) -> int:
        """Count top-level tests with the given outcome."""
        return sum(1 for result in self.results if result.outcome == outcome)
