"""Decide whether a registered test applies to the current run."""

from dataclasses import dataclass
from typing import Literal

from osharness.models.context import ExecutionContext
from osharness.models.descriptor import TestDescriptor

type Action = Literal["run", "skip", "exclude"]


@dataclass(frozen=True, kw_only=True)
class Decision:
    """Result of the applicability check.

    ``exclude`` means the test is structurally inapplicable to the context,
    ``skip`` means it applies but its skip predicate asked to bypass it.
    """

    action: Action
    reason: str | None = None

    @property
    def should_run(self) -> bool:
        """Whether the test should be provisioned and executed."""
        return self.action == "run"


RUN = Decision(action="run")


def decide(test: TestDescriptor, ctx: ExecutionContext) -> Decision:
    """Return the decision for ``test`` under ``ctx``.

    Checks are applied in order and the first negative match wins:
    architecture, distro, platform allow-list, platform deny-list, minimum
    version and finally the skip predicate.
    """
    if test.architectures and ctx.architecture not in test.architectures:
        return Decision(
            action="exclude",
            reason=f"architecture {ctx.architecture} not in "
            f"{sorted(test.architectures)}",
        )

    if test.distros and ctx.distro not in test.distros:
        return Decision(
            action="exclude",
            reason=f"distro {ctx.distro} not in {sorted(test.distros)}",
        )

    if test.platforms and ctx.platform not in test.platforms:
        return Decision(
            action="exclude",
            reason=f"platform {ctx.platform} not in {sorted(test.platforms)}",
        )

    if ctx.platform in test.exclude_platforms:
        return Decision(
            action="exclude", reason=f"platform {ctx.platform} is excluded"
        )

    if test.min_version is not None and ctx.version < test.min_version:
        return Decision(
            action="exclude",
            reason=f"version {ctx.version} is older than {test.min_version}",
        )

    if test.skip_func is not None and test.skip_func(ctx.skip_context):
        return Decision(action="skip", reason="skipped by test predicate")

    return RUN
