"""
Helpers shared by the built-in tool adapters.

An adapter is a function ``ExecutionContext -> StepOutcome``. Most of
them find one binary and run one or two fixed command lines; these
helpers cover that shape.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from upsweep.core.context import ExecutionContext
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import ALL_PLATFORMS, Step


@dataclass(frozen=True)
class Invocation:
    """One command line of a step."""

    args: tuple[str, ...]
    elevated: bool = False
    yes_flag: str | None = None     # appended when the run assumes "yes"
    cleanup: bool = False           # only run with --cleanup

    def argv(self, binary: str, assume_yes: bool) -> list[str]:
        argv = [binary, *self.args]
        if assume_yes and self.yes_flag:
            argv.append(self.yes_flag)
        return argv


def run_invocations(
    ctx: ExecutionContext,
    title: str,
    binary: str,
    invocations: Sequence[Invocation],
) -> StepOutcome:
    """Run each invocation in order; stop at the first that doesn't succeed.

    Cleanup invocations (removing caches, orphaned packages) run only when
    the run was started with ``--cleanup``.
    """
    path = ctx.require(binary)
    outcome = StepOutcome.success(title)
    for inv in invocations:
        if inv.cleanup and not ctx.cleanup:
            continue
        outcome = ctx.execute(
            title, inv.argv(path, ctx.assume_yes), requires_elevation=inv.elevated
        )
        if not outcome.ok:
            return outcome
    return outcome


def binary_step(
    name: str,
    title: str,
    binary: str,
    *invocations: Invocation,
    platforms: frozenset[str] = ALL_PLATFORMS,
) -> Step:
    """Build a step that requires ``binary`` and runs fixed commands."""

    def _run(ctx: ExecutionContext) -> StepOutcome:
        return run_invocations(ctx, title, binary, invocations)

    _run.__name__ = f"run_{name}"
    return Step(name=name, title=title, run=_run, platforms=platforms)


def cmd(
    *args: str,
    elevated: bool = False,
    yes_flag: str | None = None,
    cleanup: bool = False,
) -> Invocation:
    """Shorthand for an ``Invocation``."""
    return Invocation(args=args, elevated=elevated, yes_flag=yes_flag, cleanup=cleanup)
