"""
Step catalog — the fixed, ordered set of steps and how a run picks from it.

The catalog is built once at process start. Planning a run applies, in
this order:

    catalog order → ordering exceptions → only filter → --skip filter
        → config disable / platform check (reported as skipped)

Steps removed by ``only`` or ``--skip`` are absent from the report.
Steps the config disables, or that don't apply to this platform, are
kept as skipped entries so the user sees why they didn't run.

Planning is deterministic: the same catalog, config and selection always
produce the same plan.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from upsweep.core.context import ExecutionContext
from upsweep.core.engine.custom_commands import expand
from upsweep.core.errors import ConfigError, SkipStep
from upsweep.core.models.config import Config
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import ALL_PLATFORMS, Step, StepFunc

logger = logging.getLogger(__name__)

# Pseudo-steps: filtered like any step, executed by the runner itself
REMOTES = "remotes"
CUSTOM_COMMANDS = "custom_commands"

DISABLED_BY_CONFIG = "disabled by config"
NOT_APPLICABLE = "not applicable on this platform"

# (first, then): ``first`` always runs before ``then``. A finite list of
# known constraints, not a dependency graph.
ORDERING_EXCEPTIONS: tuple[tuple[str, str], ...] = (
    ("rustup", "cargo"),                # cargo itself is updated by rustup
    ("brew_formula", "brew_cask"),      # casks need a fresh `brew update`
)


def _run_custom_commands_placeholder(ctx: ExecutionContext) -> StepOutcome:
    # Replaced by one unit per command at planning time
    raise SkipStep("no custom commands configured")


@dataclass(frozen=True)
class Catalog:
    """Ordered, immutable set of steps."""

    steps: tuple[Step, ...]
    ordering_exceptions: tuple[tuple[str, str], ...] = ORDERING_EXCEPTIONS

    def __post_init__(self) -> None:
        names = [s.name for s in self.steps]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate step names in catalog: {', '.join(dupes)}")

    def names(self) -> list[str]:
        """All names usable in ``--only``, ``--skip`` and the config."""
        return [REMOTES, *(s.name for s in self.steps)]

    def get(self, name: str) -> Step | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def ordered(self) -> list[Step]:
        """Steps in run order: declaration order plus the ordering exceptions."""
        return apply_ordering(list(self.steps), self.ordering_exceptions)


def apply_ordering(steps: list[Step], exceptions: Iterable[tuple[str, str]]) -> list[Step]:
    """Move each ``first`` directly before ``then`` if it currently follows it."""
    result = list(steps)
    for first, then in exceptions:
        names = [s.name for s in result]
        if first not in names or then not in names:
            continue
        i, j = names.index(first), names.index(then)
        if i > j:
            step = result.pop(i)
            result.insert(j, step)
    return result


def default_catalog() -> Catalog:
    """The built-in catalog: tool adapters, then the custom commands slot."""
    from upsweep.adapters.tools import builtin_steps

    return Catalog(
        steps=(
            *builtin_steps(),
            Step(
                name=CUSTOM_COMMANDS,
                title="Custom commands",
                run=_run_custom_commands_placeholder,
                platforms=ALL_PLATFORMS,
            ),
        )
    )


# ── Planning ────────────────────────────────────────────────────


@dataclass(frozen=True)
class StepSelection:
    """Command-line filters for a run."""

    only: tuple[str, ...] = ()
    skip: tuple[str, ...] = ()
    custom_commands: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlannedStep:
    """One entry of the effective step list."""

    name: str           # catalog step name
    title: str          # report name
    run: StepFunc | None = None
    skip_reason: str | None = None
    metadata: dict = field(default_factory=dict, compare=False)

    @property
    def runnable(self) -> bool:
        return self.skip_reason is None


def validate_step_names(catalog: Catalog, config: Config, selection: StepSelection) -> None:
    """Reject references to steps the catalog doesn't have.

    Raises:
        ConfigError: The config or the selection names an unknown step.
    """
    known = set(catalog.names())
    problems = []
    for setting, names in config.referenced_step_names().items():
        unknown = [n for n in names if n not in known]
        if unknown:
            problems.append(f"{setting}: unknown step(s) {', '.join(unknown)}")
    for flag, names in (("--only", selection.only), ("--skip", selection.skip)):
        unknown = [n for n in names if n not in known]
        if unknown:
            problems.append(f"{flag}: unknown step(s) {', '.join(unknown)}")
    if problems:
        raise ConfigError("; ".join(problems))


def is_selected(name: str, config: Config, selection: StepSelection) -> bool:
    """Whether ``name`` survives the ``only`` and ``--skip`` filters."""
    only = set(selection.only) | set(config.misc.only)
    if only and name not in only:
        return False
    return name not in selection.skip


def disabled_by_config(name: str, config: Config, selection: StepSelection) -> bool:
    """Config ``disable`` applies unless the step is named in ``--only``."""
    return config.is_disabled(name) and name not in selection.only


def plan_steps(
    catalog: Catalog,
    config: Config,
    selection: StepSelection,
    platform: str,
) -> list[PlannedStep]:
    """Compute the effective step list for a run."""
    validate_step_names(catalog, config, selection)

    plan: list[PlannedStep] = []
    for step in catalog.ordered():
        if not is_selected(step.name, config, selection):
            continue

        if disabled_by_config(step.name, config, selection):
            plan.append(PlannedStep(step.name, step.title, skip_reason=DISABLED_BY_CONFIG))
        elif not step.applies_to(platform):
            plan.append(
                PlannedStep(
                    step.name, step.title,
                    skip_reason=NOT_APPLICABLE,
                    metadata={"quiet": True},
                )
            )
        elif step.name == CUSTOM_COMMANDS:
            plan.extend(
                PlannedStep(CUSTOM_COMMANDS, command.name, run=command.run)
                for command in expand(config, "main", selection.custom_commands)
            )
        else:
            plan.append(PlannedStep(step.name, step.title, run=step.run))

    logger.debug(
        "Planned %d step(s): %s", len(plan), ", ".join(p.title for p in plan)
    )
    return plan