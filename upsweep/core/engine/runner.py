"""
Runner — the top-level control loop of a run.

Phases:
    INIT            → plan the effective step list (fatal errors stop here).
    REMOTE_DISPATCH → run upsweep on each remote host, in config order.
    PRE_COMMANDS    → the config's pre_commands, in declaration order.
    MAIN_STEPS      → optional pre-authentication, then the planned steps.
    PRIVILEGE_CLEAR → drop cached credentials. Always runs.
    POST_COMMANDS   → the config's post_commands, in declaration order.
    REPORT          → finalize the report.
    TERMINAL        → done.

Every unit runs isolated: whatever it raises becomes its own outcome and
the loop moves on. A quit (answering "q" or Ctrl-C between units) ends
the remote, pre and main phases early. Privilege clear, post commands
and the report still happen.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum

from upsweep.adapters.remote.ssh import RemoteDispatcher
from upsweep.core.context import ExecutionContext, RetryChoice
from upsweep.core.engine.catalog import (
    DISABLED_BY_CONFIG,
    REMOTES,
    Catalog,
    PlannedStep,
    StepSelection,
    default_catalog,
    disabled_by_config,
    is_selected,
    plan_steps,
)
from upsweep.core.engine.custom_commands import expand
from upsweep.core.engine.report import Report
from upsweep.core.errors import QuitRequested, SkipStep, ToolMissing
from upsweep.core.models.outcome import Phase, StepOutcome
from upsweep.core.models.step import current_platform

logger = logging.getLogger(__name__)

Unit = Callable[[ExecutionContext], StepOutcome]


class RunPhase(StrEnum):
    INIT = "init"
    REMOTE_DISPATCH = "remote_dispatch"
    PRE_COMMANDS = "pre_commands"
    MAIN_STEPS = "main_steps"
    PRIVILEGE_CLEAR = "privilege_clear"
    POST_COMMANDS = "post_commands"
    REPORT = "report"
    TERMINAL = "terminal"


def _marker(outcome: StepOutcome) -> str:
    return "✓" if outcome.ok else "✗" if outcome.failed else "⊘"


class Runner:
    """Runs one update pass and builds its report.

    Args:
        ctx: Execution context for the run.
        catalog: Step catalog (default: the built-in catalog).
        selection: ``--only``, ``--skip`` and ``--custom-commands`` filters.
        platform: Platform to plan for (default: current platform).
        dispatcher: Remote dispatcher (default: one over ``ctx.config``).
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        catalog: Catalog | None = None,
        selection: StepSelection | None = None,
        platform: str | None = None,
        dispatcher: RemoteDispatcher | None = None,
    ):
        self.ctx = ctx
        self.catalog = catalog or default_catalog()
        self.selection = selection or StepSelection()
        self.platform = platform or current_platform()
        self.dispatcher = dispatcher or RemoteDispatcher(ctx.config)

        self.phases: list[RunPhase] = []
        self.report = Report()
        self._quit = False

    @property
    def quit_requested(self) -> bool:
        return self._quit

    def plan(self) -> list[PlannedStep]:
        """The effective step list.

        Raises:
            ConfigError: The config or the selection names unknown steps.
        """
        return plan_steps(self.catalog, self.ctx.config, self.selection, self.platform)

    # ── Control loop ─────────────────────────────────────────────

    def run(self) -> Report:
        """Execute every phase and return the finalized report.

        Raises:
            ConfigError: Before anything runs, if planning fails.
        """
        self._enter(RunPhase.INIT)
        plan = self.plan()

        try:
            if self.ctx.config.misc.remotes_after_pre_commands:
                self._run_pre_commands()
                self._run_remotes()
            else:
                self._run_remotes()
                self._run_pre_commands()
            self._run_main(plan)
        finally:
            self._enter(RunPhase.PRIVILEGE_CLEAR)
            self.ctx.broker.clear(self.ctx.executor)

        self._run_post_commands()

        self._enter(RunPhase.REPORT)
        self.report.quit_early = self._quit
        self.report.finalize()
        logger.info(
            "Run finished: %d ok, %d failed, %d skipped in %.1fs",
            self.report.succeeded,
            self.report.failed,
            self.report.skipped,
            self.report.duration_s,
        )
        self._enter(RunPhase.TERMINAL)
        return self.report

    def _enter(self, phase: RunPhase) -> None:
        logger.debug("Entering phase %s", phase.value)
        self.phases.append(phase)

    # ── Phases ───────────────────────────────────────────────────

    def _run_remotes(self) -> None:
        self._enter(RunPhase.REMOTE_DISPATCH)
        if self._quit or not is_selected(REMOTES, self.ctx.config, self.selection):
            return

        hosts = self.dispatcher.hosts()
        if not hosts:
            return
        if disabled_by_config(REMOTES, self.ctx.config, self.selection):
            self._record(StepOutcome.skip("Remotes", DISABLED_BY_CONFIG), "remote", REMOTES)
            return

        for host in hosts:
            if self._stop_requested():
                return
            self._run_unit(
                RemoteDispatcher.title(host),
                lambda ctx, host=host: self.dispatcher.dispatch(ctx, host),
                phase="remote",
                step=REMOTES,
            )

    def _run_pre_commands(self) -> None:
        self._enter(RunPhase.PRE_COMMANDS)
        for command in expand(self.ctx.config, "pre"):
            if self._stop_requested():
                return
            self._run_unit(command.name, command.run, phase="pre", step=command.name)

    def _run_main(self, plan: list[PlannedStep]) -> None:
        self._enter(RunPhase.MAIN_STEPS)
        if self._quit:
            return

        if self.ctx.config.misc.pre_sudo and not self._stop_requested():
            try:
                outcome = self.ctx.broker.elevate(self.ctx.executor)
            except QuitRequested:
                self._quit = True
                return
            if outcome.failed:
                self._record(outcome, "pre", "sudo")

        for planned in plan:
            if self._stop_requested():
                return
            if not planned.runnable:
                self._record(
                    StepOutcome.skip(
                        planned.title, planned.skip_reason, metadata=dict(planned.metadata)
                    ),
                    "main",
                    planned.name,
                )
                continue
            self._run_unit(planned.title, planned.run, phase="main", step=planned.name)

    def _run_post_commands(self) -> None:
        self._enter(RunPhase.POST_COMMANDS)
        for command in expand(self.ctx.config, "post"):
            self._run_unit(command.name, command.run, phase="post", step=command.name, retry=False)

    # ── Units ────────────────────────────────────────────────────

    def _stop_requested(self) -> bool:
        """Check the interrupt flag between units."""
        if self._quit:
            return True
        if self.ctx.interrupted.is_set():
            self.ctx.interrupted.clear()
            if not self.ctx.interactive or self._ask_quit():
                logger.info("Quit requested, skipping the remaining steps")
                self._quit = True
        return self._quit

    def _run_unit(
        self,
        title: str,
        unit: Unit,
        phase: Phase,
        step: str,
        retry: bool = True,
    ) -> StepOutcome:
        """Run one unit with isolation, offering a retry on failure."""
        while True:
            start = time.monotonic()
            outcome = self._call(title, unit)
            if outcome.duration_ms == 0:
                outcome = outcome.model_copy(
                    update={"duration_ms": int((time.monotonic() - start) * 1000)}
                )

            if not outcome.failed or not retry or not self.ctx.should_retry_prompt(step):
                break

            choice = self._ask_retry(title)
            if choice is RetryChoice.YES:
                logger.info("Retrying %s", title)
                continue
            if choice is RetryChoice.QUIT:
                self._quit = True
            break

        if outcome.failed and self.ctx.config.ignores_failure(step):
            outcome = StepOutcome.skip(
                title,
                outcome.error or "failed",
                duration_ms=outcome.duration_ms,
                metadata={**outcome.metadata, "ignored_failure": True},
            )
        return self._record(outcome, phase, step, name=title)

    # A prompt that cannot be answered (Ctrl-D, closed terminal) means quit

    def _ask_quit(self) -> bool:
        try:
            return self.ctx.ask_quit()
        except Exception as e:
            logger.warning("Quit prompt aborted (%s), quitting", type(e).__name__)
            return True

    def _ask_retry(self, title: str) -> RetryChoice:
        try:
            return self.ctx.ask_retry(title)
        except Exception as e:
            logger.warning("Retry prompt aborted (%s), quitting", type(e).__name__)
            return RetryChoice.QUIT

    def _call(self, title: str, unit: Unit) -> StepOutcome:
        try:
            return unit(self.ctx)
        except ToolMissing as e:
            return StepOutcome.skip(title, e.reason, metadata={"quiet": True})
        except SkipStep as e:
            return StepOutcome.skip(title, e.reason)
        except QuitRequested:
            self._quit = True
            return StepOutcome.skip(title, "quit requested")
        except Exception as e:
            logger.debug("Unit %s raised", title, exc_info=True)
            return StepOutcome.failure(title, error=f"{type(e).__name__}: {e}")

    def _record(
        self, outcome: StepOutcome, phase: Phase, step: str, name: str | None = None
    ) -> StepOutcome:
        outcome = outcome.model_copy(
            update={"name": name or outcome.name, "phase": phase, "step": step}
        )
        self.report.add(outcome)
        logger.info("%s %s → %s", _marker(outcome), outcome.name, outcome.status)
        return outcome
