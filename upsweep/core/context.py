"""
Execution context — everything a step needs for one run.

Created once per invocation by the CLI and passed by reference into
every step. It carries the resolved run mode, the effective config, the
privilege broker, the command executor and the interactive hooks.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from upsweep.core.models.config import Config
from upsweep.core.models.outcome import StepOutcome

if TYPE_CHECKING:
    from upsweep.adapters.privilege.sudo import PrivilegeBroker
    from upsweep.adapters.shell.command import CommandExecutor


class RunMode(StrEnum):
    """How commands are executed."""

    WET = "wet"     # execute for real
    DRY = "dry"     # print only
    DAMP = "damp"   # print, confirm, then execute

    @classmethod
    def resolve(cls, dry_run: bool, confirm: bool = False, assume_yes: bool = False) -> RunMode:
        """Resolve the mode from CLI flags. ``--dry-run`` wins, ``--yes`` cancels ``--confirm``."""
        if dry_run:
            return cls.DRY
        if confirm and not assume_yes:
            return cls.DAMP
        return cls.WET


class RetryChoice(StrEnum):
    YES = "y"
    NO = "n"
    QUIT = "q"


def _never_retry(step_name: str) -> RetryChoice:
    return RetryChoice.NO


def _quit_on_interrupt() -> bool:
    return True


@dataclass
class ExecutionContext:
    """The run's view of the world.

    The prompt hooks default to the non-interactive answers; the CLI
    replaces them with click prompts when stdin is a terminal.
    """

    mode: RunMode
    config: Config
    executor: CommandExecutor
    broker: PrivilegeBroker
    assume_yes: bool = False
    cleanup: bool = False
    verbose: bool = False
    interactive: bool = False
    no_retry: bool = False
    ask_retry: Callable[[str], RetryChoice] = _never_retry
    ask_quit: Callable[[], bool] = _quit_on_interrupt
    interrupted: threading.Event = field(default_factory=threading.Event)

    @property
    def dry_run(self) -> bool:
        return self.mode is RunMode.DRY

    def execute(
        self,
        name: str,
        command: Sequence[str],
        requires_elevation: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> StepOutcome:
        """Shortcut for ``self.executor.execute``."""
        return self.executor.execute(
            name, command, requires_elevation=requires_elevation, env=env, cwd=cwd
        )

    def find(self, binary: str) -> str | None:
        return self.executor.find(binary)

    def require(self, binary: str) -> str:
        """Return the path of ``binary`` or skip the current step."""
        return self.executor.require(binary)

    def should_retry_prompt(self, step_name: str) -> bool:
        """Whether a failed unit may offer the retry prompt."""
        return (
            self.interactive
            and not self.no_retry
            and not self.dry_run
            and not self.config.ignores_failure(step_name)
        )
