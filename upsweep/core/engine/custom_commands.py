"""
Custom command expander — user-defined shell commands as units of work.

The config declares three tables: ``pre_commands``, ``commands`` (run in
place of the ``custom_commands`` catalog step) and ``post_commands``.
Within a table, commands run in the order they are written. They are
never sorted: later commands may depend on earlier ones.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from upsweep.core.context import ExecutionContext
from upsweep.core.models.config import Config
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import WINDOWS, current_platform

CommandPhase = Literal["pre", "main", "post"]

_TABLES: dict[str, str] = {
    "pre": "pre_commands",
    "main": "commands",
    "post": "post_commands",
}


@dataclass(frozen=True)
class CustomCommand:
    """A named shell command from the config."""

    name: str
    command: str
    phase: CommandPhase

    def run(self, ctx: ExecutionContext) -> StepOutcome:
        return ctx.execute(self.name, shell_argv(self.command))


def shell_argv(command: str, platform: str | None = None) -> list[str]:
    """Wrap a command line for the user's shell."""
    if (platform or current_platform()) == WINDOWS:
        return ["cmd.exe", "/C", command]
    return [os.environ.get("SHELL") or "sh", "-c", command]


def expand(
    config: Config,
    phase: CommandPhase,
    names: Sequence[str] = (),
) -> list[CustomCommand]:
    """Custom commands of ``phase`` in declaration order.

    Args:
        config: Effective configuration.
        phase: Which table to read.
        names: If given, keep only these commands (``--custom-commands``).
            Only applies to the main table.
    """
    table: dict[str, str] = getattr(config, _TABLES[phase])
    commands = [CustomCommand(name, line, phase) for name, line in table.items()]
    if names and phase == "main":
        wanted = set(names)
        commands = [c for c in commands if c.name in wanted]
    return commands
