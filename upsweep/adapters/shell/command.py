"""
Shell command adapter — run one external command under the run mode.

This is the most fundamental adapter: every step, remote host and
custom command ends up here. Output is never captured; each tool's own
messages reach the terminal verbatim.

Modes:
    WET  → spawn, wait, map the exit status.
    DRY  → print the resolved command, never spawn.
    DAMP → print, ask, then behave like WET (or skip on "no").
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Callable, Sequence
from typing import Protocol

import click

from upsweep.adapters.privilege.sudo import PrivilegeBroker
from upsweep.core.context import RunMode
from upsweep.core.errors import MissingPrivilege, QuitRequested, ToolMissing
from upsweep.core.models.outcome import StepOutcome

logger = logging.getLogger(__name__)


class ProcessRunner(Protocol):
    """Spawns a process and returns its exit status."""

    def __call__(
        self,
        argv: Sequence[str],
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> int: ...


def run_process(
    argv: Sequence[str],
    env: dict[str, str] | None = None,
    cwd: str | None = None,
) -> int:
    """Run ``argv`` in the foreground, inheriting stdio.

    Raises:
        OSError: The program could not be spawned.
    """
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)
    result = subprocess.run(list(argv), env=full_env, cwd=cwd, check=False)
    return result.returncode


def format_command(argv: Sequence[str]) -> str:
    """Shell-quoted command line, as a user would type it."""
    return shlex.join(str(a) for a in argv)


class CommandExecutor:
    """Execute commands for steps and report a uniform outcome.

    Args:
        mode: The resolved run mode.
        broker: Privilege broker used for elevated commands.
        process_runner: Spawns processes (``run_process`` by default).
        confirm: Yes/no prompt for DAMP mode.
        verbose: Print a header line before each step's output.
        which: Binary lookup for ``require``.
        extra_env: Variables added to the environment of every command.
    """

    def __init__(
        self,
        mode: RunMode,
        broker: PrivilegeBroker,
        process_runner: ProcessRunner = run_process,
        confirm: Callable[[str], bool] | None = None,
        verbose: bool = False,
        which: Callable[[str], str | None] = shutil.which,
        extra_env: dict[str, str] | None = None,
    ):
        self.mode = mode
        self.broker = broker
        self._process_runner = process_runner
        self._confirm = confirm or (lambda prompt: click.confirm(prompt, default=True))
        self._verbose = verbose
        self._which = which
        self._extra_env = dict(extra_env or {})
        self._last_header: str | None = None

    def find(self, binary: str) -> str | None:
        """Full path of ``binary``, or None if it is not installed."""
        return self._which(binary)

    def require(self, binary: str) -> str:
        """Return the full path of ``binary``.

        Raises:
            ToolMissing: The binary is not installed.
        """
        path = self._which(binary)
        if path is None:
            logger.debug("Cannot find %s", binary)
            raise ToolMissing(f"{binary} is not installed")
        logger.debug("Detected %s as %s", binary, path)
        return path

    def header(self, name: str) -> None:
        """Print the step header once per step, in verbose mode."""
        if not self._verbose or self._last_header == name:
            return
        self._last_header = name
        click.secho(f"\n── {name} " + "─" * max(0, 60 - len(name)), fg="cyan", bold=True)

    def execute(
        self,
        name: str,
        command: Sequence[str],
        requires_elevation: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        quiet: bool = False,
    ) -> StepOutcome:
        """Run ``command`` for the step ``name`` under the current mode.

        Every failure is captured in the outcome. A ``quiet`` command is
        housekeeping: no step header and no confirmation prompt.

        Raises:
            QuitRequested: The confirmation prompt was aborted.
        """
        argv = [str(a) for a in command]
        if self._extra_env:
            env = {**self._extra_env, **(env or {})}
        if requires_elevation:
            try:
                argv = self.broker.wrap(argv)
            except MissingPrivilege as e:
                logger.warning("Skipping %s: %s", name, e.reason)
                return StepOutcome.skip(name, e.reason)

        rendered = format_command(argv)
        metadata = {"command": rendered, "mode": self.mode.value}
        if not quiet:
            self.header(name)

        # Dry run: printed, never spawned
        if self.mode is RunMode.DRY:
            suffix = f" in {cwd}" if cwd else ""
            click.echo(f"Dry running: {rendered}{suffix}")
            return StepOutcome.success(name, metadata=metadata)

        if self.mode is RunMode.DAMP and not quiet:
            click.echo(f"Executing: {rendered}")
            if env:
                click.echo("  with env: " + " ".join(f"{k}={v}" for k, v in env.items()))
            if cwd:
                click.echo(f"  in {cwd}")
            try:
                proceed = self._confirm("Run this command?")
            except click.Abort:
                raise QuitRequested() from None
            if not proceed:
                return StepOutcome.skip(name, "user declined", metadata=metadata)

        logger.debug("Running %s (cwd=%s)", rendered, cwd)
        start = time.monotonic()
        try:
            returncode = self._process_runner(argv, env=env, cwd=cwd)
        except OSError as e:
            return StepOutcome.failure(
                name,
                error=f"`{rendered}` could not be started: {e}",
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata=metadata,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        metadata["return_code"] = returncode
        if returncode == 0:
            return StepOutcome.success(name, duration_ms=elapsed_ms, metadata=metadata)
        return StepOutcome.failure(
            name,
            error=f"`{rendered}` failed: exit status {returncode}",
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
