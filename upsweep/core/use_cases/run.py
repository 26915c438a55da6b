"""
Run use case — one full update pass.

This is the vertical slice from user intent to report: it loads the
config, resolves the run mode, wires the privilege broker, command
executor and execution context together, and hands them to the runner.
Fatal errors come back in ``RunResult.error`` and nothing runs.
"""

from __future__ import annotations

import logging
import re
import shutil
import signal
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from upsweep.adapters.privilege.sudo import PrivilegeBroker
from upsweep.adapters.remote.ssh import RemoteDispatcher
from upsweep.adapters.shell.command import CommandExecutor, ProcessRunner, run_process
from upsweep.core.config.loader import ConfigError, load_config
from upsweep.core.context import ExecutionContext, RetryChoice, RunMode
from upsweep.core.engine.catalog import Catalog, StepSelection
from upsweep.core.engine.report import EXIT_FATAL, Report
from upsweep.core.engine.runner import Runner, RunPhase
from upsweep.core.models.config import Config

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of an update run."""

    report: Report | None = None
    mode: RunMode | None = None
    config: Config | None = None
    phases: list[RunPhase] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error or self.report is None:
            return EXIT_FATAL
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
            return result
        result["mode"] = self.mode.value if self.mode else None
        result["phases"] = [p.value for p in self.phases]
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def parse_env(assignments: Sequence[str]) -> dict[str, str]:
    """Parse ``NAME=VALUE`` pairs.

    Raises:
        ConfigError: An entry has no ``=`` or an empty name.
    """
    env: dict[str, str] = {}
    for item in assignments:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ConfigError(f"Invalid --env value '{item}', expected NAME=VALUE")
        env[name] = value
    return env


@contextmanager
def interrupt_flag(event: threading.Event) -> Iterator[None]:
    """Turn Ctrl-C into ``event.set()`` for the duration of the block.

    Only installed on the main thread; elsewhere the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        logger.warning("Interrupted, will stop after the current step")
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def run_update(
    config_path: Path | None = None,
    config: Config | None = None,
    dry_run: bool = False,
    assume_yes: bool = False,
    cleanup: bool = False,
    confirm: bool = False,
    only: Sequence[str] = (),
    skip: Sequence[str] = (),
    custom_commands: Sequence[str] = (),
    remote_host_limit: str | None = None,
    no_retry: bool = False,
    env: Sequence[str] = (),
    verbose: bool = False,
    interactive: bool = False,
    confirm_prompt: Callable[[str], bool] | None = None,
    ask_retry: Callable[[str], RetryChoice] | None = None,
    ask_quit: Callable[[], bool] | None = None,
    process_runner: ProcessRunner = run_process,
    which: Callable[[str], str | None] = shutil.which,
    platform: str | None = None,
    catalog: Catalog | None = None,
    local_hostname: str | None = None,
    handle_sigint: bool = True,
) -> RunResult:
    """Run every selected step once and report the outcomes.

    Args:
        config_path: Explicit config file (default: lookup order).
        config: Already-loaded config; skips loading when given.
        dry_run: Print commands instead of running them.
        assume_yes: Pass non-interactive flags to the tools.
        cleanup: Also remove caches and orphaned packages after updating.
        confirm: Ask before every command (ignored with ``assume_yes``).
        only: Run only these steps.
        skip: Never run these steps.
        custom_commands: Run only these entries of the ``commands`` table.
        remote_host_limit: Regex restricting the remote hosts contacted.
        no_retry: Never offer to retry a failed step.
        env: ``NAME=VALUE`` pairs added to every command's environment.
        verbose: Print a header before each step's output.
        interactive: Stdin is a terminal; prompts may be shown.
        confirm_prompt: Yes/no prompt for commands in confirm mode.
        ask_retry: Prompt shown after a failed step.
        ask_quit: Prompt shown after Ctrl-C between steps.
        process_runner: Spawns processes (injected by tests).
        which: Binary lookup (injected by tests).
        platform: Platform to plan for (default: current platform).
        catalog: Step catalog (default: built-in catalog).
        local_hostname: This machine's name, for remote host filtering.
        handle_sigint: Turn Ctrl-C into a cooperative quit request.

    Returns:
        RunResult with the report, or ``error`` set on fatal problems.
    """
    result = RunResult()

    # ── Load config ──────────────────────────────────────────────
    try:
        if config is None:
            config = load_config(config_path)
        extra_env = parse_env(env)
        dispatcher = RemoteDispatcher(
            config, host_limit=remote_host_limit, local_hostname=local_hostname
        )
    except ConfigError as e:
        result.error = str(e)
        return result
    except re.error as e:
        result.error = f"Invalid --remote-host-limit '{remote_host_limit}': {e}"
        return result
    result.config = config

    misc = config.misc
    assume_yes = assume_yes or misc.assume_yes
    mode = RunMode.resolve(dry_run=dry_run, confirm=confirm, assume_yes=assume_yes)
    result.mode = mode
    logger.info("Run mode: %s", mode.value)

    # ── Wire collaborators ───────────────────────────────────────
    broker = PrivilegeBroker(
        override=misc.sudo_command,
        platform=platform,
        preserve_env=list(extra_env),
        which=which,
    )
    executor = CommandExecutor(
        mode=mode,
        broker=broker,
        process_runner=process_runner,
        confirm=confirm_prompt,
        verbose=verbose,
        which=which,
        extra_env=extra_env,
    )
    ctx = ExecutionContext(
        mode=mode,
        config=config,
        executor=executor,
        broker=broker,
        assume_yes=assume_yes,
        cleanup=cleanup or misc.cleanup,
        verbose=verbose,
        interactive=interactive,
        no_retry=no_retry or misc.no_retry,
    )
    if ask_retry is not None:
        ctx.ask_retry = ask_retry
    if ask_quit is not None:
        ctx.ask_quit = ask_quit

    runner = Runner(
        ctx,
        catalog=catalog,
        selection=StepSelection(
            only=tuple(only), skip=tuple(skip), custom_commands=tuple(custom_commands)
        ),
        platform=platform,
        dispatcher=dispatcher,
    )

    # ── Execute ──────────────────────────────────────────────────
    try:
        if handle_sigint:
            with interrupt_flag(ctx.interrupted):
                result.report = runner.run()
        else:
            result.report = runner.run()
    except ConfigError as e:
        result.error = str(e)
    result.phases = list(runner.phases)
    return result
