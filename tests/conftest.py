"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable

import pytest

from upsweep.adapters.mock import MockProcessRunner
from upsweep.adapters.privilege.sudo import PrivilegeBroker
from upsweep.adapters.shell.command import CommandExecutor
from upsweep.core.context import ExecutionContext, RunMode
from upsweep.core.models.config import Config
from upsweep.core.models.step import LINUX


def which_from(*installed: str) -> Callable[[str], str | None]:
    """A ``shutil.which`` stand-in that knows only ``installed``."""
    paths = {name: f"/usr/bin/{name}" for name in installed}
    return paths.get


@pytest.fixture(autouse=True)
def _plain_shell(monkeypatch):
    """Custom commands run through ``sh`` regardless of the user's shell."""
    monkeypatch.setenv("SHELL", "sh")


@pytest.fixture
def mock_runner() -> MockProcessRunner:
    return MockProcessRunner()


@pytest.fixture
def make_ctx(mock_runner):
    """Factory for an ExecutionContext wired to the mock process runner."""

    def _make(
        mode: RunMode = RunMode.WET,
        config: Config | None = None,
        installed: tuple[str, ...] = (),
        assume_yes: bool = False,
        cleanup: bool = False,
        interactive: bool = False,
        no_retry: bool = False,
        confirm: Callable[[str], bool] | None = None,
        verbose: bool = False,
        is_root: bool = False,
        platform: str = LINUX,
    ) -> ExecutionContext:
        which = which_from(*installed)
        config = config or Config()
        broker = PrivilegeBroker(
            override=config.misc.sudo_command,
            platform=platform,
            which=which,
            is_root=lambda: is_root,
        )
        executor = CommandExecutor(
            mode=mode,
            broker=broker,
            process_runner=mock_runner,
            confirm=confirm or (lambda prompt: True),
            verbose=verbose,
            which=which,
        )
        return ExecutionContext(
            mode=mode,
            config=config,
            executor=executor,
            broker=broker,
            assume_yes=assume_yes,
            cleanup=cleanup,
            verbose=verbose,
            interactive=interactive,
            no_retry=no_retry,
        )

    return _make


@pytest.fixture
def fake_which():
    """``which_from`` as a fixture, for tests that build their own collaborators."""
    return which_from
