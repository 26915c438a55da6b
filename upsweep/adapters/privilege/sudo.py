"""
Privilege broker — find an elevation mechanism and own its credentials.

States:
    UNRESOLVED → nothing probed yet.
    RESOLVED   → a mechanism (or "none available") is cached for the run.
    CLEARED    → cached authentication has been explicitly invalidated.

Transitions:
    UNRESOLVED → RESOLVED:  first resolve(), wrap() or elevate()
    RESOLVED   → CLEARED:   clear(), once the main step loop is over

Detection happens at most once per run. The configured override is
probed first, then the platform's mechanisms in a fixed order. All
mechanism-specific argv construction lives in this module.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from upsweep.core.errors import MissingPrivilege
from upsweep.core.models.outcome import StepOutcome
from upsweep.core.models.step import OPENBSD, WINDOWS, current_platform

if TYPE_CHECKING:
    from upsweep.adapters.shell.command import CommandExecutor

logger = logging.getLogger(__name__)


class SudoKind(StrEnum):
    """Supported elevation programs."""

    SUDO = "sudo"
    DOAS = "doas"
    PKEXEC = "pkexec"
    RUN0 = "run0"
    PLEASE = "please"
    GSUDO = "gsudo"
    WIN_SUDO = "win_sudo"
    NULL = "null"       # already running as root, nothing to wrap


class BrokerState(StrEnum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    CLEARED = "cleared"


_BINARIES: dict[SudoKind, str] = {
    SudoKind.SUDO: "sudo",
    SudoKind.DOAS: "doas",
    SudoKind.PKEXEC: "pkexec",
    SudoKind.RUN0: "run0",
    SudoKind.PLEASE: "please",
    SudoKind.GSUDO: "gsudo",
    # Full path, so gsudo installed as "sudo" is not mistaken for it
    SudoKind.WIN_SUDO: r"C:\Windows\System32\sudo.exe",
}

# Native mechanism first, then secondary tools
_UNIX_ORDER = (SudoKind.SUDO, SudoKind.DOAS, SudoKind.PKEXEC, SudoKind.RUN0, SudoKind.PLEASE)
_OPENBSD_ORDER = (SudoKind.DOAS, SudoKind.SUDO, SudoKind.PKEXEC, SudoKind.RUN0, SudoKind.PLEASE)
_WINDOWS_ORDER = (SudoKind.GSUDO, SudoKind.WIN_SUDO)

# Arguments that refresh cached credentials without doing anything else.
# doas, pkexec and run0 have no such flag, so a harmless command is run.
_VALIDATE_ARGS: dict[SudoKind, list[str]] = {
    SudoKind.SUDO: ["-v"],
    SudoKind.DOAS: ["echo"],
    SudoKind.PKEXEC: ["echo"],
    SudoKind.RUN0: ["echo"],
    SudoKind.PLEASE: ["-w"],
    SudoKind.GSUDO: ["-d", "cmd.exe", "/c", "rem"],
    SudoKind.WIN_SUDO: ["cmd.exe", "/c", "rem"],
}

# Arguments that drop cached credentials. Mechanisms missing here keep
# no cache between invocations.
_INVALIDATE_ARGS: dict[SudoKind, list[str]] = {
    SudoKind.SUDO: ["-k"],
    SudoKind.DOAS: ["-L"],
    SudoKind.GSUDO: ["-k"],
}


def detect_order(platform: str) -> tuple[SudoKind, ...]:
    """Mechanisms to probe on ``platform``, in priority order."""
    if platform == WINDOWS:
        return _WINDOWS_ORDER
    if platform == OPENBSD:
        return _OPENBSD_ORDER
    return _UNIX_ORDER


def parse_kind(name: str, platform: str) -> SudoKind:
    """Parse a ``sudo_command`` config value.

    On Windows, "sudo" means the built-in Windows sudo.
    """
    name = name.strip().lower()
    if name == "sudo" and platform == WINDOWS:
        return SudoKind.WIN_SUDO
    try:
        return SudoKind(name)
    except ValueError:
        valid = ", ".join(k.value for k in SudoKind if k is not SudoKind.WIN_SUDO)
        raise ValueError(f"Unknown sudo_command '{name}' (expected one of: {valid})") from None


def _running_as_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _win_sudo_enabled() -> bool:
    """Windows sudo is usable only in inline or input-disabled mode.

    Effective mode = min(policy, setting); 0 = disabled, 1 = new window.
    """
    try:
        import winreg
    except ImportError:
        return False

    def _mode(key: str, on_missing: int) -> int:
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key) as handle:
                value, _ = winreg.QueryValueEx(handle, "Enabled")
                return min(int(value), 3)
        except FileNotFoundError:
            return on_missing
        except OSError as e:
            logger.warning(r"Error reading registry key HKLM\%s\Enabled: %s", key, e)
            return 3

    policy = _mode(r"SOFTWARE\Policies\Microsoft\Windows\Sudo", 3)
    setting = _mode(r"SOFTWARE\Microsoft\Windows\CurrentVersion\Sudo", 0)
    mode = min(policy, setting)
    logger.debug("Windows sudo mode: %d (policy=%d, setting=%d)", mode, policy, setting)
    return mode >= 2


@dataclass(frozen=True)
class Mechanism:
    """A usable elevation program."""

    kind: SudoKind
    path: str | None = None

    @property
    def caches_credentials(self) -> bool:
        return self.kind in _INVALIDATE_ARGS


@dataclass
class PrivilegeSession:
    """Elevation in use for this run."""

    mechanism: Mechanism
    acquired_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    validated: bool = False     # credentials refreshed up front via elevate()


class PrivilegeBroker:
    """Detects, wraps with, and finally clears an elevation mechanism.

    Args:
        override: ``sudo_command`` from the config, probed first.
        platform: Platform name (default: current platform).
        preserve_env: Environment variable names to carry across elevation.
        which: Binary lookup, ``shutil.which`` by default.
        is_root: Root check, ``os.geteuid() == 0`` by default.
    """

    def __init__(
        self,
        override: str | None = None,
        platform: str | None = None,
        preserve_env: Sequence[str] = (),
        which: Callable[[str], str | None] = shutil.which,
        is_root: Callable[[], bool] | None = None,
    ):
        self._override = override
        self._platform = platform or current_platform()
        self._preserve_env = list(preserve_env)
        self._which = which
        self._is_root = is_root or _running_as_root

        self.state = BrokerState.UNRESOLVED
        self.session: PrivilegeSession | None = None
        self.clear_count = 0
        self._mechanism: Mechanism | None = None
        self._warned_env = False

    # ── Detection ────────────────────────────────────────────────

    @property
    def mechanism(self) -> Mechanism | None:
        """The resolved mechanism (resolves on first access)."""
        self.resolve()
        return self._mechanism

    @property
    def available(self) -> bool:
        return self.mechanism is not None

    def resolve(self) -> Mechanism | None:
        """Probe for a mechanism once, then return the cached answer."""
        if self.state is not BrokerState.UNRESOLVED:
            return self._mechanism

        self._mechanism = self._detect()
        self.state = BrokerState.RESOLVED
        if self._mechanism is None:
            logger.info("No privilege escalation mechanism found")
        else:
            logger.info(
                "Using %s for privilege escalation (%s)",
                self._mechanism.kind.value,
                self._mechanism.path or "no binary",
            )
        return self._mechanism

    def _detect(self) -> Mechanism | None:
        if self._is_root():
            return Mechanism(SudoKind.NULL)

        if self._override:
            kind = parse_kind(self._override, self._platform)
            found = self._probe(kind)
            if found is not None:
                return found
            logger.warning(
                "Configured sudo_command '%s' not found, falling back to detection",
                self._override,
            )

        for kind in detect_order(self._platform):
            found = self._probe(kind)
            if found is not None:
                return found
        return None

    def _probe(self, kind: SudoKind) -> Mechanism | None:
        if kind is SudoKind.NULL:
            return Mechanism(kind)
        path = self._which(_BINARIES[kind])
        if path is None:
            logger.debug("Cannot find %s", _BINARIES[kind])
            return None
        if kind is SudoKind.WIN_SUDO and not _win_sudo_enabled():
            logger.debug("Found Windows sudo, but it is disabled or in new-window mode")
            return None
        return Mechanism(kind, path)

    # ── Wrapping ─────────────────────────────────────────────────

    def wrap(self, command: Sequence[str]) -> list[str]:
        """Return ``command`` reshaped to run elevated.

        Starts the privilege session on first use.

        Raises:
            MissingPrivilege: No elevation mechanism is available.
        """
        mechanism = self.resolve()
        if mechanism is None:
            raise MissingPrivilege()

        if self.session is None:
            self.session = PrivilegeSession(mechanism=mechanism)

        if mechanism.kind is SudoKind.NULL:
            return list(command)

        assert mechanism.path is not None
        argv = [mechanism.path]
        if mechanism.kind is SudoKind.GSUDO:
            # Run directly, not through the user's current shell
            argv.append("-d")
        argv.extend(self._env_args(mechanism.kind))
        argv.extend(command)
        return argv

    def _env_args(self, kind: SudoKind) -> list[str]:
        if not self._preserve_env:
            return []
        if kind is SudoKind.SUDO:
            return [f"--preserve-env={','.join(self._preserve_env)}"]
        if kind is SudoKind.RUN0:
            return [f"--setenv={name}" for name in self._preserve_env]
        if kind is SudoKind.PLEASE:
            return ["-a", ",".join(self._preserve_env)]
        if not self._warned_env:
            logger.warning("%s cannot preserve environment variables, ignoring --env", kind.value)
            self._warned_env = True
        return []

    # ── Credential lifecycle ─────────────────────────────────────

    def elevate(self, executor: CommandExecutor) -> StepOutcome:
        """Authenticate up front so prompts don't interrupt a step later."""
        mechanism = self.resolve()
        if mechanism is None:
            return StepOutcome.skip("Sudo", "no privilege escalation available", phase="pre")
        if mechanism.kind is SudoKind.NULL:
            return StepOutcome.success("Sudo", phase="pre")

        assert mechanism.path is not None
        outcome = executor.execute("Sudo", [mechanism.path, *_VALIDATE_ARGS[mechanism.kind]])
        outcome = outcome.model_copy(update={"phase": "pre"})
        if outcome.ok:
            self.session = PrivilegeSession(mechanism=mechanism, validated=True)
        return outcome

    def clear(self, executor: CommandExecutor | None = None) -> None:
        """Drop cached authentication and end the session.

        Called once per run after the main loop. Without a session nothing
        was ever elevated, so no command is run.
        """
        self.clear_count += 1
        session, self.session = self.session, None
        self.state = BrokerState.CLEARED

        if session is None:
            logger.debug("No privilege session to clear")
            return

        mechanism = session.mechanism
        if not mechanism.caches_credentials or executor is None:
            logger.debug("Privilege session dropped (%s)", mechanism.kind.value)
            return

        assert mechanism.path is not None
        outcome = executor.execute(
            "Sudo", [mechanism.path, *_INVALIDATE_ARGS[mechanism.kind]], quiet=True
        )
        if outcome.failed:
            logger.warning("Could not invalidate cached credentials: %s", outcome.error)
        else:
            logger.info("Cached %s credentials invalidated", mechanism.kind.value)
