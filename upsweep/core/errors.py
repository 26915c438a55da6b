"""
Error taxonomy for a run.

Only ``ConfigError`` is fatal. Everything else is raised inside a single
unit of work (a step, a remote host, a custom command) and converted to
that unit's outcome by the runner.
"""

from __future__ import annotations


class UpsweepError(Exception):
    """Base class for all upsweep errors."""


class ConfigError(UpsweepError):
    """Raised when the configuration is unreadable or invalid.

    This aborts the process before any step runs.
    """


class SkipStep(UpsweepError):
    """Raised by a step that has nothing to do (tool absent, wrong setup)."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ToolMissing(SkipStep):
    """The binary a step drives is not installed."""


class MissingPrivilege(SkipStep):
    """A command needs elevation but no mechanism was found."""

    def __init__(self, reason: str = "no privilege escalation available"):
        super().__init__(reason)


class QuitRequested(UpsweepError):
    """The user asked to stop the run between units."""
