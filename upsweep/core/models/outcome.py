"""
StepOutcome — the result of one unit of work.

Every unit the runner executes (a catalog step, a remote host, a custom
command) produces exactly one outcome. Units never raise past the
runner: failures are captured here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


Phase = Literal["remote", "pre", "main", "post"]


class StepOutcome(BaseModel):
    """Tagged result of a step: ok, skipped (with reason) or failed (with error)."""

    name: str                       # display name in the report
    status: Literal["ok", "skipped", "failed"] = "ok"
    phase: Phase = "main"
    step: str = ""                  # catalog step name, if any

    reason: str = ""                # why a step was skipped
    error: str | None = None        # why a step failed

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the unit succeeded."""
        return self.status == "ok"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def failed(self) -> bool:
        """Whether the unit failed."""
        return self.status == "failed"

    @classmethod
    def success(cls, name: str, **kwargs: Any) -> StepOutcome:
        """Create a success outcome."""
        return cls(name=name, status="ok", **kwargs)

    @classmethod
    def failure(cls, name: str, error: str, **kwargs: Any) -> StepOutcome:
        """Create a failure outcome."""
        return cls(name=name, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, name: str, reason: str, **kwargs: Any) -> StepOutcome:
        """Create a skip outcome."""
        return cls(name=name, status="skipped", reason=reason, **kwargs)

    def describe(self) -> str:
        """One-line human description of the outcome."""
        if self.failed:
            return self.error or "failed"
        if self.skipped:
            return self.reason
        return "ok"
