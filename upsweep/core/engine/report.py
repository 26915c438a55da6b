"""
Run report — the ordered outcomes of one run.

Built incrementally by the runner, finalized once, then only read.
The exit code is derived from it alone.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from upsweep.core.models.outcome import StepOutcome

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


@dataclass
class Report:
    """Outcomes of a run, in the order they were produced."""

    outcomes: list[StepOutcome] = field(default_factory=list)
    quit_early: bool = False
    started: float = field(default_factory=time.monotonic)
    duration_s: float | None = None

    def add(self, outcome: StepOutcome) -> None:
        if self.finalized:
            raise RuntimeError("Report is finalized")
        self.outcomes.append(outcome)

    def finalize(self) -> Report:
        """Freeze the report and record the wall-clock duration."""
        if not self.finalized:
            self.duration_s = time.monotonic() - self.started
        return self

    @property
    def finalized(self) -> bool:
        return self.duration_s is not None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.all_ok else EXIT_FAILURES

    def names(self) -> list[str]:
        return [o.name for o in self.outcomes]

    def get(self, name: str) -> StepOutcome | None:
        """The first outcome recorded under ``name``."""
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "status": "ok" if self.all_ok else "failed",
            "exit_code": self.exit_code,
            "quit_early": self.quit_early,
            "duration_s": round(self.duration_s or 0.0, 3),
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
