"""
Tests for the core models — outcomes, the report and the run mode.
"""

import itertools

import pytest

from upsweep.core.context import RunMode
from upsweep.core.engine.report import EXIT_FAILURES, EXIT_OK, Report
from upsweep.core.models.outcome import StepOutcome


class TestStepOutcome:
    def test_success(self):
        outcome = StepOutcome.success("Apt")
        assert outcome.ok
        assert not outcome.failed
        assert outcome.describe() == "ok"
        assert outcome.phase == "main"

    def test_failure(self):
        outcome = StepOutcome.failure("Apt", error="boom", duration_ms=12)
        assert outcome.failed
        assert outcome.status == "failed"
        assert outcome.describe() == "boom"
        assert outcome.duration_ms == 12

    def test_skip(self):
        outcome = StepOutcome.skip("Apt", "apt-get is not installed")
        assert outcome.skipped
        assert outcome.describe() == "apt-get is not installed"

    def test_started_at_set(self):
        assert StepOutcome.success("Apt").started_at

    def test_serializes(self):
        data = StepOutcome.skip("Apt", "nope", phase="pre").model_dump(mode="json")
        assert data["status"] == "skipped"
        assert data["phase"] == "pre"
        assert data["reason"] == "nope"


def _outcome(status: str) -> StepOutcome:
    if status == "ok":
        return StepOutcome.success(status)
    if status == "failed":
        return StepOutcome.failure(status, error="x")
    return StepOutcome.skip(status, "x")


class TestReport:
    @pytest.mark.parametrize(
        "statuses",
        [list(c) for n in range(4) for c in itertools.product(["ok", "skipped", "failed"], repeat=n)],
    )
    def test_exit_code_law(self, statuses):
        report = Report()
        for status in statuses:
            report.add(_outcome(status))
        expected = EXIT_FAILURES if "failed" in statuses else EXIT_OK
        assert report.exit_code == expected

    def test_counts(self):
        report = Report()
        for status in ("ok", "ok", "skipped", "failed"):
            report.add(_outcome(status))
        assert (report.total, report.succeeded, report.skipped, report.failed) == (4, 2, 1, 1)
        assert not report.all_ok

    def test_finalize_once(self):
        report = Report()
        assert not report.finalized
        report.finalize()
        duration = report.duration_s
        assert report.finalized
        report.finalize()
        assert report.duration_s == duration

    def test_add_after_finalize(self):
        report = Report().finalize()
        with pytest.raises(RuntimeError):
            report.add(_outcome("ok"))

    def test_to_dict(self):
        report = Report()
        report.add(_outcome("ok"))
        report.add(_outcome("failed"))
        report.quit_early = True
        data = report.finalize().to_dict()
        assert data["status"] == "failed"
        assert data["exit_code"] == 1
        assert data["quit_early"] is True
        assert [o["name"] for o in data["outcomes"]] == ["ok", "failed"]


class TestRunMode:
    @pytest.mark.parametrize(
        ("dry_run", "confirm", "assume_yes", "expected"),
        [
            (False, False, False, RunMode.WET),
            (True, False, False, RunMode.DRY),
            (True, True, False, RunMode.DRY),
            (False, True, False, RunMode.DAMP),
            (False, True, True, RunMode.WET),
            (False, False, True, RunMode.WET),
        ],
    )
    def test_resolve(self, dry_run, confirm, assume_yes, expected):
        assert RunMode.resolve(dry_run, confirm=confirm, assume_yes=assume_yes) is expected
