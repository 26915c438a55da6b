"""
Terminal rendering for run reports and the step list.
"""

from __future__ import annotations

import click

from upsweep.core.engine.catalog import REMOTES, Catalog
from upsweep.core.engine.report import Report
from upsweep.core.models.outcome import StepOutcome

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "failed": ("✗", "red"),
    "skipped": ("⊘", "yellow"),
}


def is_hidden(outcome: StepOutcome, show_skipped: bool) -> bool:
    """Quiet skips (tool not installed, wrong platform) are hidden by default."""
    return outcome.skipped and outcome.metadata.get("quiet", False) and not show_skipped


def render_outcome(outcome: StepOutcome) -> None:
    marker, color = _STATUS_STYLE[outcome.status]
    click.secho(f"   {marker} {outcome.name}", fg=color, nl=False)
    if outcome.ok:
        timing = f" ({outcome.duration_ms}ms)" if outcome.duration_ms else ""
        click.echo(timing)
    else:
        click.echo(f": {outcome.describe()}")


def render_report(report: Report, show_skipped: bool = False, dry_run: bool = False) -> None:
    """Print the summary block at the end of a run."""
    mode_label = "[dry-run] " if dry_run else ""
    click.echo()
    click.secho(f"── {mode_label}Summary " + "─" * 48, fg="cyan", bold=True)

    hidden = 0
    for outcome in report.outcomes:
        if is_hidden(outcome, show_skipped):
            hidden += 1
            continue
        render_outcome(outcome)

    if hidden:
        click.secho(f"   ({hidden} step(s) not installed or not applicable)", dim=True)

    click.echo()
    color = "green" if report.all_ok else "red"
    click.secho(
        f"   Result: {report.succeeded}/{report.total} succeeded, "
        f"{report.failed} failed, {report.skipped} skipped "
        f"in {report.duration_s or 0.0:.1f}s",
        fg=color,
        bold=True,
    )
    if report.quit_early:
        click.secho("   Run was stopped early.", fg="yellow")
    click.echo()


def render_steps(catalog: Catalog, platform: str, disabled: list[str] | None = None) -> None:
    """List the catalog in run order with applicability on ``platform``."""
    disabled = disabled or []
    click.secho(f"\n📋 Steps ({platform})", fg="cyan", bold=True)
    click.echo(f"   • {REMOTES:<16} Remote hosts")
    for step in catalog.ordered():
        if step.name in disabled:
            click.secho(f"   ⊘ {step.name:<16} {step.title} (disabled)", fg="yellow")
        elif step.applies_to(platform):
            click.echo(f"   • {step.name:<16} {step.title}")
        else:
            click.secho(f"   – {step.name:<16} {step.title} (not on this platform)", dim=True)
    click.echo()
