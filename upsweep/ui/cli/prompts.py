"""
Interactive prompts used by ``upsweep run`` when stdin is a terminal.

Aborting a prompt (Ctrl-D, Ctrl-C) is answered as "quit": the run stops
taking new steps but still clears privileges, runs post commands and
prints the summary.
"""

from __future__ import annotations

import click

from upsweep.core.context import RetryChoice
from upsweep.core.errors import QuitRequested

RETRY_PROMPT = "Retry? (y)es/(N)o/(q)uit"


def confirm_command(prompt: str) -> bool:
    try:
        return click.confirm(prompt, default=True)
    except click.Abort:
        raise QuitRequested() from None


def ask_retry(step_name: str) -> RetryChoice:
    """Ask what to do after ``step_name`` failed. Enter means "no"."""
    click.secho(f"\n✗ {step_name} failed", fg="red", bold=True)
    try:
        answer = click.prompt(
            RETRY_PROMPT,
            type=click.Choice([c.value for c in RetryChoice], case_sensitive=False),
            default=RetryChoice.NO.value,
            show_choices=False,
            show_default=False,
        )
    except click.Abort:
        return RetryChoice.QUIT
    return RetryChoice(answer.lower())


def ask_quit() -> bool:
    try:
        return click.confirm("\nInterrupted. Skip the remaining steps?", default=True)
    except click.Abort:
        return True
