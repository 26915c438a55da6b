"""
upsweep — CLI entrypoint.

Usage:
    upsweep --help
    upsweep run --dry-run
    upsweep steps
    upsweep config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from upsweep import __version__
from upsweep.core.engine.report import EXIT_FATAL
from upsweep.core.observability.logging_config import setup_from_env


def _split_names(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> tuple[str, ...]:
    """Accept ``--only a --only b`` as well as ``--only a,b``; reject unknown steps."""
    from upsweep.core.engine.catalog import default_catalog

    names = tuple(n.strip() for item in value for n in item.split(",") if n.strip())
    known = default_catalog().names()
    unknown = [n for n in names if n not in known]
    if unknown:
        raise click.BadParameter(
            f"unknown step(s) {', '.join(unknown)}. Run 'upsweep steps' for the list."
        )
    return names


@click.group()
@click.version_option(version=__version__, prog_name="upsweep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to upsweep.yml (default: $UPSWEEP_CONFIG or ~/.config/upsweep/).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """upsweep — update everything on this machine, and on your others."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_env(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--dry-run", "-n", is_flag=True, help="Print the commands instead of running them.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes for the tools.")
@click.option("--confirm", "-i", is_flag=True, help="Ask before running each command.")
@click.option("--cleanup", is_flag=True, help="Remove caches and unused packages after updating.")
@click.option("--only", multiple=True, callback=_split_names, help="Run only these steps.")
@click.option(
    "--skip", "--disable", "skip", multiple=True, callback=_split_names,
    help="Don't run these steps.",
)
@click.option(
    "--custom-commands", "custom_commands", multiple=True,
    help="Run only these entries of the 'commands' table.",
)
@click.option("--remote-host-limit", default=None, help="Regex selecting the remote hosts to run on.")
@click.option("--no-retry", is_flag=True, help="Never offer to retry a failed step.")
@click.option("--show-skipped", is_flag=True, help="List steps that were not installed.")
@click.option("--env", "env", multiple=True, metavar="NAME=VALUE", help="Set a variable for every command.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    dry_run: bool,
    assume_yes: bool,
    confirm: bool,
    cleanup: bool,
    only: tuple[str, ...],
    skip: tuple[str, ...],
    custom_commands: tuple[str, ...],
    remote_host_limit: str | None,
    no_retry: bool,
    show_skipped: bool,
    env: tuple[str, ...],
    as_json: bool,
) -> None:
    """Update everything: remotes, pre commands, steps, post commands.

    Examples:

        upsweep run

        upsweep run --dry-run --only system,flatpak

        upsweep run --yes --skip snap --remote-host-limit '^build'
    """
    from upsweep.core.use_cases.run import run_update
    from upsweep.ui.cli import prompts
    from upsweep.ui.cli.render import render_report

    verbose = ctx.obj.get("verbose", False)
    interactive = sys.stdin.isatty() and not as_json

    result = run_update(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        assume_yes=assume_yes,
        confirm=confirm,
        cleanup=cleanup,
        only=only,
        skip=skip,
        custom_commands=custom_commands,
        remote_host_limit=remote_host_limit,
        no_retry=no_retry,
        env=env,
        verbose=verbose,
        interactive=interactive,
        confirm_prompt=prompts.confirm_command,
        ask_retry=prompts.ask_retry,
        ask_quit=prompts.ask_quit,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_FATAL)

    report = result.report
    assert report is not None  # guaranteed after error check above
    render_report(report, show_skipped=show_skipped or verbose, dry_run=dry_run)
    sys.exit(report.exit_code)


@cli.command()
@click.pass_context
def steps(ctx: click.Context) -> None:
    """List the steps in run order."""
    from upsweep.core.config.loader import ConfigError, load_config
    from upsweep.core.engine.catalog import default_catalog
    from upsweep.core.models.step import current_platform
    from upsweep.ui.cli.render import render_steps

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(EXIT_FATAL)

    render_steps(default_catalog(), current_platform(), disabled=config.misc.disable)


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate upsweep.yml."""
    from upsweep.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else EXIT_FATAL)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        misc = result.config.misc
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path}")
        click.echo(f"   Disabled steps: {len(misc.disable)}")
        click.echo(f"   Remote hosts: {len(misc.remote_hosts)}")
        click.echo(
            f"   Custom commands: {len(result.config.pre_commands)} pre, "
            f"{len(result.config.commands)} main, {len(result.config.post_commands)} post"
        )
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(EXIT_FATAL)


if __name__ == "__main__":
    cli()
