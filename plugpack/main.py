"""
plugpack — CLI entrypoint.

Usage:
    plugpack --help
    plugpack add user/repo https://example.com/x.git@v1.2.0
    plugpack update [--force] [--offline]
    plugpack list
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from plugpack import __version__
from plugpack.core.observability.logging_config import (
    resolve_level,
    setup_logging,
)

_LEVEL_STYLES = {
    logging.ERROR: {"fg": "red"},
    logging.WARNING: {"fg": "yellow"},
    logging.INFO: {},
}


def _make_notifier(quiet: bool):
    """Print manager notifications to stderr, colored by level."""

    def notify(message: str, level: int) -> None:
        if quiet and level < logging.WARNING:
            return
        style = _LEVEL_STYLES.get(level, {})
        click.secho(f"(plugpack) {message}", err=True, **style)

    return notify


def _confirm_in_editor(report: str) -> str | None:
    """Open the report in $EDITOR. Saving applies, quitting without saving cancels."""
    header = (
        "# Save to apply the updates still listed under '# Updates'.\n"
        "# Delete a plugin's block to skip it. Quit without saving to cancel.\n"
    )
    edited = click.edit(header + "\n" + report, extension=".md", require_save=True)
    return edited


@click.group()
@click.version_option(version=__version__, prog_name="plugpack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to plugpack.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """plugpack — install and update git-hosted plugins."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.command()
@click.argument("specs", nargs=-1)
@click.option("--bang", is_flag=True, help="Register without marking plugins as loaded.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def add(ctx: click.Context, specs: tuple[str, ...], bang: bool, as_json: bool) -> None:
    """Install configured plugins plus SPECS (source, source@version, user/repo)."""
    from plugpack.core.use_cases.add import run_add

    result = run_add(
        specs=specs,
        bang=bang,
        config_path=ctx.obj.get("config_path"),
        notifier=None if as_json else _make_notifier(ctx.obj.get("quiet", False)),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    add_result = result.result
    assert add_result is not None  # guaranteed after error check above

    if not add_result.specs:
        click.echo("No plugins to add.")
    elif not add_result.installed and not add_result.failed:
        click.echo(f"All {len(add_result.specs)} plugin(s) already installed.")
    else:
        for name in add_result.installed:
            click.secho(f"   ✓ {name}", fg="green")
        for name, error in add_result.failed.items():
            click.secho(f"   ✗ {name}: {error.splitlines()[0]}", fg="red")

    if not add_result.ok:
        sys.exit(1)


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--force", is_flag=True, help="Apply updates without confirmation.")
@click.option("--offline", is_flag=True, help="Don't download updates from sources.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    names: tuple[str, ...],
    force: bool,
    offline: bool,
    as_json: bool,
) -> None:
    """Update NAMES (default: all known plugins)."""
    from plugpack.core.models.options import UpdateOutcome
    from plugpack.core.use_cases.update import run_update

    result = run_update(
        names=names,
        force=force,
        offline=offline,
        confirm=None if as_json else _confirm_in_editor,
        config_path=ctx.obj.get("config_path"),
        notifier=None if as_json else _make_notifier(ctx.obj.get("quiet", False)),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    update_result = result.result
    assert update_result is not None  # guaranteed after error check above

    outcome = update_result.outcome
    if outcome is UpdateOutcome.NOTHING_TO_UPDATE:
        click.echo("Nothing to update.")
    elif outcome is UpdateOutcome.CANCELLED:
        click.secho("Update cancelled.", fg="yellow")
    elif outcome is UpdateOutcome.APPLIED:
        if update_result.applied:
            click.secho(f"✅ Updated {len(update_result.applied)} plugin(s)", fg="green")
            for name in update_result.applied:
                click.echo(f"   • {name}")
        else:
            click.echo("All plugins are up to date.")
    else:
        click.echo(update_result.report)

    if not update_result.ok:
        sys.exit(1)


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show known plugins and their refs."""
    from plugpack.core.use_cases.listing import list_plugins

    result = list_plugins(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.error is None else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"📦 {result.root}", fg="cyan", bold=True)
    if not result.plugins:
        click.echo("   No plugins.")
        return

    verbose = ctx.obj.get("verbose", False)
    for plugin in result.plugins:
        marker = "✓" if plugin.installed else "✗"
        color = "green" if plugin.installed else "red"
        added = "" if plugin.was_added else " (not configured)"
        click.secho(f"   {marker} {plugin.spec.name}", fg=color, nl=False)
        click.echo(f"  [{plugin.spec.version}]{added}")
        if plugin.spec.source:
            click.echo(f"      {plugin.spec.source}")
        if verbose and plugin.refs:
            click.echo(f"      refs: {', '.join(plugin.refs)}")


@cli.command("log")
@click.option("-n", "count", default=1, type=click.IntRange(min=1), help="Number of updates.")
@click.pass_context
def log_cmd(ctx: click.Context, count: int) -> None:
    """Show the most recent update log entries."""
    from plugpack.core.use_cases.listing import show_log

    result = show_log(n=count, config_path=ctx.obj.get("config_path"))

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.blocks:
        click.echo(f"No updates logged in {result.path}")
        return

    click.echo("\n\n".join(block.render() for block in result.blocks))


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Show health of git, the package root and the update log."""
    from plugpack.core.config.loader import ConfigError, load_config
    from plugpack.core.observability.health import check_system_health
    from plugpack.core.persistence.update_log import UpdateLog

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    system_health = check_system_health(config.root, UpdateLog(config.log))

    if as_json:
        click.echo(json.dumps(system_health.to_dict(), indent=2))
        sys.exit(0 if system_health.status != "unhealthy" else 1)

    status_icons = {
        "healthy": ("💚", "green"),
        "degraded": ("🟡", "yellow"),
        "unhealthy": ("🔴", "red"),
        "unknown": ("❔", "white"),
    }
    icon, color = status_icons.get(system_health.status, ("❔", "white"))

    click.echo()
    click.secho(f"{icon} System Health: {system_health.status.upper()}", fg=color, bold=True)
    click.echo(f"   {system_health.timestamp}")
    click.echo()

    for component in system_health.components:
        c_icon, c_color = status_icons.get(component.status, ("❔", "white"))
        click.secho(f"   {c_icon} {component.name}", fg=c_color, bold=True)
        click.echo(f"      {component.message}")

        if ctx.obj.get("verbose") and component.details:
            for key, val in component.details.items():
                click.echo(f"      {key}: {val}")

    click.echo()

    if system_health.status == "unhealthy":
        sys.exit(1)


if __name__ == "__main__":
    cli()
