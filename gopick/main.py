"""
gopick — CLI entrypoint.

Usage:
    gopick                      interactive search
    gopick search cobra
    gopick install github.com/spf13/cobra
    gopick --help
"""

from __future__ import annotations

import json
import os
import queue
import sys
from pathlib import Path

import click
import yaml

from gopick import __version__
from gopick.core.observability.logging_config import (
    FILE_ENV_VAR,
    FILE_LEVEL_ENV_VAR,
    resolve_level,
    setup_logging,
)
from gopick.ui.cli.helpers import fail, resolve_components, resolve_config


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gopick")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: ~/.config/gopick/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """gopick — search pkg.go.dev and install Go packages."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path).expanduser() if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    interactive = ctx.invoked_subcommand is None
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
        quiet_third_party=not debug,
        console=not interactive,
    )

    if interactive:
        run_interactive(ctx)


# ── Interactive session ─────────────────────────────────────────


def run_interactive(ctx: click.Context) -> None:
    """Run the full-screen picker, then hand its command to the shell."""
    from gopick.core.engine.session import SessionStateMachine
    from gopick.core.persistence.history_log import HistoryError
    from gopick.core.persistence.result_cache import CacheError
    from gopick.core.services.search_coordinator import SearchCoordinator
    from gopick.core.use_cases.bootstrap import start_cache_cleanup
    from gopick.ui.tui.app import GopickApp

    config = resolve_config(ctx)
    components = resolve_components(ctx)
    start_cache_cleanup(components.cache)

    outbox: queue.Queue = queue.Queue()
    coordinator = SearchCoordinator(
        components.cache,
        components.fetcher,
        components.resolver,
        outbox,
        debounce=config.debounce_seconds,
    )
    try:
        machine = SessionStateMachine(
            coordinator,
            components.resolver,
            components.history,
            components.cache,
            outbox,
            default_action=config.default_action,
        )
    except (CacheError, HistoryError) as e:
        coordinator.close()
        fail(f"Initialization failed: {e}")

    app = GopickApp(machine)
    app.run()

    if app.fatal_error is not None:
        fail(f"Error: {app.fatal_error}")

    state = machine.state
    if state.commands_to_print:
        emit_command(" && ".join(state.commands_to_print), auto_run=state.auto_run)


def emit_command(command: str, *, auto_run: bool) -> None:
    """Place ``command`` on the user's prompt, or print it if that fails."""
    from gopick.adapters.shell.tty import TTYInjectionError, inject_command

    try:
        inject_command(command, press_enter=auto_run)
    except TTYInjectionError as e:
        click.secho(f"⚠️  Could not inject command into terminal: {e}", fg="yellow", err=True)
        click.echo(command)


# ── One-shot commands ───────────────────────────────────────────


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--no-cache", is_flag=True, help="Always query pkg.go.dev; leave the cache untouched.")
@click.pass_context
def search(ctx: click.Context, query: tuple[str, ...], as_json: bool, no_cache: bool) -> None:
    """Search pkg.go.dev for packages."""
    from gopick.core.use_cases.search import search_packages

    components = resolve_components(ctx)
    result = search_packages(components, " ".join(query), use_cache=not no_cache)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        fail(f"Search failed: {result.error}")

    if not result.packages:
        click.secho("📭 No packages found", fg="yellow")
        return

    quiet = ctx.obj.get("quiet", False)
    if not quiet:
        source = " (cached)" if result.from_cache else ""
        click.secho(f"\n📦 Results for '{result.query}'{source}", fg="cyan", bold=True)
        if result.stale:
            click.secho("   ⚠️  Network unavailable, showing cached results", fg="yellow")
        click.echo()

    for pkg in result.packages:
        installed = " ✓" if pkg.is_installed else ""
        version = f" v{pkg.version}" if pkg.version else ""
        click.secho(f"   • {pkg.name}{version}{installed}", bold=True)
        click.echo(f"     {pkg.import_path}")
        if pkg.description and not quiet:
            click.echo(f"     {pkg.description}")
    click.echo()


@cli.command()
@click.argument("import_path")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, import_path: str, as_json: bool) -> None:
    """Show details for one package."""
    from gopick.core.use_cases.search import package_info

    result = package_info(resolve_components(ctx), import_path)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    pkg = result.package
    if result.error or pkg is None:
        fail(result.error or f"No details for {import_path}")

    click.secho(f"\n📦 {pkg.name}", fg="cyan", bold=True)
    click.echo(f"   Import path: {pkg.import_path}")
    if pkg.version:
        click.echo(f"   Version:     v{pkg.version}")
    click.echo(f"   Installed:   {'yes' if pkg.is_installed else 'no'}")
    click.echo(f"   URL:         {result.url}")
    if pkg.description:
        click.echo()
        click.echo(f"   {pkg.description}")
    click.echo()


@cli.command()
@click.argument("import_paths", nargs=-1, required=True)
@click.pass_context
def install(ctx: click.Context, import_paths: tuple[str, ...]) -> None:
    """Install packages with ``go get`` (PATH or PATH@VERSION)."""
    from gopick.core.models.history import HistoryAction
    from gopick.core.models.package import Package, normalize_version
    from gopick.core.services.install_resolver import InstallError

    components = resolve_components(ctx)
    resolver = components.resolver

    packages = []
    for raw in import_paths:
        path, _, version = raw.partition("@")
        packages.append(Package(
            name=path.rstrip("/").rsplit("/", 1)[-1],
            import_path=path,
            version=normalize_version(version),
        ))
    packages = resolver.mark_installed_packages(packages)

    try:
        for event in resolver.install_packages_events(packages):
            click.echo(f"[{event.percent:3.0f}%] {event.message}")
    except InstallError as e:
        fail(str(e))

    for pkg in packages:
        components.history.add(pkg.name, pkg.import_path, HistoryAction.INSTALLED)
    click.secho("✅ Done", fg="green", bold=True)


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Print the effective configuration."""
    data = resolve_config(ctx).model_dump(mode="json")

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    click.echo(yaml.safe_dump(data, sort_keys=False, default_flow_style=False), nl=False)


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Print the config file location."""
    from gopick.core.config.loader import default_config_path

    click.echo(str(ctx.obj.get("config_path") or default_config_path()))


# ── Register sub-command groups from gopick/ui/cli/ ─────────────

from gopick.ui.cli.cache import cache  # noqa: E402
from gopick.ui.cli.history import history  # noqa: E402

cli.add_command(cache)
cli.add_command(history)


if __name__ == "__main__":
    cli()
