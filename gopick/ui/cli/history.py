"""
CLI commands for the package history log.
"""

from __future__ import annotations

import json

import click

from gopick.core.models.history import HistoryAction, HistoryEntry
from gopick.core.persistence.history_log import HistoryError
from gopick.ui.cli.helpers import fail, resolve_components


@click.group()
def history() -> None:
    """History — list, clear."""


@history.command("list")
@click.option("--recent", "-n", type=int, default=None, help="Show only the N most recent entries.")
@click.option("--search", "-s", "text", default=None, help="Filter by package name or import path.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history_list(ctx: click.Context, recent: int | None, text: str | None, as_json: bool) -> None:
    """Show viewed and installed packages, oldest first."""
    log = resolve_components(ctx).history
    try:
        if text is not None:
            entries = log.search(text)
            if recent is not None:
                entries = entries[-recent:] if recent > 0 else []
        elif recent is not None:
            entries = log.get_recent(recent)
        else:
            entries = log.get_all()
    except HistoryError as e:
        fail(str(e))

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho("📭 No history", fg="yellow")
        return

    for entry in entries:
        click.echo(_format_entry(entry))


def _format_entry(entry: HistoryEntry) -> str:
    icon = "📥" if entry.action == HistoryAction.INSTALLED else "👁 "
    when = entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
    return f"{when}  {icon} {entry.package:<20} {entry.import_path}"


@history.command("clear")
@click.pass_context
def history_clear(ctx: click.Context) -> None:
    """Remove every history entry."""
    try:
        resolve_components(ctx).history.clear()
    except HistoryError as e:
        fail(str(e))
    click.secho("✅ History cleared", fg="green")
