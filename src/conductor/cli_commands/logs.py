"""``conductor logs`` — read the persisted system log."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import run_with_conductor
from conductor.cli_commands._output import console, print_json, print_logs_table

if TYPE_CHECKING:
    from conductor.core.agents.logbuffer import LogLevel
    from conductor.core.logs.models import LogSource, SystemLog
    from conductor.sdk.app import Conductor


@click.group()
def logs() -> None:
    """Inspect workflow and team activity logs."""


@logs.command("list")
@click.option(
    "--source",
    type=click.Choice(["workflow", "team", "agent", "system"]),
    default=None,
    help="Only entries from this kind of source.",
)
@click.option("--source-id", default=None, help="Only entries for this workflow or team id.")
@click.option("--level", type=click.Choice(["debug", "info", "warn", "error"]), default=None)
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table", help="Output format.")
@click.pass_context
def list_logs(
    ctx: click.Context,
    source: LogSource | None,
    source_id: str | None,
    level: LogLevel | None,
    limit: int,
    fmt: str,
) -> None:
    """List log entries, newest first."""

    async def _query(conductor: Conductor) -> list[SystemLog]:
        return await conductor.query_logs(source=source, source_id=source_id, level=level, limit=limit)

    entries = run_with_conductor(ctx, _query)
    if not entries:
        console.print("[yellow]No log entries.[/yellow]")
        return
    if fmt == "json":
        print_json([e.model_dump(mode="json") for e in entries])
    else:
        print_logs_table(entries)
