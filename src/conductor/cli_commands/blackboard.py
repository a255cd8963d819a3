"""``conductor blackboard`` — read and write shared state."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import run_with_conductor
from conductor.cli_commands._output import console, print_blackboard_table, print_json
from conductor.core.blackboard.models import GLOBAL_SCOPE

if TYPE_CHECKING:
    from conductor.core.blackboard.models import BlackboardEntry
    from conductor.sdk.app import Conductor

_team_option = click.option("--team", "team_id", default=GLOBAL_SCOPE, show_default=True, help="Blackboard scope.")


@click.group()
def blackboard() -> None:
    """Inspect the shared blackboard."""


@blackboard.command("show")
@click.argument("key", required=False)
@_team_option
@click.pass_context
def show(ctx: click.Context, key: str | None, team_id: str) -> None:
    """Show every entry in a scope, or just KEY."""

    async def _read(conductor: Conductor) -> list[BlackboardEntry]:
        if key is None:
            return await conductor.blackboard.read_all(team_id)
        entry = await conductor.blackboard.read(key, team_id)
        return [entry] if entry is not None else []

    entries = run_with_conductor(ctx, _read)
    if not entries:
        if key is not None:
            console.print(f"[red]Error:[/red] Key not found: {key}")
            sys.exit(1)
        console.print("[yellow]Blackboard is empty.[/yellow]")
        return

    if key is not None:
        print_json(entries[0].model_dump(mode="json"))
    else:
        print_blackboard_table(entries)


@blackboard.command("write")
@click.argument("key")
@click.argument("value")
@_team_option
@click.option("--by", "updated_by", default="cli", show_default=True)
@click.pass_context
def write(ctx: click.Context, key: str, value: str, team_id: str, updated_by: str) -> None:
    """Set KEY to VALUE (parsed as JSON when possible)."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    async def _write(conductor: Conductor) -> BlackboardEntry:
        return await conductor.blackboard.write(key, parsed, updated_by, team_id)

    entry = run_with_conductor(ctx, _write)
    console.print(f"{entry.key} = {json.dumps(entry.value)} (v{entry.version})")


@blackboard.command("clear")
@_team_option
@click.pass_context
def clear(ctx: click.Context, team_id: str) -> None:
    """Delete every entry in a scope."""

    async def _clear(conductor: Conductor) -> int:
        return await conductor.blackboard.clear(team_id)

    removed = run_with_conductor(ctx, _clear)
    console.print(f"Removed {removed} entries from {team_id}")
