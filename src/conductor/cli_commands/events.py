"""``conductor events`` — inspect and publish bus events."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import parse_json_option, run_with_conductor
from conductor.cli_commands._output import console, print_events_table

if TYPE_CHECKING:
    from conductor.core.events.models import BusEvent
    from conductor.sdk.app import Conductor


@click.group()
def events() -> None:
    """Inspect and publish coordination events."""


@events.command("list")
@click.option("--type", "event_type", default=None, help="Only events of this type.")
@click.option("--source", default=None, help="Only events from this source.")
@click.option("--all", "include_consumed", is_flag=True, help="Include consumed events.")
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def list_events(
    ctx: click.Context,
    event_type: str | None,
    source: str | None,
    include_consumed: bool,
    limit: int,
) -> None:
    """List events, newest first."""

    async def _query(conductor: Conductor) -> list[BusEvent]:
        return await conductor.bus.query(
            event_type, source, unconsumed_only=not include_consumed, limit=limit
        )

    found = run_with_conductor(ctx, _query)
    if not found:
        console.print("[yellow]No events.[/yellow]")
        return
    print_events_table(found)


@events.command("publish")
@click.argument("event_type")
@click.option("--source", default="cli", show_default=True)
@click.option("--payload", default=None, help="Event payload as a JSON object.")
@click.pass_context
def publish_event(ctx: click.Context, event_type: str, source: str, payload: str | None) -> None:
    """Publish an event of EVENT_TYPE."""
    data = parse_json_option(payload, "--payload") or {}
    if not isinstance(data, dict):
        raise click.BadParameter("payload must be a JSON object", param_hint="--payload")

    async def _publish(conductor: Conductor) -> BusEvent:
        return await conductor.bus.publish(event_type, source, data)

    event = run_with_conductor(ctx, _publish)
    console.print(f"Published {event.id}")
