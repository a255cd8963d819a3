"""Helpers for running SDK coroutines from click commands."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TYPE_CHECKING, Any, TypeVar

import click

from conductor.cli_commands._output import console, print_event
from conductor.errors import ConductorError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from conductor.core.agents.events import AgentEvent
    from conductor.sdk.app import Conductor
    from conductor.sdk.models import ConductorSettings

T = TypeVar("T")


def get_settings(ctx: click.Context) -> ConductorSettings:
    from conductor.sdk.loader import load_settings

    obj = ctx.find_root().obj or {}
    settings = load_settings(obj.get("config_path"))
    if obj.get("db"):
        settings.db_path = obj["db"]
    return settings


def run_with_conductor(ctx: click.Context, func: Callable[[Conductor], Awaitable[T]]) -> T:
    """Open a :class:`Conductor`, await ``func(conductor)``, and close it.

    Coordination errors are reported and exit with status 1.
    """
    from conductor.sdk.app import Conductor

    async def _run() -> T:
        async with Conductor(get_settings(ctx)) as conductor:
            return await func(conductor)

    try:
        return asyncio.run(_run())
    except ConductorError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


async def stream_events(events: AsyncIterator[AgentEvent]) -> bool:
    """Print a stream until ``done``; return ``False`` if it reported an error."""
    ok = True
    async for event in events:
        print_event(event)
        if event.type == "error":
            ok = False
    return ok


def parse_json_option(value: str | None, name: str) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint=name) from exc
