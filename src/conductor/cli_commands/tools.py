"""``conductor tools`` — inspect, call and serve the team tool set."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any

import click

from conductor.cli_commands._app import parse_json_option, run_with_conductor
from conductor.cli_commands._output import console, print_json, print_tools_table

if TYPE_CHECKING:
    from conductor.sdk.app import Conductor


@click.group()
def tools() -> None:
    """Inspect and serve the team coordination tools."""


@tools.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the MCP-style tool definitions.")
def list_tools(as_json: bool) -> None:
    """List the tools exposed to team agents."""
    from conductor.protocols.server import TOOLS

    if as_json:
        print_json([t.model_dump(by_alias=True) for t in TOOLS])
    else:
        print_tools_table(TOOLS)


@tools.command("call")
@click.argument("agent_id")
@click.argument("name")
@click.option("--args", "args_json", default=None, help="Tool arguments as a JSON object.")
@click.pass_context
def call_tool(ctx: click.Context, agent_id: str, name: str, args_json: str | None) -> None:
    """Invoke tool NAME acting as AGENT_ID and print its result."""
    from conductor.protocols.errors import ProtocolError

    arguments = parse_json_option(args_json, "--args") or {}

    async def _call(conductor: Conductor) -> Any:
        try:
            return await conductor.tools.call_tool(agent_id, name, arguments)
        except ProtocolError as exc:
            console.print(f"[red]Tool error:[/red] {exc}")
            return None

    result = run_with_conductor(ctx, _call)
    if result is None:
        sys.exit(1)
    console.print_json(json.dumps(result, default=str))


@tools.command("serve")
@click.option("--agent-id", required=True, help="Agent the tool calls act on behalf of.")
@click.pass_context
def serve(ctx: click.Context, agent_id: str) -> None:
    """Serve the team tools as newline-delimited JSON-RPC over stdio."""
    from conductor.protocols.stdio import serve_stdio

    async def _serve(conductor: Conductor) -> int:
        return await serve_stdio(conductor.tools, agent_id)

    run_with_conductor(ctx, _serve)
