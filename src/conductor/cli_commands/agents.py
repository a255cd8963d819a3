"""``conductor agents`` — create, launch and inspect agents."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import run_with_conductor, stream_events
from conductor.cli_commands._output import console, print_agents_table, print_json, print_traces_table

if TYPE_CHECKING:
    from conductor.core.agents.models import AgentInstance
    from conductor.sdk.app import Conductor


@click.group()
def agents() -> None:
    """Manage agent instances."""


@agents.command("list")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.pass_context
def list_agents(ctx: click.Context, fmt: str) -> None:
    """List all registered agents."""

    async def _list(conductor: Conductor) -> list:
        return await conductor.list_agents()

    instances = run_with_conductor(ctx, _list)
    if not instances:
        console.print("[yellow]No agents registered.[/yellow]")
        return

    if fmt == "json":
        print_json([a.model_dump(mode="json") for a in instances])
    else:
        print_agents_table(instances)


@agents.command("create")
@click.argument("name")
@click.option("--id", "agent_id", default=None, help="Explicit agent id (defaults to a generated one).")
@click.option("--display-name", default=None)
@click.option("--runtime", default=None, help="Execution backend (defaults to the configured runtime).")
@click.option("--model", default=None, help="Model override for the litellm runtime.")
@click.option("--system-prompt", default=None)
@click.option("--max-turns", type=int, default=None)
@click.option("--cwd", default=None, type=click.Path(file_okay=False), help="Working directory for the agent.")
@click.pass_context
def create_agent(
    ctx: click.Context,
    name: str,
    agent_id: str | None,
    display_name: str | None,
    runtime: str | None,
    model: str | None,
    system_prompt: str | None,
    max_turns: int | None,
    cwd: str | None,
) -> None:
    """Register a new agent named NAME."""
    from conductor.core.agents.models import AgentConfig

    async def _create(conductor: Conductor) -> AgentInstance:
        config = AgentConfig(
            runtime=runtime or conductor.settings.default_runtime,
            model=model,
            system_prompt=system_prompt,
            max_turns=max_turns,
            cwd=cwd,
        )
        return await conductor.create_agent(name, display_name=display_name, config=config, agent_id=agent_id)

    agent = run_with_conductor(ctx, _create)
    console.print(f"[green]Created agent[/green] {agent.id} ({agent.runtime})")


@agents.command("launch")
@click.argument("agent_id")
@click.argument("prompt")
@click.option("--show-logs", is_flag=True, help="Print the agent's log buffer after the run.")
@click.pass_context
def launch_agent(ctx: click.Context, agent_id: str, prompt: str, show_logs: bool) -> None:
    """Start AGENT_ID on PROMPT and stream its events."""

    async def _launch(conductor: Conductor) -> bool:
        ok = await stream_events(conductor.launch_agent(agent_id, prompt))
        if show_logs:
            for entry in conductor.agent_logs(agent_id):
                console.print(f"[dim]{entry.timestamp:%H:%M:%S} {entry.level:<5}[/dim] {entry.message}")
        return ok

    if not run_with_conductor(ctx, _launch):
        sys.exit(1)


@agents.command("prompt")
@click.argument("agent_id")
@click.argument("message")
@click.pass_context
def prompt_agent(ctx: click.Context, agent_id: str, message: str) -> None:
    """Continue AGENT_ID's existing session with MESSAGE."""

    async def _prompt(conductor: Conductor) -> bool:
        return await stream_events(conductor.prompt_agent(agent_id, message))

    if not run_with_conductor(ctx, _prompt):
        sys.exit(1)


@agents.command("stop")
@click.argument("agent_id")
@click.pass_context
def stop_agent(ctx: click.Context, agent_id: str) -> None:
    """Mark AGENT_ID terminated."""

    async def _stop(conductor: Conductor) -> bool:
        return await conductor.stop_agent(agent_id)

    if run_with_conductor(ctx, _stop):
        console.print(f"Stopped {agent_id}")
    else:
        console.print(f"[red]Error:[/red] Agent not found: {agent_id}")
        sys.exit(1)


@agents.command("logs")
@click.argument("agent_id")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def agent_logs(ctx: click.Context, agent_id: str, limit: int) -> None:
    """Show AGENT_ID's recorded runs (traces), newest first."""

    async def _traces(conductor: Conductor) -> list:
        return await conductor.agent_traces(agent_id, limit)

    traces = run_with_conductor(ctx, _traces)
    if not traces:
        console.print("[yellow]No runs recorded.[/yellow]")
        return
    print_traces_table(traces)
