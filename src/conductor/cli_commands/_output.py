"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

from conductor.core.agents.events import TextBlock, ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:
    from conductor.core.agents.events import AgentEvent
    from conductor.core.agents.models import AgentInstance
    from conductor.core.blackboard.models import BlackboardEntry
    from conductor.core.events.models import BusEvent
    from conductor.core.logs.models import SystemLog
    from conductor.core.teams.models import Team, TeamStatus
    from conductor.core.traces.models import AgentTrace
    from conductor.core.workflows.models import Workflow, WorkflowRun
    from conductor.protocols.models import ToolDef

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {
    "idle": "green",
    "running": "yellow",
    "paused": "blue",
    "error": "red",
    "terminated": "dim",
    "completed": "green",
    "skipped": "dim",
    "pending": "dim",
    "active": "yellow",
    "inactive": "dim",
    "warn": "yellow",
}


def _styled(status: str) -> str:
    style = _STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def print_event(event: AgentEvent) -> None:
    """Render one agent stream event."""
    if event.type == "status":
        console.print(f"[dim]{event.status}[/dim]")
    elif event.type == "error":
        console.print(f"[red]Error:[/red] {event.error}")
    elif event.type == "done":
        usage = event.usage
        summary = f" ({usage.input_tokens} in / {usage.output_tokens} out)" if usage else ""
        console.print(f"[green]Done[/green]{summary}")
    elif event.message is not None:
        for block in event.message.content:
            if isinstance(block, TextBlock):
                console.print(block.text, markup=False)
            elif isinstance(block, ToolUseBlock):
                console.print(f"[cyan]→ {block.name}[/cyan] {_truncate(json.dumps(block.input))}")
            elif isinstance(block, ToolResultBlock):
                style = "red" if block.is_error else "dim"
                console.print(f"[{style}]← {_truncate(block.content)}[/{style}]")


def print_agents_table(agents: list[AgentInstance]) -> None:
    table = Table(title="Agents")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Runtime")
    table.add_column("Status")
    table.add_column("Session")
    table.add_column("Last Activity")

    for agent in agents:
        table.add_row(
            agent.id,
            agent.display_name,
            agent.runtime,
            _styled(agent.status.value),
            agent.session_id or "-",
            agent.last_activity.strftime("%Y-%m-%d %H:%M:%S") if agent.last_activity else "-",
        )

    console.print(table)


def print_traces_table(traces: list[AgentTrace]) -> None:
    table = Table(title="Traces")
    table.add_column("Trace", style="cyan")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Tokens", justify="right")
    table.add_column("Prompt")

    for trace in traces:
        table.add_row(
            trace.trace_id,
            trace.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            _styled(trace.status),
            str(trace.total_tokens or "-"),
            _truncate(trace.prompt_preview or "", 60),
        )

    console.print(table)


def print_workflows_table(workflows: list[Workflow]) -> None:
    table = Table(title="Workflows")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Trigger")
    table.add_column("Steps", justify="right")
    table.add_column("Status")
    table.add_column("Last Run")

    for wf in workflows:
        table.add_row(
            wf.id,
            wf.name,
            wf.trigger.type,
            str(len(wf.steps)),
            _styled(wf.status),
            _styled(wf.last_run_status) if wf.last_run_status else "-",
        )

    console.print(table)


def print_run(run: WorkflowRun) -> None:
    """Pretty-print a workflow run with its step results."""
    console.print(f"\n[bold]Run {run.id}[/bold]  {_styled(run.status)}")
    if run.error:
        console.print(f"  [red]{run.error}[/red]")

    table = Table()
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Output / Error")
    for step_id, result in run.step_results.items():
        detail = result.error if result.error else (result.output or "")
        table.add_row(step_id, _styled(result.status), _truncate(detail))
    console.print(table)

    if run.blackboard:
        console.print("\n[bold]Blackboard:[/bold]")
        for key, val in run.blackboard.items():
            console.print(f"  {key}: {_truncate(str(val))}")


def print_runs_table(runs: list[WorkflowRun]) -> None:
    table = Table(title="Runs")
    table.add_column("Run", style="cyan")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Error")

    for run in runs:
        table.add_row(
            run.id,
            run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            _styled(run.status),
            _truncate(run.error or ""),
        )

    console.print(table)


def print_teams_table(teams: list[Team]) -> None:
    table = Table(title="Teams")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Supervisor")
    table.add_column("Members", justify="right")
    table.add_column("Status")

    for team in teams:
        table.add_row(team.id, team.name, team.supervisor_id or "-", str(len(team.members)), _styled(team.status))

    console.print(table)


def print_team_status(status: TeamStatus) -> None:
    team = status.team
    console.print(f"\n[bold]{team.name}[/bold] ({team.id})  {_styled(team.status)}")

    members = Table(title="Members")
    members.add_column("Agent", style="cyan")
    members.add_column("Name")
    members.add_column("Role")
    members.add_column("Status")
    for member in status.member_statuses:
        members.add_row(member.agent_id, member.display_name, member.role, _styled(member.status))
    console.print(members)

    if status.recent_events:
        print_events_table(status.recent_events)
    if status.blackboard:
        print_blackboard_table(status.blackboard)


def print_events_table(events: list[BusEvent]) -> None:
    table = Table(title="Events")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Source")
    table.add_column("Time")
    table.add_column("Consumed")
    table.add_column("Payload")

    for event in events:
        table.add_row(
            event.id,
            event.type,
            event.source,
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            "yes" if event.consumed else "no",
            _truncate(json.dumps(event.payload, default=str), 60),
        )

    console.print(table)


def print_blackboard_table(entries: list[BlackboardEntry]) -> None:
    table = Table(title="Blackboard")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Version", justify="right")
    table.add_column("Updated By")

    for entry in entries:
        table.add_row(entry.key, _truncate(json.dumps(entry.value, default=str)), str(entry.version), entry.updated_by)

    console.print(table)


def print_logs_table(entries: list[SystemLog]) -> None:
    table = Table(title="Logs")
    table.add_column("Time")
    table.add_column("Level")
    table.add_column("Source", style="cyan")
    table.add_column("Message")

    for entry in entries:
        source = f"{entry.source}:{entry.source_id}" if entry.source_id else entry.source
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            _styled(entry.level),
            source,
            _truncate(entry.message, 100),
        )

    console.print(table)


def print_tools_table(tools: list[ToolDef]) -> None:
    """Pretty-print tool definitions as a table."""
    table = Table(title="Team Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")

    for tool in tools:
        props = tool.input_schema.get("properties", {})
        table.add_row(tool.name, _truncate(tool.description), ", ".join(props) or "-")

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
