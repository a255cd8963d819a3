"""``conductor teams`` — form teams and drive their supervisors."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import run_with_conductor, stream_events
from conductor.cli_commands._output import console, print_team_status, print_teams_table

if TYPE_CHECKING:
    from conductor.core.teams.models import Team, TeamMember, TeamStatus
    from conductor.sdk.app import Conductor


def parse_member(value: str) -> TeamMember:
    """Parse ``agent_id[:role[:cap1,cap2]]`` into a :class:`TeamMember`."""
    from conductor.core.teams.models import TeamMember

    agent_id, _, rest = value.partition(":")
    role, _, caps = rest.partition(":")
    if not agent_id:
        raise click.BadParameter(f"missing agent id in {value!r}", param_hint="--member")
    return TeamMember(
        agent_id=agent_id,
        role=role or "member",
        capabilities=[c.strip() for c in caps.split(",") if c.strip()],
    )


@click.group()
def teams() -> None:
    """Manage agent teams."""


@teams.command("create")
@click.argument("name")
@click.option(
    "--member",
    "members",
    multiple=True,
    help="Team member as agent_id[:role[:cap1,cap2]]. Repeatable.",
)
@click.option("--supervisor", "supervisor_id", default=None, help="Supervisor agent id.")
@click.option("--description", default="")
@click.pass_context
def create_team(
    ctx: click.Context,
    name: str,
    members: tuple[str, ...],
    supervisor_id: str | None,
    description: str,
) -> None:
    """Create a team named NAME."""
    parsed = [parse_member(m) for m in members]

    async def _create(conductor: Conductor) -> Team:
        return await conductor.create_team(name, parsed, supervisor_id=supervisor_id, description=description)

    team = run_with_conductor(ctx, _create)
    console.print(f"[green]Created team[/green] {team.id} ({len(team.members)} members)")


@teams.command("list")
@click.pass_context
def list_teams(ctx: click.Context) -> None:
    """List all teams."""

    async def _list(conductor: Conductor) -> list[Team]:
        return await conductor.teams.list_all()

    items = run_with_conductor(ctx, _list)
    if not items:
        console.print("[yellow]No teams.[/yellow]")
        return
    print_teams_table(items)


@teams.command("start")
@click.argument("team_id")
@click.argument("task")
@click.pass_context
def start_team(ctx: click.Context, team_id: str, task: str) -> None:
    """Hand TASK to TEAM_ID's supervisor and stream its events."""

    async def _start(conductor: Conductor) -> bool:
        return await stream_events(conductor.start_team(team_id, task))

    if not run_with_conductor(ctx, _start):
        sys.exit(1)


@teams.command("message")
@click.argument("team_id")
@click.argument("agent_id")
@click.argument("message")
@click.pass_context
def message_member(ctx: click.Context, team_id: str, agent_id: str, message: str) -> None:
    """Send MESSAGE to AGENT_ID within TEAM_ID."""

    async def _message(conductor: Conductor) -> bool:
        return await stream_events(conductor.message_team_member(team_id, agent_id, message))

    if not run_with_conductor(ctx, _message):
        sys.exit(1)


@teams.command("status")
@click.argument("team_id")
@click.pass_context
def team_status(ctx: click.Context, team_id: str) -> None:
    """Show members, recent events and blackboard for TEAM_ID."""

    async def _status(conductor: Conductor) -> TeamStatus:
        return await conductor.get_team_status(team_id)

    print_team_status(run_with_conductor(ctx, _status))
