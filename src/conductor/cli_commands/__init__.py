"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from conductor.cli_commands.agents import agents
    from conductor.cli_commands.blackboard import blackboard
    from conductor.cli_commands.events import events
    from conductor.cli_commands.logs import logs
    from conductor.cli_commands.teams import teams
    from conductor.cli_commands.tools import tools
    from conductor.cli_commands.workflows import workflows

    cli.add_command(agents)
    cli.add_command(workflows)
    cli.add_command(teams)
    cli.add_command(events)
    cli.add_command(blackboard)
    cli.add_command(logs)
    cli.add_command(tools)
