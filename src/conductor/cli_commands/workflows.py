"""``conductor workflows`` — register, run and inspect workflows."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from conductor.cli_commands._app import parse_json_option, run_with_conductor
from conductor.cli_commands._output import (
    console,
    print_json,
    print_run,
    print_runs_table,
    print_workflows_table,
)

if TYPE_CHECKING:
    from conductor.core.workflows.models import Workflow, WorkflowRun
    from conductor.sdk.app import Conductor


@click.group()
def workflows() -> None:
    """Manage and run workflows."""


@workflows.command("create")
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def create_workflow(ctx: click.Context, workflow_file: Path) -> None:
    """Register the workflow defined in WORKFLOW_FILE (YAML)."""
    from conductor.sdk.loader import WorkflowLoader

    async def _create(conductor: Conductor) -> Workflow:
        return await conductor.create_workflow(WorkflowLoader(workflow_file).load())

    workflow = run_with_conductor(ctx, _create)
    console.print(f"[green]Created workflow[/green] {workflow.id} ({workflow.name}, {len(workflow.steps)} steps)")


@workflows.command("list")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.pass_context
def list_workflows(ctx: click.Context, fmt: str) -> None:
    """List registered workflows, most recently updated first."""

    async def _list(conductor: Conductor) -> list[Workflow]:
        return await conductor.list_workflows()

    items = run_with_conductor(ctx, _list)
    if not items:
        console.print("[yellow]No workflows registered.[/yellow]")
        return

    if fmt == "json":
        print_json([w.model_dump(mode="json") for w in items])
    else:
        print_workflows_table(items)


@workflows.command("show")
@click.argument("workflow_id")
@click.pass_context
def show_workflow(ctx: click.Context, workflow_id: str) -> None:
    """Print WORKFLOW_ID's definition and status as JSON."""

    async def _get(conductor: Conductor) -> Workflow | None:
        return await conductor.get_workflow(workflow_id)

    workflow = run_with_conductor(ctx, _get)
    if workflow is None:
        console.print(f"[red]Error:[/red] Workflow not found: {workflow_id}")
        sys.exit(1)
    print_json(workflow.model_dump(mode="json"))


@workflows.command("run")
@click.argument("workflow_id")
@click.option("--input", "input_json", default=None, help="Run input as a JSON object.")
@click.option(
    "--input-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read run input from a JSON file.",
)
@click.option("--watch", is_flag=True, help="Print step status changes as the run progresses.")
@click.pass_context
def run_workflow(
    ctx: click.Context,
    workflow_id: str,
    input_json: str | None,
    input_file: Path | None,
    watch: bool,
) -> None:
    """Execute WORKFLOW_ID and print the resulting run."""
    if input_file is not None:
        input_json = input_file.read_text(encoding="utf-8")
    run_input = parse_json_option(input_json, "--input") or {}
    if not isinstance(run_input, dict):
        raise click.BadParameter("run input must be a JSON object", param_hint="--input")

    seen: dict[str, str] = {}

    async def _on_update(run: WorkflowRun) -> None:
        for step_id, result in run.step_results.items():
            if seen.get(step_id) != result.status:
                seen[step_id] = result.status
                console.print(f"[dim]{step_id}: {result.status}[/dim]")

    async def _run(conductor: Conductor) -> WorkflowRun:
        return await conductor.run_workflow(workflow_id, run_input, _on_update if watch else None)

    run = run_with_conductor(ctx, _run)
    print_run(run)
    if run.status == "error":
        sys.exit(1)


@workflows.command("runs")
@click.argument("workflow_id")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def list_runs(ctx: click.Context, workflow_id: str, limit: int) -> None:
    """List recent runs of WORKFLOW_ID."""

    async def _runs(conductor: Conductor) -> list[WorkflowRun]:
        return await conductor.list_workflow_runs(workflow_id, limit)

    runs = run_with_conductor(ctx, _runs)
    if not runs:
        console.print("[yellow]No runs recorded.[/yellow]")
        return
    print_runs_table(runs)


@workflows.command("delete")
@click.argument("workflow_id")
@click.pass_context
def delete_workflow(ctx: click.Context, workflow_id: str) -> None:
    """Delete WORKFLOW_ID and its runs."""

    async def _delete(conductor: Conductor) -> bool:
        return await conductor.delete_workflow(workflow_id)

    if not run_with_conductor(ctx, _delete):
        console.print(f"[red]Error:[/red] Workflow not found: {workflow_id}")
        sys.exit(1)
    console.print(f"Deleted {workflow_id}")


@workflows.command("dispatch")
@click.pass_context
def dispatch_triggers(ctx: click.Context) -> None:
    """Run event-triggered workflows for matching unconsumed events."""

    async def _dispatch(conductor: Conductor) -> list[WorkflowRun]:
        return await conductor.dispatch_triggers()

    runs = run_with_conductor(ctx, _dispatch)
    if not runs:
        console.print("[yellow]No matching events.[/yellow]")
        return
    for run in runs:
        print_run(run)
