"""WorkflowStore — persistence for workflow definitions and their runs."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.workflows.models import (
    RunStatus,
    Workflow,
    WorkflowDefinition,
    WorkflowRun,
    WorkflowStep,
    WorkflowStepResult,
    WorkflowTrigger,
)
from conductor.errors import WorkflowNotFoundError
from conductor.storage.database import dumps, new_id, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)

_TERMINAL: tuple[RunStatus, ...] = ("completed", "error")


def _to_workflow(row: dict[str, Any]) -> Workflow:
    return Workflow(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        trigger=WorkflowTrigger(**json.loads(row["trigger_config"])),
        steps=[WorkflowStep(**s) for s in json.loads(row["steps"])],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_run_at=row["last_run_at"],
        last_run_status=row["last_run_status"],
    )


def _to_run(row: dict[str, Any]) -> WorkflowRun:
    results = json.loads(row["step_results"])
    return WorkflowRun(
        id=row["id"],
        workflow_id=row["workflow_id"],
        status=row["status"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        step_results={k: WorkflowStepResult(**v) for k, v in results.items()},
        blackboard=json.loads(row["blackboard"]),
        error=row["error"],
    )


class WorkflowStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    async def create(self, definition: WorkflowDefinition) -> Workflow:
        now = utc_now()
        workflow = Workflow(
            **definition.model_dump(),
            id=new_id("wf"),
            created_at=now,
            updated_at=now,
        )
        await self._db.execute(
            """
            INSERT INTO workflows (id, name, description, trigger_config, steps, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                workflow.id,
                workflow.name,
                workflow.description,
                workflow.trigger.model_dump_json(),
                dumps([s.model_dump() for s in workflow.steps]),
                workflow.status,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        logger.info("Created workflow %s (%s, %d steps)", workflow.id, workflow.name, len(workflow.steps))
        return workflow

    async def get(self, workflow_id: str) -> Workflow | None:
        row = await self._db.fetchone("SELECT * FROM workflows WHERE id = ?", (workflow_id,))
        return _to_workflow(row) if row is not None else None

    async def list_all(self) -> list[Workflow]:
        rows = await self._db.fetchall("SELECT * FROM workflows ORDER BY updated_at DESC")
        return [_to_workflow(r) for r in rows]

    async def update(self, workflow_id: str, definition: WorkflowDefinition) -> Workflow:
        """Replace the user-authored fields of a workflow."""
        count = await self._db.execute(
            """
            UPDATE workflows SET name = ?, description = ?, trigger_config = ?, steps = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                definition.name,
                definition.description,
                definition.trigger.model_dump_json(),
                dumps([s.model_dump() for s in definition.steps]),
                utc_now().isoformat(),
                workflow_id,
            ),
        )
        if not count:
            raise WorkflowNotFoundError(workflow_id)
        workflow = await self.get(workflow_id)
        assert workflow is not None
        return workflow

    async def set_status(self, workflow_id: str, status: str) -> None:
        await self._db.execute(
            "UPDATE workflows SET status = ?, updated_at = ? WHERE id = ?",
            (status, utc_now().isoformat(), workflow_id),
        )

    async def delete(self, workflow_id: str) -> bool:
        count = await self._db.execute("DELETE FROM workflows WHERE id = ?", (workflow_id,))
        return count > 0

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def create_run(self, workflow_id: str, blackboard: dict[str, Any] | None = None) -> WorkflowRun:
        """Open a run and mark its workflow ``running``."""
        run = WorkflowRun(
            id=new_id("run"),
            workflow_id=workflow_id,
            started_at=utc_now(),
            blackboard=dict(blackboard or {}),
        )
        await self._db.execute(
            """
            INSERT INTO workflow_runs (id, workflow_id, status, started_at, step_results, blackboard)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (run.id, workflow_id, run.status, run.started_at.isoformat(), "{}", dumps(run.blackboard)),
        )
        await self._db.execute(
            "UPDATE workflows SET status = 'running', last_run_at = ?, last_run_status = 'running' WHERE id = ?",
            (run.started_at.isoformat(), workflow_id),
        )
        return run

    async def update_run(self, run: WorkflowRun) -> None:
        """Persist a run snapshot.

        A terminal status is propagated to the workflow, which returns to
        ``active``.
        """
        await self._db.execute(
            """
            UPDATE workflow_runs SET status = ?, completed_at = ?, step_results = ?, blackboard = ?, error = ?
            WHERE id = ?
            """,
            (
                run.status,
                run.completed_at.isoformat() if run.completed_at else None,
                dumps({k: v.model_dump(mode="json") for k, v in run.step_results.items()}),
                dumps(run.blackboard),
                run.error,
                run.id,
            ),
        )
        if run.status in _TERMINAL:
            await self._db.execute(
                "UPDATE workflows SET status = 'active', last_run_status = ? WHERE id = ?",
                (run.status, run.workflow_id),
            )

    async def get_run(self, run_id: str) -> WorkflowRun | None:
        row = await self._db.fetchone("SELECT * FROM workflow_runs WHERE id = ?", (run_id,))
        return _to_run(row) if row is not None else None

    async def list_runs(self, workflow_id: str, limit: int = 20) -> list[WorkflowRun]:
        rows = await self._db.fetchall(
            "SELECT * FROM workflow_runs WHERE workflow_id = ? ORDER BY started_at DESC LIMIT ?",
            (workflow_id, limit),
        )
        return [_to_run(r) for r in rows]
