"""Workflow definition and run models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

StepStatus = Literal["pending", "running", "completed", "error", "skipped"]
RunStatus = Literal["running", "completed", "error"]
WorkflowStatus = Literal["inactive", "active", "running"]

DEFAULT_STEP_TIMEOUT = 300.0


class WorkflowTrigger(BaseModel):
    """When a workflow runs.

    ``manual`` workflows only run on request; ``event`` workflows run when
    an event whose type matches ``event_pattern`` is published; ``cron``
    and ``webhook`` carry the data an outer scheduler needs.
    """

    type: Literal["manual", "cron", "event", "webhook"] = "manual"
    schedule: str | None = None
    event_pattern: str | None = None
    path: str | None = None


class WorkflowStep(BaseModel):
    """A single agent invocation within a workflow.

    ``prompt`` may reference run-blackboard values as ``{{dotted.key}}``.
    ``condition`` is either a bare key (run if present) or a
    ``key === literal`` / ``key !== literal`` comparison.
    """

    id: str
    name: str
    agent_id: str
    prompt: str
    depends_on: list[str] = []
    runtime: str | None = None
    output_key: str | None = None
    timeout: float = Field(default=DEFAULT_STEP_TIMEOUT, gt=0)
    condition: str | None = None
    retries: int = Field(default=0, ge=0)


class WorkflowDefinition(BaseModel):
    """The user-authored part of a workflow, as loaded from YAML."""

    name: str
    description: str = ""
    trigger: WorkflowTrigger = WorkflowTrigger()
    steps: list[WorkflowStep] = []


class Workflow(WorkflowDefinition):
    id: str
    status: WorkflowStatus = "inactive"
    created_at: datetime
    updated_at: datetime
    last_run_at: datetime | None = None
    last_run_status: RunStatus | None = None


class WorkflowStepResult(BaseModel):
    step_id: str
    status: StepStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    output: str | None = None
    error: str | None = None
    trace_id: str | None = None


class WorkflowRun(BaseModel):
    """One execution of a workflow.

    ``blackboard`` is the run's private scratch map: seeded from the run
    input and extended by steps that declare an ``output_key``.
    """

    id: str
    workflow_id: str
    status: RunStatus = "running"
    started_at: datetime
    completed_at: datetime | None = None
    step_results: dict[str, WorkflowStepResult] = {}
    blackboard: dict[str, Any] = {}
    error: str | None = None
