"""Workflows — definitions, persistence, and the layered execution engine."""

from conductor.core.workflows.conditions import evaluate_condition, get_nested_value, interpolate_prompt
from conductor.core.workflows.dag import resolve_layers
from conductor.core.workflows.engine import STEP_TIMEOUT_ERROR, WorkflowEngine
from conductor.core.workflows.models import (
    Workflow,
    WorkflowDefinition,
    WorkflowRun,
    WorkflowStep,
    WorkflowStepResult,
    WorkflowTrigger,
)
from conductor.core.workflows.store import WorkflowStore
from conductor.core.workflows.triggers import TriggerDispatcher

__all__ = [
    "STEP_TIMEOUT_ERROR",
    "TriggerDispatcher",
    "Workflow",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowRun",
    "WorkflowStep",
    "WorkflowStepResult",
    "WorkflowStore",
    "WorkflowTrigger",
    "evaluate_condition",
    "get_nested_value",
    "interpolate_prompt",
    "resolve_layers",
]
