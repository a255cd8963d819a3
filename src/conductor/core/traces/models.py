"""Trace, span, and cost models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

TraceStatus = Literal["running", "completed", "error"]


class AgentTrace(BaseModel):
    """One agent invocation."""

    trace_id: str
    agent_id: str
    agent_name: str | None = None
    runtime: str
    prompt_preview: str | None = None
    started_at: datetime
    completed_at: datetime | None = None
    status: TraceStatus = "running"
    total_tokens: int | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_cost: float | None = None
    error: str | None = None


class TraceSpan(BaseModel):
    """A sub-operation within a trace (a model message, a tool call)."""

    span_id: str
    trace_id: str
    parent_span_id: str | None = None
    name: str
    span_type: str | None = None
    started_at: datetime
    duration_ms: int = 0
    status: TraceStatus = "running"
    error: str | None = None


class DailyCost(BaseModel):
    date: str
    agent_id: str
    runtime: str
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0
    trace_count: int = 0
