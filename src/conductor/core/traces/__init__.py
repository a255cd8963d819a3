"""Execution history — traces, spans, and daily cost roll-ups."""

from conductor.core.traces.models import AgentTrace, DailyCost, TraceSpan
from conductor.core.traces.store import TraceStore

__all__ = ["AgentTrace", "DailyCost", "TraceSpan", "TraceStore"]
