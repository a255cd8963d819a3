"""TraceStore — durable execution history for agent invocations.

A trace records one agent run; spans record what happened inside it.
:meth:`TraceStore.instrument` wraps a launcher stream and records spans as
events flow past, completing the trace when the stream ends.  Token usage
reported on ``done`` is rolled up into per-day cost rows.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

from conductor.core.traces.models import AgentTrace, DailyCost, TraceSpan, TraceStatus
from conductor.storage.database import new_id, utc_now

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from conductor.core.agents.events import AgentEvent, Usage
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)

ABANDONED_ERROR = "Stream ended before completion"
PROCESS_LOST_ERROR = "Process exited while the trace was running"

_TRACE_FIELDS = {
    "agent_name",
    "prompt_preview",
    "completed_at",
    "status",
    "total_tokens",
    "input_tokens",
    "output_tokens",
    "total_cost",
    "error",
}


def _to_column(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


class TraceStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Traces
    # ------------------------------------------------------------------

    async def create_trace(
        self,
        agent_id: str,
        runtime: str,
        *,
        agent_name: str | None = None,
        prompt_preview: str | None = None,
    ) -> AgentTrace:
        trace = AgentTrace(
            trace_id=new_id("trace"),
            agent_id=agent_id,
            agent_name=agent_name,
            runtime=runtime,
            prompt_preview=prompt_preview[:200] if prompt_preview else None,
            started_at=utc_now(),
        )
        await self._db.execute(
            """
            INSERT INTO traces (trace_id, agent_id, agent_name, runtime, prompt_preview, started_at, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                trace.trace_id,
                agent_id,
                agent_name,
                runtime,
                trace.prompt_preview,
                trace.started_at.isoformat(),
                trace.status,
            ),
        )
        return trace

    async def update_trace(self, trace_id: str, **fields: Any) -> None:
        unknown = set(fields) - _TRACE_FIELDS
        if unknown:
            msg = f"Unknown trace fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        await self._db.execute(
            f"UPDATE traces SET {assignments} WHERE trace_id = ?",  # noqa: S608
            (*(_to_column(v) for v in fields.values()), trace_id),
        )

    async def complete_trace(
        self,
        trace_id: str,
        status: TraceStatus = "completed",
        *,
        error: str | None = None,
        usage: Usage | None = None,
    ) -> None:
        fields: dict[str, Any] = {"status": status, "completed_at": utc_now()}
        if error is not None:
            fields["error"] = error
        if usage is not None:
            fields.update(
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                total_tokens=usage.total_tokens,
                total_cost=usage.cost,
            )
        await self.update_trace(trace_id, **fields)

    async def get_trace(self, trace_id: str) -> AgentTrace | None:
        row = await self._db.fetchone("SELECT * FROM traces WHERE trace_id = ?", (trace_id,))
        return AgentTrace(**row) if row is not None else None

    async def list_traces(
        self,
        *,
        agent_id: str | None = None,
        status: TraceStatus | None = None,
        limit: int = 50,
    ) -> list[AgentTrace]:
        clauses: list[str] = []
        params: list[Any] = []
        if agent_id is not None:
            clauses.append("agent_id = ?")
            params.append(agent_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self._db.fetchall(
            f"SELECT * FROM traces {where} ORDER BY started_at DESC LIMIT ?",  # noqa: S608
            (*params, limit),
        )
        return [AgentTrace(**r) for r in rows]

    async def recover(self) -> int:
        """Fail traces left ``running`` by a previous process, returning how many."""
        count = await self._db.execute(
            "UPDATE traces SET status = 'error', error = ?, completed_at = ? WHERE status = 'running'",
            (PROCESS_LOST_ERROR, utc_now().isoformat()),
        )
        if count:
            logger.warning("Marked %d orphaned trace(s) as failed", count)
        return count

    # ------------------------------------------------------------------
    # Spans
    # ------------------------------------------------------------------

    async def add_span(
        self,
        trace_id: str,
        name: str,
        *,
        span_type: str | None = None,
        parent_span_id: str | None = None,
        status: TraceStatus = "running",
        duration_ms: int = 0,
    ) -> TraceSpan:
        span = TraceSpan(
            span_id=new_id("span"),
            trace_id=trace_id,
            parent_span_id=parent_span_id,
            name=name,
            span_type=span_type,
            started_at=utc_now(),
            duration_ms=duration_ms,
            status=status,
        )
        await self._db.execute(
            """
            INSERT INTO spans (span_id, trace_id, parent_span_id, name, span_type, started_at, duration_ms, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                span.span_id,
                trace_id,
                parent_span_id,
                name,
                span_type,
                span.started_at.isoformat(),
                duration_ms,
                status,
            ),
        )
        return span

    async def complete_span(
        self,
        span_id: str,
        duration_ms: int,
        status: TraceStatus = "completed",
        error: str | None = None,
    ) -> None:
        await self._db.execute(
            "UPDATE spans SET duration_ms = ?, status = ?, error = ? WHERE span_id = ?",
            (duration_ms, status, error, span_id),
        )

    async def list_spans(self, trace_id: str) -> list[TraceSpan]:
        rows = await self._db.fetchall(
            "SELECT * FROM spans WHERE trace_id = ? ORDER BY started_at, rowid",
            (trace_id,),
        )
        return [TraceSpan(**r) for r in rows]

    # ------------------------------------------------------------------
    # Stream instrumentation
    # ------------------------------------------------------------------

    async def instrument(self, trace: AgentTrace, stream: AsyncIterator[AgentEvent]) -> AsyncIterator[AgentEvent]:
        """Relay *stream* unchanged while recording it into *trace*.

        Assistant messages become ``llm`` spans and tool results become
        ``tool`` spans.  ``done`` completes the trace (and records usage);
        an ``error`` event marks it failed.  A stream abandoned before
        ``done`` leaves the trace in ``error``.
        """
        started = time.monotonic()
        last = started
        failed: str | None = None
        finished = False
        try:
            async for event in stream:
                now = time.monotonic()
                elapsed = int((now - last) * 1000)
                if event.type == "assistant":
                    await self.add_span(
                        trace.trace_id,
                        "assistant_message",
                        span_type="llm",
                        status="completed",
                        duration_ms=elapsed,
                    )
                    last = now
                elif event.type == "user":
                    await self.add_span(
                        trace.trace_id,
                        "tool_result",
                        span_type="tool",
                        status="completed",
                        duration_ms=elapsed,
                    )
                    last = now
                elif event.type == "error":
                    failed = event.error or "Agent error"
                    await self.complete_trace(trace.trace_id, "error", error=failed)
                elif event.type == "done":
                    finished = True
                    if failed is None:
                        await self.complete_trace(trace.trace_id, "completed", usage=event.usage)
                    if event.usage is not None:
                        await self.record_usage(trace.agent_id, trace.runtime, event.usage)
                yield event
        finally:
            if not finished and failed is None:
                await self.complete_trace(trace.trace_id, "error", error=ABANDONED_ERROR)

    # ------------------------------------------------------------------
    # Cost roll-up
    # ------------------------------------------------------------------

    async def record_usage(self, agent_id: str, runtime: str, usage: Usage, date: str | None = None) -> None:
        """Add *usage* to the daily roll-up row for ``(date, agent_id, runtime)``."""
        day = date or utc_now().date().isoformat()
        await self._db.execute(
            """
            INSERT INTO cost_daily
                (date, agent_id, runtime, total_tokens, input_tokens, output_tokens, total_cost, trace_count)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1)
            ON CONFLICT(date, agent_id, runtime) DO UPDATE SET
                total_tokens = cost_daily.total_tokens + excluded.total_tokens,
                input_tokens = cost_daily.input_tokens + excluded.input_tokens,
                output_tokens = cost_daily.output_tokens + excluded.output_tokens,
                total_cost = cost_daily.total_cost + excluded.total_cost,
                trace_count = cost_daily.trace_count + 1
            """,
            (
                day,
                agent_id,
                runtime,
                usage.total_tokens,
                usage.input_tokens,
                usage.output_tokens,
                usage.cost or 0.0,
            ),
        )

    async def daily_costs(self, days: int = 30) -> list[DailyCost]:
        rows = await self._db.fetchall(
            "SELECT * FROM cost_daily WHERE date >= date('now', ?) ORDER BY date DESC, agent_id",
            (f"-{days} days",),
        )
        return [DailyCost(**r) for r in rows]

    async def cost_by_agent(self) -> dict[str, float]:
        rows = await self._db.fetchall(
            "SELECT agent_id, SUM(total_cost) AS cost FROM cost_daily GROUP BY agent_id ORDER BY cost DESC"
        )
        return {r["agent_id"]: float(r["cost"] or 0.0) for r in rows}

    async def total_cost(self) -> float:
        row = await self._db.fetchone("SELECT COALESCE(SUM(total_cost), 0) AS cost FROM cost_daily")
        return float(row["cost"]) if row else 0.0
