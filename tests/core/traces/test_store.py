"""Tests for TraceStore: traces, spans, stream instrumentation and costs."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import pytest

from conductor.core.agents.events import AgentEvent, ToolResultBlock, Usage
from conductor.core.traces.store import ABANDONED_ERROR, PROCESS_LOST_ERROR, TraceStore

if TYPE_CHECKING:
    from conductor.storage.database import Database


async def _stream(*events: AgentEvent) -> AsyncIterator[AgentEvent]:
    for event in events:
        yield event


class TestTraces:
    async def test_create_and_get(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm", agent_name="writer", prompt_preview="x" * 500)

        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "running"
        assert fetched.agent_name == "writer"
        assert fetched.prompt_preview == "x" * 200

    async def test_complete_with_usage(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        await store.complete_trace(trace.trace_id, usage=Usage(input_tokens=3, output_tokens=4, cost=0.1))

        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "completed"
        assert fetched.completed_at is not None
        assert fetched.total_tokens == 7
        assert fetched.total_cost == pytest.approx(0.1)

    async def test_update_rejects_unknown_fields(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        with pytest.raises(ValueError, match="Unknown trace fields: bogus"):
            await store.update_trace(trace.trace_id, bogus=1)

    async def test_list_filters(self, db: Database) -> None:
        store = TraceStore(db)
        t1 = await store.create_trace("a1", "litellm")
        await store.create_trace("a2", "litellm")
        await store.complete_trace(t1.trace_id, "error", error="boom")

        assert [t.trace_id for t in await store.list_traces(agent_id="a1")] == [t1.trace_id]
        assert [t.trace_id for t in await store.list_traces(status="error")] == [t1.trace_id]
        assert len(await store.list_traces()) == 2

    async def test_recover_fails_running_traces(self, db: Database) -> None:
        store = TraceStore(db)
        orphan = await store.create_trace("a1", "litellm")
        done = await store.create_trace("a2", "litellm")
        await store.complete_trace(done.trace_id)

        assert await store.recover() == 1

        fetched = await store.get_trace(orphan.trace_id)
        assert fetched is not None
        assert fetched.status == "error"
        assert fetched.error == PROCESS_LOST_ERROR
        assert fetched.completed_at is not None
        still_done = await store.get_trace(done.trace_id)
        assert still_done is not None
        assert still_done.status == "completed"
        assert await store.recover() == 0


class TestSpans:
    async def test_add_complete_list(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        span = await store.add_span(trace.trace_id, "tool_call", span_type="tool")
        await store.complete_span(span.span_id, 25, "error", "bad input")

        [stored] = await store.list_spans(trace.trace_id)
        assert stored.duration_ms == 25
        assert stored.status == "error"
        assert stored.error == "bad input"


class TestInstrument:
    async def test_records_spans_and_completes(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        usage = Usage(input_tokens=10, output_tokens=5, cost=0.25)
        source = _stream(
            AgentEvent.status_update("Starting"),
            AgentEvent.assistant_text("hi"),
            AgentEvent.user(ToolResultBlock(tool_use_id="c", content="{}")),
            AgentEvent.done(usage=usage),
        )

        relayed = [e async for e in store.instrument(trace, source)]

        assert [e.type for e in relayed] == ["status", "assistant", "user", "done"]
        spans = await store.list_spans(trace.trace_id)
        assert [(s.name, s.span_type) for s in spans] == [("assistant_message", "llm"), ("tool_result", "tool")]
        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "completed"
        assert fetched.total_tokens == 15
        assert await store.total_cost() == pytest.approx(0.25)

    async def test_error_marks_trace_failed(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        source = _stream(AgentEvent.failure("backend died"), AgentEvent.done())

        _ = [e async for e in store.instrument(trace, source)]

        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "error"
        assert fetched.error == "backend died"

    async def test_abandoned_stream_marks_trace_failed(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")
        source = _stream(AgentEvent.assistant_text("partial"), AgentEvent.assistant_text("more"), AgentEvent.done())

        events = store.instrument(trace, source)
        first = await anext(events)
        await events.aclose()

        assert first.text == "partial"
        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "error"
        assert fetched.error == ABANDONED_ERROR
        assert fetched.completed_at is not None

    async def test_stream_without_done_marks_trace_failed(self, db: Database) -> None:
        store = TraceStore(db)
        trace = await store.create_trace("a1", "litellm")

        _ = [e async for e in store.instrument(trace, _stream(AgentEvent.assistant_text("hi")))]

        fetched = await store.get_trace(trace.trace_id)
        assert fetched is not None
        assert fetched.status == "error"
        assert fetched.error == ABANDONED_ERROR


class TestCosts:
    async def test_daily_rollup(self, db: Database) -> None:
        store = TraceStore(db)
        await store.record_usage("a1", "litellm", Usage(input_tokens=1, output_tokens=1, cost=0.5))
        await store.record_usage("a1", "litellm", Usage(input_tokens=2, output_tokens=2, cost=0.25))
        await store.record_usage("a2", "subprocess", Usage(input_tokens=1, cost=1.0))

        [a2_row, a1_row] = sorted(await store.daily_costs(), key=lambda r: r.agent_id, reverse=True)
        assert a1_row.trace_count == 2
        assert a1_row.total_tokens == 6
        assert a1_row.total_cost == pytest.approx(0.75)
        assert a2_row.runtime == "subprocess"

        assert await store.cost_by_agent() == pytest.approx({"a2": 1.0, "a1": 0.75})
        assert await store.total_cost() == pytest.approx(1.75)

    async def test_old_rows_excluded(self, db: Database) -> None:
        store = TraceStore(db)
        await store.record_usage("a1", "litellm", Usage(cost=1.0), date="2000-01-01")
        assert await store.daily_costs(days=30) == []
        assert await store.total_cost() == pytest.approx(1.0)

    async def test_empty_total(self, db: Database) -> None:
        assert await TraceStore(db).total_cost() == 0.0
