"""Tests for the EventBus."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from conductor.core.events.bus import EventBus, pattern_to_like

if TYPE_CHECKING:
    from conductor.storage.database import Database


class TestPatternToLike:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("task.*", "task.%"),
            ("*.done", "%.done"),
            ("task.created", "task.created"),
            ("a_b.*", "a\\_b.%"),
            ("100%.*", "100\\%.%"),
            ("a*b*", "a%b*"),
        ],
    )
    def test_translation(self, pattern: str, expected: str) -> None:
        assert pattern_to_like(pattern) == expected


class TestEventBus:
    async def test_publish_defaults(self, db: Database) -> None:
        bus = EventBus(db)
        event = await bus.publish("task.created", "agent-a")
        assert event.consumed is False
        assert event.payload == {}
        assert event.id.startswith("evt-")

    async def test_query_newest_first(self, db: Database) -> None:
        bus = EventBus(db)
        first = await bus.publish("t", "s", {"n": 1})
        second = await bus.publish("t", "s", {"n": 2})
        third = await bus.publish("t", "s", {"n": 3})

        found = await bus.query("t")
        assert [e.id for e in found] == [third.id, second.id, first.id]

    async def test_query_filters(self, db: Database) -> None:
        bus = EventBus(db)
        await bus.publish("a", "x")
        await bus.publish("b", "x")
        await bus.publish("a", "y")

        assert len(await bus.query("a")) == 2
        assert len(await bus.query(source="x")) == 2
        assert len(await bus.query("a", "y")) == 1
        assert len(await bus.query(limit=1)) == 1

    async def test_query_hides_consumed_by_default(self, db: Database) -> None:
        bus = EventBus(db)
        event = await bus.publish("t", "s")
        await bus.consume(event.id)

        assert await bus.query("t") == []
        everything = await bus.query("t", unconsumed_only=False)
        assert [e.consumed for e in everything] == [True]

    async def test_consume_is_idempotent(self, db: Database) -> None:
        bus = EventBus(db)
        event = await bus.publish("t", "s")
        assert await bus.consume(event.id) is True
        assert await bus.consume(event.id) is False
        assert await bus.consume("evt-unknown") is False

    async def test_match_wildcard(self, db: Database) -> None:
        bus = EventBus(db)
        await bus.publish("task.created", "s")
        await bus.publish("task.completed", "s")
        await bus.publish("team.started", "s")

        found = await bus.match("task.*")
        assert {e.type for e in found} == {"task.created", "task.completed"}

    async def test_match_escapes_like_metacharacters(self, db: Database) -> None:
        bus = EventBus(db)
        await bus.publish("a_b.x", "s")
        await bus.publish("axb.x", "s")

        found = await bus.match("a_b.*")
        assert [e.type for e in found] == ["a_b.x"]

    async def test_match_skips_consumed(self, db: Database) -> None:
        bus = EventBus(db)
        event = await bus.publish("task.created", "s")
        await bus.consume(event.id)
        assert await bus.match("task.*") == []

    async def test_get(self, db: Database) -> None:
        bus = EventBus(db)
        event = await bus.publish("t", "s", {"k": "v"})
        fetched = await bus.get(event.id)
        assert fetched is not None
        assert fetched.payload == {"k": "v"}
        assert await bus.get("missing") is None

    async def test_claim_newest(self, db: Database) -> None:
        bus = EventBus(db)
        await bus.publish("task.created", "s", {"n": 1})
        newest = await bus.publish("task.created", "s", {"n": 2})

        claimed = await bus.claim("task.created")
        assert claimed is not None
        assert claimed.id == newest.id
        assert claimed.consumed is True

    async def test_claim_empty(self, db: Database) -> None:
        assert await EventBus(db).claim("task.created") is None

    async def test_concurrent_claims_single_winner(self, db: Database) -> None:
        bus = EventBus(db)
        await bus.publish("task.created", "s", {"task": "only one"})

        results = await asyncio.gather(*(bus.claim("task.created") for _ in range(5)))
        winners = [r for r in results if r is not None]
        assert len(winners) == 1

    async def test_concurrent_claims_distinct_tasks(self, db: Database) -> None:
        bus = EventBus(db)
        for i in range(3):
            await bus.publish("task.created", "s", {"n": i})

        results = await asyncio.gather(*(bus.claim("task.created") for _ in range(5)))
        winners = [r for r in results if r is not None]
        assert len(winners) == 3
        assert len({w.id for w in winners}) == 3
