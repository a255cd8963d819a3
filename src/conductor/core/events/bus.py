"""EventBus — durable append-only event log with consume-once semantics.

Events are read newest first: by timestamp, ties broken by insertion
order.  Consumption is a conditional update, so when several agents race
to claim the same task exactly one of them wins.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.events.models import BusEvent
from conductor.storage.database import dumps, new_id, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)

_NEWEST_FIRST = "ORDER BY timestamp DESC, seq DESC"


def _to_event(row: dict[str, Any]) -> BusEvent:
    return BusEvent(
        id=row["id"],
        type=row["type"],
        source=row["source"],
        timestamp=row["timestamp"],
        payload=json.loads(row["payload"]),
        consumed=bool(row["consumed"]),
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def pattern_to_like(pattern: str) -> str:
    """Translate a ``task.*`` style pattern into a SQL ``LIKE`` expression.

    The first ``*`` becomes ``%``; every other character, including the
    ``LIKE`` metacharacters ``%`` and ``_``, matches literally.
    """
    prefix, star, suffix = pattern.partition("*")
    if not star:
        return _escape_like(pattern)
    return f"{_escape_like(prefix)}%{_escape_like(suffix)}"


class EventBus:
    """Publish, query, and consume :class:`BusEvent` records."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def publish(self, type: str, source: str, payload: dict[str, Any] | None = None) -> BusEvent:  # noqa: A002
        event = BusEvent(
            id=new_id("evt"),
            type=type,
            source=source,
            timestamp=utc_now(),
            payload=payload or {},
        )
        await self._db.execute(
            "INSERT INTO events (id, type, source, timestamp, payload, consumed) VALUES (?, ?, ?, ?, ?, 0)",
            (event.id, event.type, event.source, event.timestamp.isoformat(), dumps(event.payload)),
        )
        logger.debug("Published %s from %s (%s)", event.type, event.source, event.id)
        return event

    async def query(
        self,
        type: str | None = None,  # noqa: A002
        source: str | None = None,
        *,
        unconsumed_only: bool = True,
        limit: int = 50,
    ) -> list[BusEvent]:
        """Return matching events, newest first."""
        clauses: list[str] = []
        params: list[Any] = []
        if type is not None:
            clauses.append("type = ?")
            params.append(type)
        if source is not None:
            clauses.append("source = ?")
            params.append(source)
        if unconsumed_only:
            clauses.append("consumed = 0")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self._db.fetchall(
            f"SELECT * FROM events {where} {_NEWEST_FIRST} LIMIT ?",  # noqa: S608
            (*params, limit),
        )
        return [_to_event(r) for r in rows]

    async def match(self, pattern: str, limit: int = 20) -> list[BusEvent]:
        """Return unconsumed events whose type matches a wildcard *pattern*."""
        rows = await self._db.fetchall(
            f"SELECT * FROM events WHERE type LIKE ? ESCAPE '\\' AND consumed = 0 {_NEWEST_FIRST} LIMIT ?",  # noqa: S608
            (pattern_to_like(pattern), limit),
        )
        return [_to_event(r) for r in rows]

    async def get(self, event_id: str) -> BusEvent | None:
        row = await self._db.fetchone("SELECT * FROM events WHERE id = ?", (event_id,))
        return _to_event(row) if row is not None else None

    async def consume(self, event_id: str) -> bool:
        """Mark an event consumed.

        Returns ``True`` only for the call that flipped the flag; repeating
        it (or consuming an unknown id) is a no-op returning ``False``.
        """
        count = await self._db.execute(
            "UPDATE events SET consumed = 1 WHERE id = ? AND consumed = 0",
            (event_id,),
        )
        return count == 1

    async def claim(self, type: str) -> BusEvent | None:  # noqa: A002
        """Atomically consume and return the newest unconsumed event of *type*."""
        row = await self._db.fetchone(
            f"""
            UPDATE events SET consumed = 1
            WHERE consumed = 0 AND seq = (
                SELECT seq FROM events WHERE type = ? AND consumed = 0 {_NEWEST_FIRST} LIMIT 1
            )
            RETURNING *
            """,  # noqa: S608
            (type,),
        )
        if row is None:
            return None
        event = _to_event(row)
        logger.debug("Claimed %s (%s)", event.type, event.id)
        return event
