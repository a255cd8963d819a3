"""LogStore — durable system log for workflow and team activity.

Unlike the per-agent ring buffer this survives restarts, so the history
of a workflow run or a team session can be read back later by source.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.logs.models import LogSource, SystemLog
from conductor.storage.database import dumps, new_id, utc_now

if TYPE_CHECKING:
    from conductor.core.agents.logbuffer import LogLevel
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)


def _to_log(row: dict[str, Any]) -> SystemLog:
    return SystemLog(**{**row, "metadata": json.loads(row["metadata"])})


class LogStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(
        self,
        level: LogLevel,
        source: LogSource,
        message: str,
        *,
        source_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SystemLog:
        entry = SystemLog(
            id=new_id("log"),
            timestamp=utc_now(),
            level=level,
            source=source,
            source_id=source_id,
            message=message,
            metadata=metadata or {},
        )
        await self._db.execute(
            """
            INSERT INTO logs (id, timestamp, level, source, source_id, message, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.timestamp.isoformat(),
                level,
                source,
                source_id,
                message,
                dumps(entry.metadata),
            ),
        )
        return entry

    async def query(
        self,
        *,
        source: LogSource | None = None,
        source_id: str | None = None,
        level: LogLevel | None = None,
        limit: int = 100,
    ) -> list[SystemLog]:
        """Entries matching every given filter, newest first."""
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (("source", source), ("source_id", source_id), ("level", level)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self._db.fetchall(
            f"SELECT * FROM logs {where} ORDER BY seq DESC LIMIT ?",  # noqa: S608
            (*params, limit),
        )
        return [_to_log(r) for r in rows]
