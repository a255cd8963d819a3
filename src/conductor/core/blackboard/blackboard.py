"""Blackboard — shared versioned key/value state for cooperating agents.

Entries are scoped by ``team_id`` (``_global`` when unscoped).  Each write
is a single upsert statement, so concurrent writers to the same key each
get a distinct version and the last committed value wins.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.blackboard.models import GLOBAL_SCOPE, BlackboardEntry
from conductor.storage.database import dumps, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)


def _to_entry(row: dict[str, Any]) -> BlackboardEntry:
    return BlackboardEntry(**{**row, "value": json.loads(row["value"])})


class Blackboard:
    """Team-scoped key/value store backed by the ``blackboard`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def write(
        self,
        key: str,
        value: Any,
        updated_by: str,
        team_id: str = GLOBAL_SCOPE,
    ) -> BlackboardEntry:
        """Create or overwrite *key* and return the stored entry."""
        row = await self._db.fetchone(
            """
            INSERT INTO blackboard (key, team_id, value, updated_by, updated_at, version)
            VALUES (?, ?, ?, ?, ?, 1)
            ON CONFLICT(key, team_id) DO UPDATE SET
                value = excluded.value,
                updated_by = excluded.updated_by,
                updated_at = excluded.updated_at,
                version = blackboard.version + 1
            RETURNING key, team_id, value, updated_by, updated_at, version
            """,
            (key, team_id, dumps(value), updated_by, utc_now().isoformat()),
        )
        assert row is not None
        entry = _to_entry(row)
        logger.debug("Blackboard write %s/%s v%d by %s", team_id, key, entry.version, updated_by)
        return entry

    async def read(self, key: str, team_id: str = GLOBAL_SCOPE) -> BlackboardEntry | None:
        row = await self._db.fetchone(
            "SELECT * FROM blackboard WHERE key = ? AND team_id = ?",
            (key, team_id),
        )
        return _to_entry(row) if row is not None else None

    async def read_all(self, team_id: str = GLOBAL_SCOPE) -> list[BlackboardEntry]:
        """Return every entry in the scope, most recently updated first."""
        rows = await self._db.fetchall(
            "SELECT * FROM blackboard WHERE team_id = ? ORDER BY updated_at DESC, version DESC",
            (team_id,),
        )
        return [_to_entry(r) for r in rows]

    async def delete(self, key: str, team_id: str = GLOBAL_SCOPE) -> bool:
        count = await self._db.execute(
            "DELETE FROM blackboard WHERE key = ? AND team_id = ?",
            (key, team_id),
        )
        return count > 0

    async def clear(self, team_id: str = GLOBAL_SCOPE) -> int:
        """Delete every entry in the scope, returning how many were removed."""
        count = await self._db.execute("DELETE FROM blackboard WHERE team_id = ?", (team_id,))
        logger.info("Cleared %d blackboard entries for %s", count, team_id)
        return count
