"""SessionStore — durable conversation history for model-driven backends.

Backends that keep the transcript themselves (rather than delegating it
to an agent CLI) store it here under the session id, so a resumed session
continues the same conversation after a restart.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

from conductor.storage.database import dumps, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)

Messages = list[dict[str, Any]]


class SessionHistory(Protocol):
    """Where a backend reads and writes a session's message list."""

    async def get(self, session_id: str) -> Messages | None: ...

    async def set(self, session_id: str, messages: Messages) -> Any: ...


class SessionStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def get(self, session_id: str) -> Messages | None:
        row = await self._db.fetchone("SELECT messages FROM sessions WHERE session_id = ?", (session_id,))
        if row is None:
            return None
        messages: Messages = json.loads(row["messages"])
        return messages

    async def set(self, session_id: str, messages: Messages) -> None:
        await self._db.execute(
            """
            INSERT INTO sessions (session_id, messages, updated_at) VALUES (?, ?, ?)
            ON CONFLICT (session_id) DO UPDATE SET
                messages = excluded.messages,
                updated_at = excluded.updated_at
            """,
            (session_id, dumps(messages), utc_now().isoformat()),
        )
        logger.debug("Saved session %s (%d messages)", session_id, len(messages))

    async def delete(self, session_id: str) -> bool:
        return await self._db.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,)) > 0
