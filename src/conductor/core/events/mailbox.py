"""Mailbox — direct agent-to-agent messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from conductor.core.events.models import DirectMessage
from conductor.storage.database import new_id, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)


class Mailbox:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def send(self, from_agent: str, to_agent: str, content: str) -> DirectMessage:
        message = DirectMessage(
            id=new_id("msg"),
            from_agent=from_agent,
            to_agent=to_agent,
            content=content,
            timestamp=utc_now(),
        )
        await self._db.execute(
            "INSERT INTO messages (id, from_agent, to_agent, content, timestamp, read) VALUES (?, ?, ?, ?, ?, 0)",
            (message.id, from_agent, to_agent, content, message.timestamp.isoformat()),
        )
        logger.debug("Message %s: %s -> %s", message.id, from_agent, to_agent)
        return message

    async def inbox(self, agent_id: str, *, unread_only: bool = True, limit: int = 20) -> list[DirectMessage]:
        """Return messages for *agent_id*, newest first, marking them read."""
        where = "to_agent = ? AND read = 0" if unread_only else "to_agent = ?"
        rows = await self._db.fetchall(
            f"SELECT * FROM messages WHERE {where} ORDER BY timestamp DESC, seq DESC LIMIT ?",  # noqa: S608
            (agent_id, limit),
        )
        unread = [r["id"] for r in rows if not r["read"]]
        if unread:
            marks = ", ".join("?" for _ in unread)
            await self._db.execute(f"UPDATE messages SET read = 1 WHERE id IN ({marks})", tuple(unread))  # noqa: S608
        return [
            DirectMessage(
                id=r["id"],
                from_agent=r["from_agent"],
                to_agent=r["to_agent"],
                content=r["content"],
                timestamp=r["timestamp"],
                read=True,
            )
            for r in rows
        ]
