"""AgentRegistry — durable catalog of agent instances.

Every status change goes through :meth:`AgentRegistry.update_status`,
which stamps ``last_activity`` and persists immediately.  Instances left
``running`` or ``paused`` by a previous process are downgraded to
``terminated`` by :meth:`AgentRegistry.recover`, which runs once before
the first read or write (or explicitly at startup).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.agents.models import AgentConfig, AgentInstance, AgentStatus
from conductor.errors import AgentNotFoundError
from conductor.storage.database import new_id, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)

PROCESS_LOST_ERROR = "Process lost on server restart"


def _to_instance(row: dict[str, Any]) -> AgentInstance:
    return AgentInstance(**{**row, "config": AgentConfig(**json.loads(row["config"]))})


class AgentRegistry:
    def __init__(self, db: Database) -> None:
        self._db = db
        self._recovered = False
        self._recover_lock = asyncio.Lock()

    async def recover(self) -> int:
        """Mark instances orphaned by a previous process as terminated.

        Returns the number of instances downgraded.  Safe to call more
        than once.
        """
        async with self._recover_lock:
            count = await self._db.execute(
                "UPDATE agents SET status = ?, error = ? WHERE status IN (?, ?)",
                (
                    AgentStatus.TERMINATED.value,
                    PROCESS_LOST_ERROR,
                    AgentStatus.RUNNING.value,
                    AgentStatus.PAUSED.value,
                ),
            )
            self._recovered = True
        if count:
            logger.warning("Marked %d orphaned agent(s) as terminated", count)
        return count

    async def _ensure_recovered(self) -> None:
        if not self._recovered:
            await self.recover()

    async def create(
        self,
        agent_name: str,
        *,
        display_name: str | None = None,
        config: AgentConfig | None = None,
        agent_id: str | None = None,
        plugin_slug: str | None = None,
    ) -> AgentInstance:
        await self._ensure_recovered()
        config = config or AgentConfig()
        instance = AgentInstance(
            id=agent_id or new_id("agent"),
            agent_name=agent_name,
            display_name=display_name or agent_name,
            runtime=config.runtime,
            config=config,
            plugin_slug=plugin_slug,
        )
        await self._db.execute(
            """
            INSERT INTO agents (id, agent_name, display_name, status, runtime, config, plugin_slug)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                instance.id,
                instance.agent_name,
                instance.display_name,
                instance.status.value,
                instance.runtime,
                config.model_dump_json(),
                plugin_slug,
            ),
        )
        logger.info("Registered agent %s (%s, runtime=%s)", instance.id, agent_name, instance.runtime)
        return instance

    async def get(self, agent_id: str) -> AgentInstance | None:
        await self._ensure_recovered()
        row = await self._db.fetchone("SELECT * FROM agents WHERE id = ?", (agent_id,))
        return _to_instance(row) if row is not None else None

    async def find(self, ref: str) -> AgentInstance | None:
        """Look up an instance by id, falling back to agent name."""
        instance = await self.get(ref)
        if instance is not None:
            return instance
        row = await self._db.fetchone(
            "SELECT * FROM agents WHERE agent_name = ? ORDER BY rowid LIMIT 1",
            (ref,),
        )
        return _to_instance(row) if row is not None else None

    async def list_all(self) -> list[AgentInstance]:
        await self._ensure_recovered()
        rows = await self._db.fetchall("SELECT * FROM agents ORDER BY rowid")
        return [_to_instance(r) for r in rows]

    async def update_status(
        self,
        agent_id: str,
        status: AgentStatus | None = None,
        *,
        session_id: str | None = None,
        error: str | None = None,
    ) -> AgentInstance:
        """Stamp ``last_activity`` and apply a status change.

        ``status=None`` only touches the activity time (plus *session_id* /
        *error* when given).  Moving to ``running`` clears any previous
        error and records ``started_at``.
        """
        await self._ensure_recovered()
        now = utc_now().isoformat()
        assignments = ["last_activity = ?"]
        params: list[Any] = [now]
        if status is not None:
            assignments.append("status = ?")
            params.append(status.value)
            if status is AgentStatus.RUNNING:
                assignments.extend(["started_at = ?", "error = NULL"])
                params.append(now)
        if session_id is not None:
            assignments.append("session_id = ?")
            params.append(session_id)
        if error is not None:
            assignments.append("error = ?")
            params.append(error)
        row = await self._db.fetchone(
            f"UPDATE agents SET {', '.join(assignments)} WHERE id = ? RETURNING *",  # noqa: S608
            (*params, agent_id),
        )
        if row is None:
            raise AgentNotFoundError(agent_id)
        return _to_instance(row)

    async def remove(self, agent_id: str) -> bool:
        count = await self._db.execute("DELETE FROM agents WHERE id = ?", (agent_id,))
        if count:
            logger.info("Removed agent %s", agent_id)
        return count > 0
