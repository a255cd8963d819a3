"""Tests for the durable AgentRegistry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from conductor.core.agents.models import AgentConfig, AgentStatus
from conductor.core.agents.registry import PROCESS_LOST_ERROR, AgentRegistry
from conductor.errors import AgentNotFoundError
from conductor.storage.database import Database

if TYPE_CHECKING:
    from pathlib import Path


class TestAgentRegistry:
    async def test_create_defaults(self, registry: AgentRegistry) -> None:
        agent = await registry.create("researcher")
        assert agent.id.startswith("agent-")
        assert agent.display_name == "researcher"
        assert agent.status is AgentStatus.IDLE
        assert agent.runtime == "litellm"

    async def test_create_with_config(self, registry: AgentRegistry) -> None:
        config = AgentConfig(runtime="subprocess", model="m", env={"A": "1"})
        agent = await registry.create("w", display_name="Writer", config=config, agent_id="writer-1")

        fetched = await registry.get("writer-1")
        assert fetched is not None
        assert fetched.display_name == "Writer"
        assert fetched.runtime == "subprocess"
        assert fetched.config == config
        assert agent.id == "writer-1"

    async def test_get_missing(self, registry: AgentRegistry) -> None:
        assert await registry.get("nope") is None

    async def test_find_by_name(self, registry: AgentRegistry) -> None:
        agent = await registry.create("researcher")
        by_name = await registry.find("researcher")
        assert by_name is not None and by_name.id == agent.id
        assert await registry.find("unknown") is None

    async def test_list_all_in_creation_order(self, registry: AgentRegistry) -> None:
        a = await registry.create("a")
        b = await registry.create("b")
        assert [x.id for x in await registry.list_all()] == [a.id, b.id]

    async def test_update_status_stamps_activity(self, registry: AgentRegistry) -> None:
        agent = await registry.create("a")
        assert agent.last_activity is None

        updated = await registry.update_status(agent.id)
        assert updated.last_activity is not None
        assert updated.status is AgentStatus.IDLE

    async def test_running_sets_started_and_clears_error(self, registry: AgentRegistry) -> None:
        agent = await registry.create("a")
        await registry.update_status(agent.id, AgentStatus.ERROR, error="boom")

        running = await registry.update_status(agent.id, AgentStatus.RUNNING)
        assert running.started_at is not None
        assert running.error is None

    async def test_update_session(self, registry: AgentRegistry) -> None:
        agent = await registry.create("a")
        updated = await registry.update_status(agent.id, session_id="sess-1")
        assert updated.session_id == "sess-1"

    async def test_update_missing_raises(self, registry: AgentRegistry) -> None:
        with pytest.raises(AgentNotFoundError, match="Agent not found: ghost"):
            await registry.update_status("ghost", AgentStatus.RUNNING)

    async def test_remove(self, registry: AgentRegistry) -> None:
        agent = await registry.create("a")
        assert await registry.remove(agent.id) is True
        assert await registry.remove(agent.id) is False


class TestRecovery:
    async def test_restart_terminates_orphans(self, tmp_path: Path) -> None:
        path = tmp_path / "agents.db"
        async with Database(path) as db:
            registry = AgentRegistry(db)
            running = await registry.create("r")
            paused = await registry.create("p")
            idle = await registry.create("i")
            await registry.update_status(running.id, AgentStatus.RUNNING)
            await registry.update_status(paused.id, AgentStatus.PAUSED)

        async with Database(path) as db:
            registry = AgentRegistry(db)
            r = await registry.get(running.id)
            p = await registry.get(paused.id)
            i = await registry.get(idle.id)

        assert r is not None and r.status is AgentStatus.TERMINATED
        assert r.error == PROCESS_LOST_ERROR
        assert p is not None and p.status is AgentStatus.TERMINATED
        assert i is not None and i.status is AgentStatus.IDLE
        assert i.error is None

    async def test_recover_counts(self, db: Database) -> None:
        registry = AgentRegistry(db)
        agent = await registry.create("r")
        await registry.update_status(agent.id, AgentStatus.RUNNING)

        assert await AgentRegistry(db).recover() == 1
        assert await AgentRegistry(db).recover() == 0

    async def test_recovery_runs_once_per_registry(self, registry: AgentRegistry) -> None:
        agent = await registry.create("r")
        await registry.update_status(agent.id, AgentStatus.RUNNING)

        fetched = await registry.get(agent.id)
        assert fetched is not None and fetched.status is AgentStatus.RUNNING
