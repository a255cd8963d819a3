"""Tests for the aiosqlite-backed Database."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from conductor.storage.database import Database, dumps, new_id, utc_now

if TYPE_CHECKING:
    from pathlib import Path


class TestHelpers:
    def test_new_id_prefix(self) -> None:
        ident = new_id("evt")
        assert ident.startswith("evt-")
        assert len(ident) == len("evt-") + 12

    def test_new_id_unique(self) -> None:
        assert len({new_id("x") for _ in range(100)}) == 100

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None

    def test_dumps_falls_back_to_str(self) -> None:
        stamp = utc_now()
        assert dumps({"at": stamp}) == f'{{"at": "{stamp}"}}'


class TestDatabase:
    async def test_not_connected_raises(self) -> None:
        db = Database()
        assert not db.connected
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.conn

    async def test_schema_created(self, db: Database) -> None:
        rows = await db.fetchall("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {r["name"] for r in rows}
        assert {
            "agents",
            "events",
            "messages",
            "blackboard",
            "teams",
            "workflows",
            "workflow_runs",
            "traces",
            "spans",
            "cost_daily",
        } <= names

    async def test_execute_returns_rowcount(self, db: Database) -> None:
        await db.execute(
            "INSERT INTO events (id, type, source, timestamp) VALUES (?, ?, ?, ?)",
            ("e1", "t", "s", utc_now().isoformat()),
        )
        count = await db.execute("UPDATE events SET consumed = 1 WHERE consumed = 0")
        assert count == 1

    async def test_fetchone_missing(self, db: Database) -> None:
        assert await db.fetchone("SELECT * FROM agents WHERE id = ?", ("nope",)) is None

    async def test_file_database_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "conductor.db"
        async with Database(path) as db:
            await db.execute(
                "INSERT INTO events (id, type, source, timestamp) VALUES (?, ?, ?, ?)",
                ("e1", "t", "s", utc_now().isoformat()),
            )
        assert path.exists()

        async with Database(path) as db:
            row = await db.fetchone("SELECT id FROM events")
        assert row == {"id": "e1"}

    async def test_connect_is_idempotent(self, db: Database) -> None:
        conn = db.conn
        await db.connect()
        assert db.conn is conn

    async def test_run_cascade_on_workflow_delete(self, db: Database) -> None:
        now = utc_now().isoformat()
        await db.execute(
            "INSERT INTO workflows (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            ("wf", "w", now, now),
        )
        await db.execute(
            "INSERT INTO workflow_runs (id, workflow_id, started_at) VALUES (?, ?, ?)",
            ("run", "wf", now),
        )
        await db.execute("DELETE FROM workflows WHERE id = ?", ("wf",))
        assert await db.fetchall("SELECT * FROM workflow_runs") == []
