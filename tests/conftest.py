"""Shared fixtures: an in-memory database and a scripted execution backend."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from conductor.core.agents.launcher import AgentLauncher
from conductor.core.agents.registry import AgentRegistry
from conductor.core.backends.base import BackendRegistry
from conductor.core.backends.models import BackendDone, BackendEvent, LaunchRequest, TextChunk
from conductor.storage.database import Database


class FakeHandle:
    """Replays a fixed list of backend events; optionally hangs afterwards."""

    def __init__(self, events: list[BackendEvent], *, hang: bool = False) -> None:
        self._events = events
        self._hang = hang
        self.interrupted = False

    async def events(self) -> AsyncIterator[BackendEvent]:
        for event in self._events:
            yield event
        if self._hang:
            await asyncio.Event().wait()

    async def interrupt(self) -> None:
        self.interrupted = True


class FakeBackend:
    """Execution backend whose output is scripted per request.

    ``script`` is either a list of events or a callable building one from
    the :class:`LaunchRequest`.
    """

    def __init__(
        self,
        script: list[BackendEvent] | Callable[[LaunchRequest], list[BackendEvent]] | None = None,
        *,
        name: str = "fake",
        hang: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.script = script if script is not None else reply("ok")
        self.hang = hang
        self.error = error
        self.requests: list[LaunchRequest] = []
        self.handles: list[FakeHandle] = []

    async def start(self, request: LaunchRequest) -> FakeHandle:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        events = self.script(request) if callable(self.script) else list(self.script)
        handle = FakeHandle(events, hang=self.hang)
        self.handles.append(handle)
        return handle


def reply(text: str, session_id: str | None = "sess-1") -> list[BackendEvent]:
    return [TextChunk(text=text, session_id=session_id), BackendDone(session_id=session_id)]


@pytest.fixture
async def db() -> AsyncIterator[Database]:
    database = Database(":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def fake_backend_cls() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def reply_events() -> Callable[..., list[BackendEvent]]:
    return reply


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def registry(db: Database) -> AgentRegistry:
    return AgentRegistry(db)


@pytest.fixture
def launcher(registry: AgentRegistry, fake_backend: FakeBackend) -> AgentLauncher:
    return AgentLauncher(registry, BackendRegistry([fake_backend]))


async def collect(stream: AsyncIterator[Any]) -> list[Any]:
    return [item async for item in stream]


@pytest.fixture
def drain() -> Callable[[AsyncIterator[Any]], Any]:
    return collect


@pytest.fixture
def cli_invoke(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> Callable[..., Any]:
    """Invoke the ``conductor`` CLI against a throwaway home and database."""
    from click.testing import CliRunner

    from conductor.cli import main

    monkeypatch.setenv("CONDUCTOR_HOME", str(tmp_path))
    monkeypatch.delenv("CONDUCTOR_DB", raising=False)
    monkeypatch.setenv("COLUMNS", "200")
    runner = CliRunner()
    db_path = str(tmp_path / "conductor.db")

    def invoke(*args: str) -> Any:
        return runner.invoke(main, ["--db", db_path, *args], catch_exceptions=False)

    return invoke
