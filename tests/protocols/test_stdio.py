"""Tests for the newline-delimited JSON-RPC serve loop."""

from __future__ import annotations

import asyncio
import io
import json
from typing import TYPE_CHECKING

from conductor.core.agents.registry import AgentRegistry
from conductor.core.blackboard.blackboard import Blackboard
from conductor.core.events.bus import EventBus
from conductor.core.events.mailbox import Mailbox
from conductor.protocols.models import PARSE_ERROR
from conductor.protocols.server import TeamToolServer
from conductor.protocols.stdio import serve_stdio

if TYPE_CHECKING:
    from conductor.storage.database import Database


def _reader(*lines: str) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data((line + "\n").encode())
    reader.feed_eof()
    return reader


class TestServeStdio:
    async def test_round_trip(self, db: Database) -> None:
        server = TeamToolServer(EventBus(db), Mailbox(db), Blackboard(db), AgentRegistry(db))
        out = io.StringIO()
        reader = _reader(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize"}),
            json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
            "",
            "{not json",
            json.dumps(
                {
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "tools/call",
                    "params": {"name": "publish_event", "arguments": {"type": "hello"}},
                }
            ),
        )

        handled = await serve_stdio(server, "agent-io", reader=reader, writer=out)

        assert handled == 4
        responses = [json.loads(line) for line in out.getvalue().splitlines()]
        assert [r.get("id") for r in responses] == [1, None, 2]
        assert responses[1]["error"]["code"] == PARSE_ERROR
        published = await server.bus.query("hello")
        assert published[0].source == "agent-io"

    async def test_non_object_is_parse_error(self, db: Database) -> None:
        server = TeamToolServer(EventBus(db), Mailbox(db), Blackboard(db), AgentRegistry(db))
        out = io.StringIO()

        await serve_stdio(server, "a", reader=_reader("[1, 2]"), writer=out)

        [response] = [json.loads(line) for line in out.getvalue().splitlines()]
        assert response["error"]["code"] == PARSE_ERROR

    async def test_empty_input(self, db: Database) -> None:
        server = TeamToolServer(EventBus(db), Mailbox(db), Blackboard(db), AgentRegistry(db))
        out = io.StringIO()
        assert await serve_stdio(server, "a", reader=_reader(), writer=out) == 0
        assert out.getvalue() == ""
