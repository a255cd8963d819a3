"""Tests for the team tool server."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest

from conductor.core.agents.registry import AgentRegistry
from conductor.core.blackboard.blackboard import Blackboard
from conductor.core.events.bus import EventBus
from conductor.core.events.mailbox import Mailbox
from conductor.core.teams.models import TeamMember
from conductor.core.teams.store import TeamStore
from conductor.protocols.errors import ToolExecutionError, ToolNotFoundError
from conductor.protocols.models import METHOD_NOT_FOUND, PROTOCOL_VERSION, TOOL_ERROR
from conductor.protocols.provider import ToolProvider
from conductor.protocols.server import SERVER_NAME, TOOLS, TeamToolServer

if TYPE_CHECKING:
    from conductor.storage.database import Database


@pytest.fixture
def server(db: Database) -> TeamToolServer:
    return TeamToolServer(
        EventBus(db), Mailbox(db), Blackboard(db), AgentRegistry(db), TeamStore(db), version="9.9.9"
    )


class TestToolDefinitions:
    def test_fixed_tool_set(self) -> None:
        assert [t.name for t in TOOLS] == [
            "publish_event",
            "check_events",
            "send_message",
            "check_inbox",
            "list_team",
            "get_agent_profile",
            "read_blackboard",
            "update_blackboard",
            "claim_task",
            "complete_task",
            "request_help",
            "delegate_task",
        ]

    def test_schema_has_required_fields(self) -> None:
        send = next(t for t in TOOLS if t.name == "send_message")
        assert send.input_schema["type"] == "object"
        assert set(send.input_schema["required"]) == {"to", "content"}
        assert "title" not in send.input_schema

    def test_function_schema(self) -> None:
        schema = TOOLS[0].to_function_schema()
        assert schema["type"] == "function"
        assert schema["function"]["name"] == "publish_event"


class TestCallTool:
    async def test_publish_and_check_events(self, server: TeamToolServer) -> None:
        published = await server.call_tool("agent-a", "publish_event", {"type": "task.created", "payload": {"n": 1}})
        assert published["source"] == "agent-a"

        found = await server.call_tool("agent-b", "check_events", {"pattern": "task.*"})
        assert [e["id"] for e in found] == [published["id"]]
        exact = await server.call_tool("agent-b", "check_events", {"pattern": "task.created"})
        assert len(exact) == 1

    async def test_messages(self, server: TeamToolServer) -> None:
        sent = await server.call_tool("agent-a", "send_message", {"to": "agent-b", "content": "hi"})
        assert sent["sent"] is True

        inbox = await server.call_tool("agent-b", "check_inbox", {})
        assert [(m["from_agent"], m["content"]) for m in inbox] == [("agent-a", "hi")]
        assert await server.call_tool("agent-b", "check_inbox", {}) == []

    async def test_list_team_and_profile(self, server: TeamToolServer) -> None:
        a = await server.registry.create("alpha")
        b = await server.registry.create("beta")
        assert server.teams is not None
        team = await server.teams.create("t", members=[TeamMember(agent_id=b.id)])

        everyone = await server.call_tool("x", "list_team", {})
        assert {m["id"] for m in everyone} == {a.id, b.id}
        members = await server.call_tool("x", "list_team", {"team_id": team.id})
        assert [m["id"] for m in members] == [b.id]

        profile = await server.call_tool("x", "get_agent_profile", {"agent_id": a.id})
        assert profile["name"] == "alpha"
        assert profile["status"] == "idle"
        assert await server.call_tool("x", "get_agent_profile", {"agent_id": "ghost"}) == {"error": "Agent not found"}

    async def test_list_unknown_team(self, server: TeamToolServer) -> None:
        with pytest.raises(ToolExecutionError, match="Team not found"):
            await server.call_tool("x", "list_team", {"team_id": "team-missing"})

    async def test_blackboard(self, server: TeamToolServer) -> None:
        written = await server.call_tool("agent-a", "update_blackboard", {"key": "plan", "value": [1, 2]})
        assert written["version"] == 1
        assert written["updated_by"] == "agent-a"

        entry = await server.call_tool("agent-b", "read_blackboard", {"key": "plan"})
        assert entry["value"] == [1, 2]
        assert await server.call_tool("agent-b", "read_blackboard", {"key": "nope"}) == {"key": "nope", "value": None}
        everything = await server.call_tool("agent-b", "read_blackboard", {})
        assert [e["key"] for e in everything] == ["plan"]

    async def test_claim_and_complete(self, server: TeamToolServer) -> None:
        delegated = await server.call_tool("boss", "delegate_task", {"agent_id": "w", "task": "write", "priority": "high"})
        assert delegated["payload"] == {"agent_id": "w", "task": "write", "priority": "high"}

        claimed = await server.call_tool("w", "claim_task", {})
        assert claimed["claimed"] is True
        assert claimed["task"]["id"] == delegated["id"]
        assert await server.call_tool("w", "claim_task", {}) == {"claimed": False, "message": "No tasks available"}

        done = await server.call_tool("w", "complete_task", {"task_id": delegated["id"], "output": "draft"})
        assert done["type"] == "task.completed"
        assert done["payload"] == {"task_id": delegated["id"], "output": "draft"}

    async def test_request_help(self, server: TeamToolServer) -> None:
        event = await server.call_tool("w", "request_help", {"topic": "stuck"})
        assert event["type"] == "help.requested"
        assert event["payload"] == {"topic": "stuck", "context": ""}

    async def test_concurrent_claims_one_winner(self, server: TeamToolServer) -> None:
        await server.call_tool("boss", "publish_event", {"type": "task.created", "payload": {"task": "only"}})

        results = await asyncio.gather(
            *(server.call_tool(f"worker-{i}", "claim_task", {"task_type": "task.created"}) for i in range(4))
        )

        assert sum(1 for r in results if r["claimed"]) == 1

    async def test_unknown_tool(self, server: TeamToolServer) -> None:
        with pytest.raises(ToolNotFoundError, match="Unknown tool: teleport"):
            await server.call_tool("x", "teleport", {})

    async def test_invalid_arguments(self, server: TeamToolServer) -> None:
        with pytest.raises(ToolExecutionError, match="send_message"):
            await server.call_tool("x", "send_message", {"to": "y"})


class TestHandleRequest:
    async def test_success(self, server: TeamToolServer) -> None:
        response = await server.handle_request("a", {"method": "publish_event", "params": {"type": "t"}})
        assert response["result"]["type"] == "t"

    async def test_error(self, server: TeamToolServer) -> None:
        assert await server.handle_request("a", {"method": "nope"}) == {"error": "Unknown tool: nope"}
        assert await server.handle_request("a", {}) == {"error": "Request has no method"}

    async def test_unexpected_failure_becomes_error(self, server: TeamToolServer) -> None:
        with patch.object(server.bus, "publish", AsyncMock(side_effect=RuntimeError("disk full"))):
            response = await server.handle_request("a", {"method": "publish_event", "params": {"type": "t"}})
        assert response == {"error": "disk full"}

    async def test_failure_without_message_uses_class_name(self, server: TeamToolServer) -> None:
        with patch.object(server.bus, "publish", AsyncMock(side_effect=RuntimeError())):
            response = await server.handle_request("a", {"method": "publish_event", "params": {"type": "t"}})
        assert response == {"error": "RuntimeError"}


class TestHandleJsonRpc:
    async def test_initialize(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        assert response is not None
        assert response["id"] == 1
        assert response["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert response["result"]["serverInfo"] == {"name": SERVER_NAME, "version": "9.9.9"}

    async def test_tools_list_uses_camel_case_schema(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
        assert response is not None
        tools = response["result"]["tools"]
        assert len(tools) == 12
        assert "inputSchema" in tools[0]

    async def test_tools_call(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc(
            "agent-a",
            {
                "jsonrpc": "2.0",
                "id": "c1",
                "method": "tools/call",
                "params": {"name": "update_blackboard", "arguments": {"key": "k", "value": "v"}},
            },
        )
        assert response is not None
        [content] = response["result"]["content"]
        assert content["type"] == "text"
        assert json.loads(content["text"])["value"] == "v"

    async def test_tools_call_error(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc(
            "a", {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "bogus"}}
        )
        assert response is not None
        assert response["error"]["code"] == TOOL_ERROR
        assert "result" not in response

    async def test_unknown_method(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "id": 4, "method": "resources/list"})
        assert response is not None
        assert response["error"]["code"] == METHOD_NOT_FOUND

    async def test_ping(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "id": 5, "method": "ping"})
        assert response == {"jsonrpc": "2.0", "id": 5, "result": {}}

    async def test_notification_has_no_response(self, server: TeamToolServer) -> None:
        assert await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "method": "notifications/initialized"}) is None

    async def test_invalid_request(self, server: TeamToolServer) -> None:
        response = await server.handle_jsonrpc("a", {"jsonrpc": "2.0", "id": 6})
        assert response is not None
        assert response["error"]["code"] == -32600


class TestAgentToolProvider:
    async def test_binds_agent(self, server: TeamToolServer) -> None:
        provider = server.for_agent("agent-z")
        assert isinstance(provider, ToolProvider)

        schemas = await provider.discover_tools()
        assert len(schemas) == len(TOOLS)

        raw = await provider.execute_tool("publish_event", {"type": "hello"})
        assert json.loads(raw)["source"] == "agent-z"

    async def test_unknown_tool_propagates(self, server: TeamToolServer) -> None:
        with pytest.raises(ToolNotFoundError):
            await server.for_agent("a").execute_tool("nope", {})
