"""TeamToolServer — coordination primitives exposed as agent-callable tools.

Every call is made on behalf of an acting agent, whose id becomes the
``source`` of published events, the sender of messages, and the writer of
blackboard entries.  The same tool set is reachable three ways:

* :meth:`TeamToolServer.call_tool` for in-process callers,
* :meth:`TeamToolServer.handle_request` for the ``{method, params}`` ->
  ``{result | error}`` contract,
* :meth:`TeamToolServer.handle_jsonrpc` for MCP-style JSON-RPC clients
  (see :mod:`conductor.protocols.stdio`).
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ValidationError

from conductor.core.blackboard.models import GLOBAL_SCOPE
from conductor.protocols.errors import ProtocolError, ToolExecutionError, ToolNotFoundError
from conductor.protocols.models import (
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    TOOL_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ToolDef,
)
from conductor.utils.telemetry import ATTR_AGENT_ID, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from conductor.core.agents.registry import AgentRegistry
    from conductor.core.blackboard.blackboard import Blackboard
    from conductor.core.events.bus import EventBus
    from conductor.core.events.mailbox import Mailbox
    from conductor.core.teams.store import TeamStore

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

SERVER_NAME = "conductor-team-server"
DEFAULT_TASK_TYPE = "task.delegated"

# ---------------------------------------------------------------------------
# Tool arguments
# ---------------------------------------------------------------------------


class PublishEventArgs(BaseModel):
    type: str
    payload: dict[str, Any] = {}


class CheckEventsArgs(BaseModel):
    pattern: str | None = None
    limit: int = 20


class SendMessageArgs(BaseModel):
    to: str
    content: str


class CheckInboxArgs(BaseModel):
    unread_only: bool = True


class ListTeamArgs(BaseModel):
    team_id: str | None = None


class GetAgentProfileArgs(BaseModel):
    agent_id: str


class ReadBlackboardArgs(BaseModel):
    key: str | None = None
    team_id: str = GLOBAL_SCOPE


class UpdateBlackboardArgs(BaseModel):
    key: str
    value: Any
    team_id: str = GLOBAL_SCOPE


class ClaimTaskArgs(BaseModel):
    task_type: str = DEFAULT_TASK_TYPE


class CompleteTaskArgs(BaseModel):
    task_id: str
    output: str


class RequestHelpArgs(BaseModel):
    topic: str
    context: str = ""


class DelegateTaskArgs(BaseModel):
    agent_id: str
    task: str
    priority: Literal["low", "medium", "high"] = "medium"


_TOOL_SPECS: list[tuple[str, str, type[BaseModel]]] = [
    ("publish_event", "Publish an event to the team event bus", PublishEventArgs),
    ("check_events", "Check for unconsumed events by type or pattern (e.g. 'task.*')", CheckEventsArgs),
    ("send_message", "Send a direct message to another agent", SendMessageArgs),
    ("check_inbox", "Check messages sent to this agent", CheckInboxArgs),
    ("list_team", "List agents (or a team's members) with their status", ListTeamArgs),
    ("get_agent_profile", "Get an agent's profile and configuration", GetAgentProfileArgs),
    ("read_blackboard", "Read a value (or every value) from the shared blackboard", ReadBlackboardArgs),
    ("update_blackboard", "Write a value to the shared blackboard", UpdateBlackboardArgs),
    ("claim_task", "Claim the newest unclaimed task of a type", ClaimTaskArgs),
    ("complete_task", "Mark a claimed task as completed with output", CompleteTaskArgs),
    ("request_help", "Signal that you need assistance from another agent", RequestHelpArgs),
    ("delegate_task", "Assign a task to another agent", DelegateTaskArgs),
]


def _input_schema(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


TOOLS: list[ToolDef] = [
    ToolDef(name=name, description=description, input_schema=_input_schema(model))
    for name, description, model in _TOOL_SPECS
]
_ARG_MODELS: dict[str, type[BaseModel]] = {name: model for name, _, model in _TOOL_SPECS}


class TeamToolServer:
    """Maps tool calls onto the event bus, mailbox, blackboard and registry."""

    def __init__(
        self,
        bus: EventBus,
        mailbox: Mailbox,
        blackboard: Blackboard,
        registry: AgentRegistry,
        teams: TeamStore | None = None,
        *,
        version: str = "0.1.0",
    ) -> None:
        self.bus = bus
        self.mailbox = mailbox
        self.blackboard = blackboard
        self.registry = registry
        self.teams = teams
        self.version = version

    @property
    def tools(self) -> list[ToolDef]:
        return list(TOOLS)

    def for_agent(self, agent_id: str) -> AgentToolProvider:
        """Return a :class:`~conductor.protocols.provider.ToolProvider` acting as *agent_id*."""
        return AgentToolProvider(self, agent_id)

    async def call_tool(self, agent_id: str, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Run tool *name* as *agent_id* and return a JSON-compatible result.

        Raises:
            ToolNotFoundError: If *name* is not one of :data:`TOOLS`.
            ToolExecutionError: If the arguments do not validate.
        """
        model = _ARG_MODELS.get(name)
        if model is None:
            raise ToolNotFoundError(name)
        try:
            args = model.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolExecutionError(name, str(exc)) from exc

        with _tracer.start_as_current_span("tool.call") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_AGENT_ID, agent_id)
            logger.debug("Tool %s called by %s", name, agent_id)
            handler = getattr(self, f"_tool_{name}")
            return await handler(agent_id, args)

    async def handle_request(self, agent_id: str, request: dict[str, Any]) -> dict[str, Any]:
        """Serve a ``{"method": tool, "params": {...}}`` request.

        Returns ``{"result": ...}`` on success or ``{"error": message}``,
        including when a handler fails unexpectedly.
        """
        method = request.get("method")
        if not isinstance(method, str):
            return {"error": "Request has no method"}
        try:
            return {"result": await self.call_tool(agent_id, method, request.get("params") or {})}
        except ProtocolError as exc:
            return {"error": str(exc)}
        except Exception as exc:
            logger.exception("Tool %s failed for %s", method, agent_id)
            return {"error": str(exc) or exc.__class__.__name__}

    async def handle_jsonrpc(self, agent_id: str, message: dict[str, Any]) -> dict[str, Any] | None:
        """Serve one JSON-RPC 2.0 message; notifications return ``None``."""
        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError as exc:
            error = JsonRpcError(code=INVALID_REQUEST, message=f"Invalid request: {exc.error_count()} error(s)")
            return JsonRpcResponse(id=message.get("id"), error=error).to_wire()

        if request.id is None:
            logger.debug("Notification %s from %s", request.method, agent_id)
            return None

        response = JsonRpcResponse(id=request.id)
        if request.method == "initialize":
            response.result = {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": self.version},
            }
        elif request.method == "tools/list":
            response.result = {"tools": [t.model_dump(by_alias=True) for t in TOOLS]}
        elif request.method == "tools/call":
            name = str(request.params.get("name", ""))
            try:
                result = await self.call_tool(agent_id, name, request.params.get("arguments") or {})
            except ProtocolError as exc:
                response.error = JsonRpcError(code=TOOL_ERROR, message=str(exc))
            except Exception as exc:
                logger.exception("Tool %s failed for %s", name, agent_id)
                response.error = JsonRpcError(code=TOOL_ERROR, message=str(exc))
            else:
                response.result = {"content": [{"type": "text", "text": json.dumps(result, indent=2, default=str)}]}
        elif request.method == "ping":
            response.result = {}
        else:
            response.error = JsonRpcError(code=METHOD_NOT_FOUND, message=f"Method not found: {request.method}")
        return response.to_wire()

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def _tool_publish_event(self, agent_id: str, args: PublishEventArgs) -> dict[str, Any]:
        event = await self.bus.publish(args.type, agent_id, args.payload)
        return event.model_dump(mode="json")

    async def _tool_check_events(self, agent_id: str, args: CheckEventsArgs) -> list[dict[str, Any]]:
        if args.pattern and "*" in args.pattern:
            events = await self.bus.match(args.pattern, limit=args.limit)
        else:
            events = await self.bus.query(type=args.pattern, limit=args.limit)
        return [e.model_dump(mode="json") for e in events]

    async def _tool_send_message(self, agent_id: str, args: SendMessageArgs) -> dict[str, Any]:
        message = await self.mailbox.send(agent_id, args.to, args.content)
        return {"sent": True, "message_id": message.id}

    async def _tool_check_inbox(self, agent_id: str, args: CheckInboxArgs) -> list[dict[str, Any]]:
        messages = await self.mailbox.inbox(agent_id, unread_only=args.unread_only)
        return [m.model_dump(mode="json") for m in messages]

    async def _tool_list_team(self, agent_id: str, args: ListTeamArgs) -> list[dict[str, Any]]:
        agents = await self.registry.list_all()
        if args.team_id is not None:
            if self.teams is None:
                raise ToolExecutionError("list_team", "Team lookup is not available")
            team = await self.teams.get(args.team_id)
            if team is None:
                raise ToolExecutionError("list_team", f"Team not found: {args.team_id}")
            agents = [a for a in agents if team.has_member(a.id)]
        return [{"id": a.id, "name": a.display_name, "status": a.status.value, "runtime": a.runtime} for a in agents]

    async def _tool_get_agent_profile(self, agent_id: str, args: GetAgentProfileArgs) -> dict[str, Any]:
        agent = await self.registry.get(args.agent_id)
        if agent is None:
            return {"error": "Agent not found"}
        return {
            "id": agent.id,
            "name": agent.display_name,
            "status": agent.status.value,
            "runtime": agent.runtime,
            "config": {"max_turns": agent.config.max_turns, "permission_mode": agent.config.permission_mode},
        }

    async def _tool_read_blackboard(self, agent_id: str, args: ReadBlackboardArgs) -> Any:
        if args.key:
            entry = await self.blackboard.read(args.key, args.team_id)
            return entry.model_dump(mode="json") if entry else {"key": args.key, "value": None}
        return [e.model_dump(mode="json") for e in await self.blackboard.read_all(args.team_id)]

    async def _tool_update_blackboard(self, agent_id: str, args: UpdateBlackboardArgs) -> dict[str, Any]:
        entry = await self.blackboard.write(args.key, args.value, agent_id, args.team_id)
        return entry.model_dump(mode="json")

    async def _tool_claim_task(self, agent_id: str, args: ClaimTaskArgs) -> dict[str, Any]:
        event = await self.bus.claim(args.task_type)
        if event is None:
            return {"claimed": False, "message": "No tasks available"}
        logger.info("Agent %s claimed %s", agent_id, event.id)
        return {"claimed": True, "task": event.model_dump(mode="json")}

    async def _tool_complete_task(self, agent_id: str, args: CompleteTaskArgs) -> dict[str, Any]:
        event = await self.bus.publish("task.completed", agent_id, {"task_id": args.task_id, "output": args.output})
        return event.model_dump(mode="json")

    async def _tool_request_help(self, agent_id: str, args: RequestHelpArgs) -> dict[str, Any]:
        event = await self.bus.publish("help.requested", agent_id, {"topic": args.topic, "context": args.context})
        return event.model_dump(mode="json")

    async def _tool_delegate_task(self, agent_id: str, args: DelegateTaskArgs) -> dict[str, Any]:
        event = await self.bus.publish(
            "task.delegated",
            agent_id,
            {"agent_id": args.agent_id, "task": args.task, "priority": args.priority},
        )
        return event.model_dump(mode="json")


class AgentToolProvider:
    """The team tool set bound to one acting agent.

    Satisfies the :class:`~conductor.protocols.provider.ToolProvider`
    protocol, so it can be handed to an execution backend.
    """

    def __init__(self, server: TeamToolServer, agent_id: str) -> None:
        self._server = server
        self.agent_id = agent_id

    async def discover_tools(self) -> list[dict[str, Any]]:
        return [t.to_function_schema() for t in self._server.tools]

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> str:
        result = await self._server.call_tool(self.agent_id, name, arguments)
        return json.dumps(result, default=str)
