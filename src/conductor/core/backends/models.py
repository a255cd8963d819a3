"""Execution-backend boundary types.

A backend emits a stream of tagged :data:`BackendEvent` values; the
launcher turns each one into a canonical ``AgentEvent`` through
:func:`~conductor.core.backends.base.normalize`.
"""

from typing import Any, Literal

from pydantic import BaseModel

from conductor.core.agents.events import Usage
from conductor.core.agents.models import AgentConfig


class LaunchRequest(BaseModel):
    """Everything a backend needs to start or resume a session."""

    agent_id: str
    prompt: str
    config: AgentConfig = AgentConfig()
    session_id: str | None = None


class TextChunk(BaseModel):
    kind: Literal["text"] = "text"
    text: str
    session_id: str | None = None


class ToolCallEvent(BaseModel):
    kind: Literal["tool_call"] = "tool_call"
    call_id: str
    name: str
    arguments: dict[str, Any] = {}
    session_id: str | None = None


class ToolResultEvent(BaseModel):
    kind: Literal["tool_result"] = "tool_result"
    call_id: str
    content: str = ""
    is_error: bool = False
    session_id: str | None = None


class BackendError(BaseModel):
    kind: Literal["error"] = "error"
    message: str
    session_id: str | None = None


class BackendDone(BaseModel):
    kind: Literal["done"] = "done"
    usage: Usage | None = None
    session_id: str | None = None


BackendEvent = TextChunk | ToolCallEvent | ToolResultEvent | BackendError | BackendDone
