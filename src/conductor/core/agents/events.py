"""Canonical agent event stream.

Every execution backend's output is normalised into :class:`AgentEvent`
objects, so workflow steps, team supervisors and the CLI consume a single
shape regardless of which backend ran the agent.  A launch stream always
ends with exactly one ``done`` event.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = {}


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str = ""
    is_error: bool = False


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class EventMessage(BaseModel):
    """Message body carried by ``assistant`` and ``user`` events."""

    role: Literal["assistant", "user"]
    content: list[ContentBlock] = []


class Usage(BaseModel):
    """Token usage and cost reported when a backend finishes."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost: float | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# ---------------------------------------------------------------------------
# Agent event
# ---------------------------------------------------------------------------

EventType = Literal["status", "assistant", "user", "error", "done"]


class AgentEvent(BaseModel):
    """One element of a normalised agent stream."""

    type: EventType
    message: EventMessage | None = None
    status: str | None = None
    error: str | None = None
    session_id: str | None = None
    usage: Usage | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks (empty for non-message events)."""
        if self.message is None:
            return ""
        return "".join(b.text for b in self.message.content if isinstance(b, TextBlock))

    @property
    def text_blocks(self) -> list[str]:
        if self.message is None:
            return []
        return [b.text for b in self.message.content if isinstance(b, TextBlock)]

    @classmethod
    def status_update(cls, status: str) -> "AgentEvent":
        return cls(type="status", status=status)

    @classmethod
    def assistant(cls, *blocks: ContentBlock, session_id: str | None = None) -> "AgentEvent":
        return cls(
            type="assistant",
            message=EventMessage(role="assistant", content=list(blocks)),
            session_id=session_id,
        )

    @classmethod
    def assistant_text(cls, text: str, session_id: str | None = None) -> "AgentEvent":
        return cls.assistant(TextBlock(text=text), session_id=session_id)

    @classmethod
    def user(cls, *blocks: ContentBlock, session_id: str | None = None) -> "AgentEvent":
        return cls(
            type="user",
            message=EventMessage(role="user", content=list(blocks)),
            session_id=session_id,
        )

    @classmethod
    def failure(cls, error: str) -> "AgentEvent":
        return cls(type="error", error=error)

    @classmethod
    def done(cls, session_id: str | None = None, usage: Usage | None = None) -> "AgentEvent":
        return cls(type="done", session_id=session_id, usage=usage)
