"""Agent lifecycle — registry, launcher, canonical events, and log capture."""

from conductor.core.agents.events import (
    AgentEvent,
    ContentBlock,
    EventMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)
from conductor.core.agents.launcher import AgentLauncher
from conductor.core.agents.logbuffer import AgentLogBuffer, LogEntry
from conductor.core.agents.models import AgentConfig, AgentInstance, AgentStatus
from conductor.core.agents.registry import PROCESS_LOST_ERROR, AgentRegistry

__all__ = [
    "PROCESS_LOST_ERROR",
    "AgentConfig",
    "AgentEvent",
    "AgentInstance",
    "AgentLauncher",
    "AgentLogBuffer",
    "AgentRegistry",
    "AgentStatus",
    "ContentBlock",
    "EventMessage",
    "LogEntry",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "Usage",
]
