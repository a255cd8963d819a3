"""Agent instance models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class AgentStatus(str, Enum):
    """Lifecycle status of an agent instance."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"
    TERMINATED = "terminated"


class AgentConfig(BaseModel):
    """Declared execution settings for an agent.

    ``runtime`` names the execution backend (``litellm``, ``subprocess``,
    or any backend registered under another name).
    """

    runtime: str = "litellm"
    cwd: str | None = None
    system_prompt: str | None = None
    max_turns: int | None = None
    permission_mode: str | None = None
    model: str | None = None
    env: dict[str, str] = {}


class AgentInstance(BaseModel):
    """A registered agent and its current lifecycle state."""

    id: str
    agent_name: str
    display_name: str
    status: AgentStatus = AgentStatus.IDLE
    runtime: str
    session_id: str | None = None
    config: AgentConfig = AgentConfig()
    plugin_slug: str | None = None
    started_at: datetime | None = None
    last_activity: datetime | None = None
    error: str | None = None
