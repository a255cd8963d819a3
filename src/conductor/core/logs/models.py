"""System log models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from conductor.core.agents.logbuffer import LogLevel

LogSource = Literal["workflow", "team", "agent", "system"]


class SystemLog(BaseModel):
    """A persisted coordination log entry."""

    id: str
    timestamp: datetime
    level: LogLevel
    source: LogSource
    source_id: str | None = None
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
