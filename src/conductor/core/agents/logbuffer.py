"""Per-agent in-memory log capture."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from conductor.storage.database import utc_now

logger = logging.getLogger(__name__)

LogLevel = Literal["debug", "info", "warn", "error"]

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LogEntry(BaseModel):
    timestamp: datetime
    level: LogLevel
    message: str
    data: dict[str, Any] | None = None


class AgentLogBuffer:
    """Bounded ring buffer of log entries for each agent.

    Entries are also forwarded to the standard :mod:`logging` logger so
    they appear in the process log alongside everything else.
    """

    def __init__(self, max_entries: int = 500) -> None:
        self._max_entries = max_entries
        self._buffers: dict[str, deque[LogEntry]] = {}
        self._lock = threading.Lock()

    def log(self, agent_id: str, level: LogLevel, message: str, data: dict[str, Any] | None = None) -> LogEntry:
        entry = LogEntry(timestamp=utc_now(), level=level, message=message, data=data)
        with self._lock:
            buffer = self._buffers.get(agent_id)
            if buffer is None:
                buffer = deque(maxlen=self._max_entries)
                self._buffers[agent_id] = buffer
            buffer.append(entry)
        logger.log(_LEVELS[level], "[%s] %s", agent_id, message)
        return entry

    def entries(self, agent_id: str, limit: int | None = None) -> list[LogEntry]:
        """Return the buffered entries for *agent_id*, oldest first."""
        with self._lock:
            items = list(self._buffers.get(agent_id, ()))
        return items[-limit:] if limit else items

    def clear(self, agent_id: str) -> None:
        with self._lock:
            self._buffers.pop(agent_id, None)
