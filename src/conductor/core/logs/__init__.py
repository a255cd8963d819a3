"""System log — persisted workflow and team activity."""

from conductor.core.logs.models import LogSource, SystemLog
from conductor.core.logs.store import LogStore

__all__ = ["LogSource", "LogStore", "SystemLog"]
