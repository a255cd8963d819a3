"""Event bus data models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class BusEvent(BaseModel):
    """An append-only record published on the bus.

    ``type`` is dot-namespaced (``task.delegated``, ``team.started``).
    Only ``consumed`` ever changes after publication, and only from
    ``False`` to ``True``.
    """

    id: str
    type: str
    source: str
    timestamp: datetime
    payload: dict[str, Any] = {}
    consumed: bool = False


class DirectMessage(BaseModel):
    """A point-to-point message between two agents."""

    id: str
    from_agent: str
    to_agent: str
    content: str
    timestamp: datetime
    read: bool = False
