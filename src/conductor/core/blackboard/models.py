"""Blackboard data models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

GLOBAL_SCOPE = "_global"


class BlackboardEntry(BaseModel):
    """A versioned value under ``(key, team_id)``.

    ``version`` starts at 1 and increases by exactly one per write.
    """

    key: str
    team_id: str = GLOBAL_SCOPE
    value: Any = None
    updated_by: str
    updated_at: datetime
    version: int = 1
