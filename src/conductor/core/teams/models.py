"""Team models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from conductor.core.blackboard.models import BlackboardEntry
from conductor.core.events.models import BusEvent

TeamStatusValue = Literal["idle", "active"]


class TeamMember(BaseModel):
    agent_id: str
    role: str = "member"
    capabilities: list[str] = []


class Team(BaseModel):
    id: str
    name: str
    description: str = ""
    supervisor_id: str | None = None
    members: list[TeamMember] = []
    status: TeamStatusValue = "idle"
    created_at: datetime

    def has_member(self, agent_id: str) -> bool:
        return any(m.agent_id == agent_id for m in self.members)


class MemberStatus(BaseModel):
    agent_id: str
    display_name: str
    role: str
    status: str


class TeamStatus(BaseModel):
    """Snapshot of a team: members' statuses, recent events, shared state."""

    team: Team
    member_statuses: list[MemberStatus] = []
    recent_events: list[BusEvent] = []
    blackboard: list[BlackboardEntry] = []
