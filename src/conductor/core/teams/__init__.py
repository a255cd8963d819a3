"""Teams — membership, supervision, and delegation."""

from conductor.core.teams.delegation import Delegation, IntentExtractor, MarkerDelegationExtractor
from conductor.core.teams.models import MemberStatus, Team, TeamMember, TeamStatus
from conductor.core.teams.store import TeamStore
from conductor.core.teams.supervisor import TeamSupervisor, team_source

__all__ = [
    "Delegation",
    "IntentExtractor",
    "MarkerDelegationExtractor",
    "MemberStatus",
    "Team",
    "TeamMember",
    "TeamStatus",
    "TeamStore",
    "TeamSupervisor",
    "team_source",
]
