"""Blackboard — versioned shared state for multi-agent coordination."""

from conductor.core.blackboard.blackboard import Blackboard
from conductor.core.blackboard.models import GLOBAL_SCOPE, BlackboardEntry

__all__ = [
    "GLOBAL_SCOPE",
    "Blackboard",
    "BlackboardEntry",
]
