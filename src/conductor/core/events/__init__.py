"""Event bus and direct messaging between agents."""

from conductor.core.events.bus import EventBus, pattern_to_like
from conductor.core.events.mailbox import Mailbox
from conductor.core.events.models import BusEvent, DirectMessage

__all__ = [
    "BusEvent",
    "DirectMessage",
    "EventBus",
    "Mailbox",
    "pattern_to_like",
]
