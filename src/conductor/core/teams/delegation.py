"""Delegation intent extraction from supervisor output.

A supervisor delegates by writing ``[DELEGATE: agentId | task]`` in its
reply.  Markers that do not match are ignored.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

_DELEGATE_PATTERN = re.compile(r"\[DELEGATE:\s*([^|\]]+?)\s*\|\s*([^\]]+?)\s*\]")


class Delegation(BaseModel):
    agent_id: str
    task: str


@runtime_checkable
class IntentExtractor(Protocol):
    """Turns assistant text into structured delegations."""

    def extract(self, text: str) -> list[Delegation]: ...


class MarkerDelegationExtractor:
    """Extracts every well-formed ``[DELEGATE: agentId | task]`` marker."""

    def extract(self, text: str) -> list[Delegation]:
        if "[DELEGATE:" not in text:
            return []
        return [
            Delegation(agent_id=m.group(1).strip(), task=m.group(2).strip())
            for m in _DELEGATE_PATTERN.finditer(text)
            if m.group(1).strip() and m.group(2).strip()
        ]
