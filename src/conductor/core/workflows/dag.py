"""Dependency resolution for workflow steps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from conductor.core.workflows.models import WorkflowStep

logger = logging.getLogger(__name__)


def resolve_layers(steps: list[WorkflowStep]) -> list[list[WorkflowStep]]:
    """Group *steps* into execution layers.

    Each layer holds the steps whose ``depends_on`` entries all belong to
    earlier layers.  When no remaining step is eligible (a cycle, or a
    reference to an unknown step id) every remaining step is forced into
    one final layer, so resolution always terminates and no step is lost.
    """
    completed: set[str] = set()
    remaining = list(steps)
    layers: list[list[WorkflowStep]] = []

    while remaining:
        layer = [s for s in remaining if all(dep in completed for dep in s.depends_on)]
        if not layer:
            logger.warning(
                "Unresolvable dependencies among steps %s; running them as a final layer",
                ", ".join(s.id for s in remaining),
            )
            layer = remaining
        layers.append(layer)
        completed.update(s.id for s in layer)
        remaining = [s for s in remaining if all(s is not chosen for chosen in layer)]

    return layers
