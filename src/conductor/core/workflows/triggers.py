"""Event-triggered workflow dispatch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from conductor.core.events.bus import EventBus
    from conductor.core.workflows.engine import WorkflowEngine
    from conductor.core.workflows.models import WorkflowRun
    from conductor.core.workflows.store import WorkflowStore

logger = logging.getLogger(__name__)


class TriggerDispatcher:
    """Starts workflows whose ``event`` trigger matches pending bus events.

    Each matching event is consumed before its run starts, so an event
    starts at most one run even when several dispatchers poll the same
    bus.  The run input is ``{"event": <event as JSON>}``.
    """

    def __init__(self, store: WorkflowStore, bus: EventBus, engine: WorkflowEngine) -> None:
        self._store = store
        self._bus = bus
        self._engine = engine

    async def dispatch(self) -> list[WorkflowRun]:
        runs: list[WorkflowRun] = []
        for workflow in await self._store.list_all():
            pattern = workflow.trigger.event_pattern
            if workflow.trigger.type != "event" or not pattern:
                continue
            for event in reversed(await self._bus.match(pattern)):
                if not await self._bus.consume(event.id):
                    continue
                logger.info("Event %s (%s) triggered workflow %s", event.id, event.type, workflow.id)
                runs.append(await self._engine.run(workflow.id, {"event": event.model_dump(mode="json")}))
        return runs
