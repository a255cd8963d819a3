"""AgentLauncher — bridges agent instances to their execution backends.

``launch`` and ``prompt`` are async generators of canonical
:class:`AgentEvent` objects.  Whatever happens (unknown agent, backend
exception, backend ``error`` event) the stream ends with exactly one
``done`` event, and an instance is never left ``running`` once the stream
has finished.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import TYPE_CHECKING

from conductor.core.agents.events import AgentEvent
from conductor.core.agents.logbuffer import AgentLogBuffer
from conductor.core.agents.models import AgentStatus
from conductor.core.backends.base import normalize
from conductor.core.backends.models import LaunchRequest
from conductor.errors import BackendFailureError
from conductor.utils.keyed_store import KeyedStore
from conductor.utils.telemetry import ATTR_AGENT_ID, ATTR_RUNTIME, ATTR_SESSION_ID, get_tracer, set_usage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from conductor.core.agents.events import Usage
    from conductor.core.agents.logbuffer import LogEntry
    from conductor.core.agents.models import AgentInstance
    from conductor.core.agents.registry import AgentRegistry
    from conductor.core.backends.base import BackendHandle, BackendRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class AgentLauncher:
    """Starts, resumes, and stops agent sessions.

    Args:
        registry: Durable agent catalog; every status change goes through it.
        backends: Execution backends keyed by runtime name.
        handles: Live backend handles keyed by agent id, used by :meth:`stop`.
        logs: Per-agent log capture.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        backends: BackendRegistry,
        *,
        handles: KeyedStore[BackendHandle] | None = None,
        logs: AgentLogBuffer | None = None,
    ) -> None:
        self.registry = registry
        self.backends = backends
        self.handles: KeyedStore[BackendHandle] = handles or KeyedStore()
        self.logs = logs or AgentLogBuffer()

    async def launch(self, agent_id: str, prompt: str) -> AsyncIterator[AgentEvent]:
        """Run *prompt* on the agent, resuming its session when it has one."""
        instance = await self.registry.get(agent_id)
        if instance is None:
            yield AgentEvent.failure("Agent not found")
            yield AgentEvent.done()
            return
        async for event in self._run(instance, prompt):
            yield event

    async def prompt(self, agent_id: str, message: str) -> AsyncIterator[AgentEvent]:
        """Send a follow-up *message* into the agent's existing session."""
        instance = await self.registry.get(agent_id)
        if instance is None:
            yield AgentEvent.failure("Agent not found")
            yield AgentEvent.done()
            return
        if not instance.session_id:
            yield AgentEvent.failure("Agent has no active session")
            yield AgentEvent.done()
            return
        async for event in self._run(instance, message):
            yield event

    async def stop(self, agent_id: str) -> bool:
        """Interrupt the agent's live session (if any) and mark it terminated."""
        instance = await self.registry.get(agent_id)
        if instance is None:
            return False
        handle = await self.handles.pop(agent_id)
        if handle is not None:
            await self._interrupt(agent_id, handle)
        await self.registry.update_status(agent_id, AgentStatus.TERMINATED)
        self.logs.log(agent_id, "info", "Agent stopped")
        return True

    def agent_logs(self, agent_id: str, limit: int | None = None) -> list[LogEntry]:
        return self.logs.entries(agent_id, limit)

    async def _run(self, instance: AgentInstance, prompt: str) -> AsyncIterator[AgentEvent]:
        agent_id = instance.id
        session_id = instance.session_id
        handle: BackendHandle | None = None
        usage: Usage | None = None
        failure: str | None = None

        self.logs.log(
            agent_id,
            "info",
            "Launching agent",
            {"runtime": instance.runtime, "resume": session_id, "prompt": prompt[:200]},
        )
        span = _tracer.start_span("agent.launch")
        span.set_attribute(ATTR_AGENT_ID, agent_id)
        span.set_attribute(ATTR_RUNTIME, instance.runtime)

        try:
            backend = self.backends.get(instance.runtime)
            await self.registry.update_status(agent_id, AgentStatus.RUNNING)
            yield AgentEvent.status_update(
                f"Resuming {instance.runtime} session..." if session_id else f"Starting {instance.runtime} agent..."
            )

            request = LaunchRequest(agent_id=agent_id, prompt=prompt, config=instance.config, session_id=session_id)
            handle = await backend.start(request)
            replaced = await self.handles.set(agent_id, handle)
            if replaced is not None:
                logger.warning("Agent %s relaunched while a previous session was live", agent_id)

            async with aclosing(handle.events()) as backend_events:
                async for backend_event in backend_events:
                    event = normalize(backend_event)
                    if event.session_id and event.session_id != session_id:
                        session_id = event.session_id
                        await self.registry.update_status(agent_id, session_id=session_id)
                        span.set_attribute(ATTR_SESSION_ID, session_id)
                    if event.type == "error":
                        raise BackendFailureError(instance.runtime, event.error or "Backend reported an error")
                    if event.type == "done":
                        usage = event.usage
                        set_usage(span, usage)
                        break
                    await self.registry.update_status(agent_id)
                    self.logs.log(agent_id, "debug", f"Event: {event.type}")
                    yield event
        except (asyncio.CancelledError, GeneratorExit):
            if handle is not None:
                await self._interrupt(agent_id, handle)
            raise
        except Exception as exc:
            failure = str(exc) or exc.__class__.__name__
            logger.exception("Agent %s failed", agent_id)
            self.logs.log(agent_id, "error", f"Agent error: {failure}")
            await self.registry.update_status(agent_id, AgentStatus.ERROR, error=failure)
            span.record_exception(exc)
        finally:
            if handle is not None:
                await self.handles.delete_if(agent_id, handle)
            current = await self.registry.get(agent_id)
            if current is not None and current.status is AgentStatus.RUNNING:
                await self.registry.update_status(agent_id, AgentStatus.IDLE)
            self.logs.log(agent_id, "info", "Agent run completed")
            span.end()

        if failure is not None:
            yield AgentEvent.failure(failure)
        yield AgentEvent.done(session_id=session_id, usage=usage)

    async def _interrupt(self, agent_id: str, handle: BackendHandle) -> None:
        try:
            await handle.interrupt()
        except Exception:
            logger.warning("Failed to interrupt agent %s", agent_id, exc_info=True)
