"""Execution-backend protocols, registry, and event normalisation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from conductor.core.agents.events import AgentEvent, TextBlock, ToolResultBlock, ToolUseBlock
from conductor.core.backends.models import (
    BackendDone,
    BackendError,
    BackendEvent,
    TextChunk,
    ToolCallEvent,
    ToolResultEvent,
)
from conductor.errors import UnknownRuntimeError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from conductor.core.backends.models import LaunchRequest

logger = logging.getLogger(__name__)


@runtime_checkable
class BackendHandle(Protocol):
    """A live backend session started by :meth:`ExecutionBackend.start`."""

    def events(self) -> AsyncIterator[BackendEvent]:
        """Yield backend events until the session finishes."""
        ...

    async def interrupt(self) -> None:
        """Stop the session as soon as possible."""
        ...


@runtime_checkable
class ExecutionBackend(Protocol):
    """Something that can run an agent turn and stream its output."""

    name: str

    async def start(self, request: LaunchRequest) -> BackendHandle:
        """Start (or resume, when ``request.session_id`` is set) a session."""
        ...


class BackendRegistry:
    """Maps runtime names to :class:`ExecutionBackend` instances."""

    def __init__(self, backends: list[ExecutionBackend] | None = None) -> None:
        self._backends: dict[str, ExecutionBackend] = {}
        for backend in backends or []:
            self.register(backend)

    def register(self, backend: ExecutionBackend) -> None:
        if backend.name in self._backends:
            logger.warning("Replacing execution backend %r", backend.name)
        self._backends[backend.name] = backend

    def get(self, runtime: str) -> ExecutionBackend:
        """Return the backend for *runtime*.

        Raises:
            UnknownRuntimeError: If no backend is registered under that name.
        """
        backend = self._backends.get(runtime)
        if backend is None:
            raise UnknownRuntimeError(runtime)
        return backend

    @property
    def names(self) -> list[str]:
        return sorted(self._backends)

    def __contains__(self, runtime: object) -> bool:
        return runtime in self._backends


def normalize(event: BackendEvent) -> AgentEvent:
    """Map one backend event onto the canonical agent event stream."""
    if isinstance(event, TextChunk):
        return AgentEvent.assistant(TextBlock(text=event.text), session_id=event.session_id)
    if isinstance(event, ToolCallEvent):
        block = ToolUseBlock(id=event.call_id, name=event.name, input=event.arguments)
        return AgentEvent.assistant(block, session_id=event.session_id)
    if isinstance(event, ToolResultEvent):
        result = ToolResultBlock(tool_use_id=event.call_id, content=event.content, is_error=event.is_error)
        return AgentEvent.user(result, session_id=event.session_id)
    if isinstance(event, BackendError):
        return AgentEvent(type="error", error=event.message, session_id=event.session_id)
    if isinstance(event, BackendDone):
        return AgentEvent.done(session_id=event.session_id, usage=event.usage)
    msg = f"Unsupported backend event: {event!r}"
    raise TypeError(msg)
