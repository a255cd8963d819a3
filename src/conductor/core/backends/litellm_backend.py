"""LiteLLMBackend — runs agent turns against any model LiteLLM supports.

Conversation history is kept per session id, so a follow-up prompt with
the same session resumes the conversation.  Pass a
:class:`~conductor.core.backends.sessions.SessionStore` to keep it across
restarts; without one it lives in memory.  When a tool provider is
available for the agent, tool calls requested by the model are executed
and fed back until the model answers without tools or ``max_turns`` is
reached.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import litellm

from conductor.core.agents.events import Usage
from conductor.core.backends.models import (
    BackendDone,
    BackendEvent,
    LaunchRequest,
    TextChunk,
    ToolCallEvent,
    ToolResultEvent,
)
from conductor.protocols.errors import ProtocolError
from conductor.storage.database import new_id
from conductor.utils.keyed_store import KeyedStore
from conductor.utils.telemetry import ATTR_AGENT_ID, ATTR_MODEL, ATTR_TOKENS_COMPLETION, ATTR_TOKENS_PROMPT, get_tracer

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from conductor.core.backends.sessions import SessionHistory
    from conductor.protocols.provider import ToolProvider

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_MAX_TURNS = 10


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    try:
        result: dict[str, Any] = json.loads(raw or "{}")
    except (json.JSONDecodeError, TypeError):
        result = {"raw": raw}
    return result


class LiteLLMBackend:
    """Execution backend driving ``litellm.acompletion``.

    Usage::

        backend = LiteLLMBackend(default_model="anthropic/claude-3-5-sonnet-20241022")
        handle = await backend.start(LaunchRequest(agent_id="a1", prompt="Hi"))
        async for event in handle.events():
            ...
    """

    name = "litellm"

    def __init__(
        self,
        default_model: str = DEFAULT_MODEL,
        *,
        tool_provider_factory: Callable[[str], ToolProvider | None] | None = None,
        sessions: SessionHistory | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        **completion_kwargs: Any,
    ) -> None:
        self.default_model = default_model
        self.tool_provider_factory = tool_provider_factory
        self.sessions: SessionHistory = sessions if sessions is not None else KeyedStore[list[dict[str, Any]]]()
        self.max_turns = max_turns
        self._completion_kwargs = completion_kwargs

    async def start(self, request: LaunchRequest) -> LiteLLMHandle:
        session_id = request.session_id or new_id("sess")
        history = list(await self.sessions.get(session_id) or [])
        if not history and request.config.system_prompt:
            history.append({"role": "system", "content": request.config.system_prompt})
        history.append({"role": "user", "content": request.prompt})
        provider = self.tool_provider_factory(request.agent_id) if self.tool_provider_factory else None
        return LiteLLMHandle(self, request, session_id, history, provider)


class LiteLLMHandle:
    """One running conversation turn loop."""

    def __init__(
        self,
        backend: LiteLLMBackend,
        request: LaunchRequest,
        session_id: str,
        history: list[dict[str, Any]],
        provider: ToolProvider | None,
    ) -> None:
        self._backend = backend
        self._request = request
        self.session_id = session_id
        self._history = history
        self._provider = provider
        self._pending: asyncio.Future[Any] | None = None
        self._interrupted = False

    async def interrupt(self) -> None:
        self._interrupted = True
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    async def events(self) -> AsyncIterator[BackendEvent]:
        config = self._request.config
        model = config.model or self._backend.default_model
        max_turns = config.max_turns or self._backend.max_turns
        tools = await self._provider.discover_tools() if self._provider else None
        usage = Usage()
        cost = 0.0

        for _ in range(max_turns):
            if self._interrupted:
                return
            call_kwargs: dict[str, Any] = {
                "model": model,
                "messages": list(self._history),
                **self._backend._completion_kwargs,
            }
            if tools:
                call_kwargs["tools"] = tools

            with _tracer.start_as_current_span("backend.litellm.completion") as span:
                span.set_attribute(ATTR_AGENT_ID, self._request.agent_id)
                span.set_attribute(ATTR_MODEL, model)
                self._pending = asyncio.ensure_future(litellm.acompletion(**call_kwargs))  # pyright: ignore[reportUnknownMemberType]
                try:
                    response = await self._pending
                except asyncio.CancelledError:
                    if self._interrupted:
                        logger.info("Session %s interrupted", self.session_id)
                        return
                    raise
                finally:
                    self._pending = None

                if getattr(response, "usage", None):
                    usage.input_tokens += response.usage.prompt_tokens or 0
                    usage.output_tokens += response.usage.completion_tokens or 0
                    span.set_attribute(ATTR_TOKENS_PROMPT, response.usage.prompt_tokens or 0)
                    span.set_attribute(ATTR_TOKENS_COMPLETION, response.usage.completion_tokens or 0)
            cost += self._completion_cost(response)

            message = response.choices[0].message
            tool_calls = list(message.tool_calls or [])
            entry: dict[str, Any] = {"role": "assistant", "content": message.content or ""}
            if tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.function.name, "arguments": tc.function.arguments},
                    }
                    for tc in tool_calls
                ]
            self._history.append(entry)

            if message.content:
                yield TextChunk(text=message.content, session_id=self.session_id)

            if not tool_calls:
                break

            for tc in tool_calls:
                arguments = _parse_arguments(tc.function.arguments)
                yield ToolCallEvent(
                    call_id=tc.id,
                    name=tc.function.name,
                    arguments=arguments,
                    session_id=self.session_id,
                )
                content, is_error = await self._run_tool(tc.function.name, arguments)
                self._history.append({"role": "tool", "tool_call_id": tc.id, "content": content})
                yield ToolResultEvent(
                    call_id=tc.id,
                    content=content,
                    is_error=is_error,
                    session_id=self.session_id,
                )
        else:
            logger.warning("Session %s reached max_turns=%d", self.session_id, max_turns)

        await self._backend.sessions.set(self.session_id, self._history)
        usage.cost = cost or None
        yield BackendDone(usage=usage, session_id=self.session_id)

    async def _run_tool(self, name: str, arguments: dict[str, Any]) -> tuple[str, bool]:
        if self._provider is None:
            return json.dumps({"error": f"No tools available: {name}"}), True
        try:
            return await self._provider.execute_tool(name, arguments), False
        except ProtocolError as exc:
            logger.warning("Tool %s failed for %s: %s", name, self._request.agent_id, exc)
            return json.dumps({"error": str(exc)}), True

    @staticmethod
    def _completion_cost(response: Any) -> float:
        try:
            return float(litellm.completion_cost(completion_response=response))  # pyright: ignore[reportUnknownMemberType]
        except Exception:
            logger.debug("No cost information for model response", exc_info=True)
            return 0.0
