"""SubprocessBackend — runs an agent CLI that streams JSON records.

The command (``claude`` by default) is invoked in print mode with
``--output-format stream-json`` and writes one JSON object per line:

* ``{"type": "system", "session_id": ...}`` announces the session.
* ``{"type": "assistant", "message": {"content": [...]}}`` carries text
  and ``tool_use`` blocks.
* ``{"type": "user", "message": {"content": [...]}}`` carries
  ``tool_result`` blocks.
* ``{"type": "result", ...}`` ends the turn with usage and cost.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import TYPE_CHECKING, Any

from conductor.core.agents.events import Usage
from conductor.core.backends.models import (
    BackendDone,
    BackendError,
    BackendEvent,
    LaunchRequest,
    TextChunk,
    ToolCallEvent,
    ToolResultEvent,
)
from conductor.errors import BackendFailureError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ["claude"]
_TERMINATE_GRACE = 5.0
# A single stream-json record can carry a whole file read by a tool.
_STREAM_LIMIT = 16 * 1024 * 1024


def build_args(command: list[str], request: LaunchRequest) -> list[str]:
    """Return the full argv for *request*."""
    config = request.config
    args = [*command, "-p", request.prompt, "--output-format", "stream-json", "--verbose"]
    if request.session_id:
        args += ["--resume", request.session_id]
    if config.system_prompt:
        args += ["--append-system-prompt", config.system_prompt]
    if config.max_turns:
        args += ["--max-turns", str(config.max_turns)]
    if config.permission_mode:
        args += ["--permission-mode", config.permission_mode]
    if config.model:
        args += ["--model", config.model]
    return args


def _result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(str(part.get("text", "")) for part in content if isinstance(part, dict))
    return json.dumps(content)


def parse_record(record: dict[str, Any], session_id: str | None) -> list[BackendEvent]:
    """Convert one stream-json record into backend events."""
    kind = record.get("type")
    message = record.get("message") or {}
    blocks: list[dict[str, Any]] = (message.get("content") or []) if isinstance(message, dict) else []
    events: list[BackendEvent] = []

    if kind == "assistant":
        for block in blocks:
            if block.get("type") == "text" and block.get("text"):
                events.append(TextChunk(text=block["text"], session_id=session_id))
            elif block.get("type") == "tool_use":
                events.append(
                    ToolCallEvent(
                        call_id=str(block.get("id", "")),
                        name=str(block.get("name", "")),
                        arguments=block.get("input") or {},
                        session_id=session_id,
                    )
                )
    elif kind == "user":
        for block in blocks:
            if block.get("type") == "tool_result":
                events.append(
                    ToolResultEvent(
                        call_id=str(block.get("tool_use_id", "")),
                        content=_result_text(block.get("content", "")),
                        is_error=bool(block.get("is_error", False)),
                        session_id=session_id,
                    )
                )
    elif kind == "result":
        if record.get("is_error"):
            detail = record.get("result") or record.get("subtype") or "Agent run failed"
            events.append(BackendError(message=str(detail), session_id=session_id))
        else:
            raw_usage = record.get("usage") or {}
            usage = Usage(
                input_tokens=int(raw_usage.get("input_tokens", 0)),
                output_tokens=int(raw_usage.get("output_tokens", 0)),
                cost=record.get("total_cost_usd"),
            )
            events.append(BackendDone(usage=usage, session_id=session_id))
    return events


class SubprocessBackend:
    """Execution backend wrapping an agent CLI process."""

    name = "subprocess"

    def __init__(self, command: list[str] | None = None) -> None:
        self.command = command or list(DEFAULT_COMMAND)

    async def start(self, request: LaunchRequest) -> SubprocessHandle:
        args = build_args(self.command, request)
        logger.info("Starting %s for agent %s", self.command[0], request.agent_id)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
                cwd=request.config.cwd,
                env={**os.environ, **request.config.env},
            )
        except OSError as exc:
            raise BackendFailureError(self.name, f"Failed to start {self.command[0]}: {exc}") from exc
        return SubprocessHandle(proc, session_id=request.session_id)


class SubprocessHandle:
    def __init__(self, proc: asyncio.subprocess.Process, session_id: str | None = None) -> None:
        self._proc = proc
        self.session_id = session_id
        self._interrupted = False

    async def interrupt(self) -> None:
        self._interrupted = True
        await self._terminate()

    async def _terminate(self) -> None:
        if self._proc.returncode is not None:
            return
        self._proc.terminate()
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=_TERMINATE_GRACE)
        except TimeoutError:
            self._proc.kill()
            await self._proc.wait()

    async def events(self) -> AsyncIterator[BackendEvent]:
        assert self._proc.stdout is not None
        assert self._proc.stderr is not None
        stderr_task = asyncio.ensure_future(self._proc.stderr.read())
        finished = False
        try:
            async for raw in self._proc.stdout:
                line = raw.decode(errors="replace").strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Ignoring non-JSON output: %s", line[:200])
                    continue
                if not isinstance(record, dict):
                    continue
                if record.get("session_id"):
                    self.session_id = str(record["session_id"])
                for event in parse_record(record, self.session_id):
                    finished = finished or isinstance(event, BackendDone | BackendError)
                    yield event

            returncode = await self._proc.wait()
            stderr = (await stderr_task).decode(errors="replace").strip()
        finally:
            if not stderr_task.done():
                stderr_task.cancel()
            # Consumer stopped early or the stream broke.
            await self._terminate()

        if self._interrupted or finished:
            return
        if returncode != 0:
            detail = stderr or f"Process exited with code {returncode}"
            yield BackendError(message=detail, session_id=self.session_id)
        else:
            yield BackendDone(session_id=self.session_id)
