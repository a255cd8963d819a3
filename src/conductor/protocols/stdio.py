"""Newline-delimited JSON-RPC serve loop for the team tool server.

An agent process launched with ``conductor tools serve --agent-id X``
talks to the coordination core through this loop over stdin/stdout.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, TextIO

from conductor.protocols.models import PARSE_ERROR, JsonRpcError, JsonRpcResponse

if TYPE_CHECKING:
    from conductor.protocols.server import TeamToolServer

logger = logging.getLogger(__name__)


async def _stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def serve_stdio(
    server: TeamToolServer,
    agent_id: str,
    *,
    reader: asyncio.StreamReader | None = None,
    writer: TextIO | None = None,
) -> int:
    """Answer JSON-RPC lines from *reader* until EOF.

    Returns the number of messages handled.
    """
    reader = reader or await _stdin_reader()
    out = writer or sys.stdout
    handled = 0
    logger.info("Team tool server listening on stdio for %s", agent_id)

    while True:
        raw = await reader.readline()
        if not raw:
            break
        line = raw.decode(errors="replace").strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            response = JsonRpcResponse(error=JsonRpcError(code=PARSE_ERROR, message="Parse error")).to_wire()
        else:
            if not isinstance(message, dict):
                response = JsonRpcResponse(error=JsonRpcError(code=PARSE_ERROR, message="Parse error")).to_wire()
            else:
                response = await server.handle_jsonrpc(agent_id, message)
        handled += 1
        if response is not None:
            out.write(json.dumps(response) + "\n")
            out.flush()

    logger.info("Team tool server for %s closed after %d message(s)", agent_id, handled)
    return handled
