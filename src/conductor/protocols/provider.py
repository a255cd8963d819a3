"""ToolProvider protocol — tools an execution backend can offer a model.

The team tool server satisfies this protocol through
:meth:`~conductor.protocols.server.TeamToolServer.for_agent`, which binds
every call to the acting agent's id.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolProvider(Protocol):
    """Discovers and executes tools on behalf of one agent."""

    async def discover_tools(self) -> list[dict[str, Any]]:
        """Return tools as OpenAI-compatible function schemas.

        Each dict follows the shape::

            {
                "type": "function",
                "function": {
                    "name": "...",
                    "description": "...",
                    "parameters": { ... }   # JSON Schema
                }
            }
        """
        ...

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Execute a tool by name and return its result as JSON text."""
        ...
