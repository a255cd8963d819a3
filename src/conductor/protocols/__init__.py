"""Protocol layer — the team tool protocol and the tool-provider interface."""

from conductor.protocols.errors import ProtocolError, ToolExecutionError, ToolNotFoundError
from conductor.protocols.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse, ToolDef
from conductor.protocols.provider import ToolProvider

__all__ = [
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ProtocolError",
    "ToolDef",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolProvider",
]
