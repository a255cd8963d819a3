"""Execution backends — where agent turns actually run."""

from conductor.core.backends.base import BackendHandle, BackendRegistry, ExecutionBackend, normalize
from conductor.core.backends.litellm_backend import LiteLLMBackend
from conductor.core.backends.models import (
    BackendDone,
    BackendError,
    BackendEvent,
    LaunchRequest,
    TextChunk,
    ToolCallEvent,
    ToolResultEvent,
)
from conductor.core.backends.sessions import SessionStore
from conductor.core.backends.subprocess_backend import SubprocessBackend

__all__ = [
    "BackendDone",
    "BackendError",
    "BackendEvent",
    "BackendHandle",
    "BackendRegistry",
    "ExecutionBackend",
    "LaunchRequest",
    "LiteLLMBackend",
    "SessionStore",
    "SubprocessBackend",
    "TextChunk",
    "ToolCallEvent",
    "ToolResultEvent",
    "normalize",
]
