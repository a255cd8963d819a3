"""Conductor — a coordination core for teams of AI agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from conductor.sdk.app import Conductor as Conductor
    from conductor.sdk.loader import WorkflowLoader as WorkflowLoader
    from conductor.sdk.loader import load_settings as load_settings
    from conductor.sdk.models import ConductorSettings as ConductorSettings

_SDK_EXPORTS = {
    "Conductor": "conductor.sdk.app",
    "WorkflowLoader": "conductor.sdk.loader",
    "load_settings": "conductor.sdk.loader",
    "ConductorSettings": "conductor.sdk.models",
}


def __getattr__(name: str) -> object:
    module_path = _SDK_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'conductor' has no attribute {name!r}")
