"""Conductor SDK — programmatic interface to the coordination core."""

from conductor.sdk.app import Conductor
from conductor.sdk.errors import SettingsError, WorkflowValidationError
from conductor.sdk.loader import WorkflowLoader, load_settings, parse_workflow
from conductor.sdk.models import ConductorSettings, LiteLLMSettings, SubprocessSettings, TelemetrySettings

__all__ = [
    "Conductor",
    "ConductorSettings",
    "LiteLLMSettings",
    "SettingsError",
    "SubprocessSettings",
    "TelemetrySettings",
    "WorkflowLoader",
    "WorkflowValidationError",
    "load_settings",
    "parse_workflow",
]
