"""SDK error types."""

from __future__ import annotations

from conductor.errors import ConductorError


class WorkflowValidationError(ConductorError):
    """Raised when a workflow YAML fails parsing or validation."""


class SettingsError(ConductorError):
    """Raised when the settings file cannot be read or validated."""
