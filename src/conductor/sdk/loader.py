"""YAML loading for workflow definitions and settings."""

from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from conductor.core.workflows.models import WorkflowDefinition
from conductor.sdk.errors import SettingsError, WorkflowValidationError
from conductor.sdk.models import DEFAULT_HOME, ConductorSettings

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "conductor.yaml"
ENV_HOME = "CONDUCTOR_HOME"
ENV_DB = "CONDUCTOR_DB"


def _read_yaml(path: Path, error_cls: type[Exception]) -> Any:
    """Read *path*, expand env vars, and parse YAML."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise error_cls(f"Cannot read {path}: {exc}") from exc

    try:
        return yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as exc:
        raise error_cls(f"YAML parse error: {exc}") from exc


class WorkflowLoader:
    """Load and validate a workflow YAML file into a :class:`WorkflowDefinition`.

    Example YAML::

        name: research-report
        trigger:
          type: manual
        steps:
          - id: research
            name: Research
            agent_id: researcher
            prompt: "Collect sources on {{topic}}"
            output_key: notes
          - id: write
            name: Write
            agent_id: writer
            depends_on: [research]
            condition: notes
            prompt: "Write a report from: {{notes}}"
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> WorkflowDefinition:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            WorkflowValidationError: On YAML parse errors, schema validation
                failures, or duplicate step ids.
        """
        data = _read_yaml(self._path, WorkflowValidationError)
        if not isinstance(data, dict):
            raise WorkflowValidationError("Workflow YAML must be a mapping")
        return parse_workflow(data)


def parse_workflow(data: dict[str, Any]) -> WorkflowDefinition:
    try:
        definition = WorkflowDefinition.model_validate(data)
    except ValidationError as exc:
        raise WorkflowValidationError(str(exc)) from exc

    duplicates = [step_id for step_id, n in Counter(s.id for s in definition.steps).items() if n > 1]
    if duplicates:
        raise WorkflowValidationError(f"Duplicate step ids: {', '.join(duplicates)}")

    known = {s.id for s in definition.steps}
    for step in definition.steps:
        for dep in step.depends_on:
            if dep not in known:
                logger.warning("Step %s depends on unknown step %s", step.id, dep)
    return definition


def load_settings(path: Path | None = None, environ: dict[str, str] | None = None) -> ConductorSettings:
    """Build settings from an optional YAML file plus environment overrides.

    Without *path*, ``$CONDUCTOR_HOME/conductor.yaml`` is read when it
    exists.  ``CONDUCTOR_HOME`` and ``CONDUCTOR_DB`` override ``home`` and
    ``db_path``.

    Raises:
        SettingsError: On unreadable or invalid settings files.
    """
    env = os.environ if environ is None else environ
    home = env.get(ENV_HOME)

    if path is None:
        candidate = Path(home or DEFAULT_HOME).expanduser() / SETTINGS_FILENAME
        path = candidate if candidate.is_file() else None

    data: dict[str, Any] = {}
    if path is not None:
        loaded = _read_yaml(path, SettingsError)
        if loaded is not None and not isinstance(loaded, dict):
            raise SettingsError("Settings YAML must be a mapping")
        data = loaded or {}

    if home:
        data["home"] = home
    if env.get(ENV_DB):
        data["db_path"] = env[ENV_DB]

    try:
        return ConductorSettings.model_validate(data)
    except ValidationError as exc:
        raise SettingsError(str(exc)) from exc
