"""Pydantic models for ``conductor.yaml`` settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from conductor.core.backends.litellm_backend import DEFAULT_MAX_TURNS, DEFAULT_MODEL
from conductor.core.backends.subprocess_backend import DEFAULT_COMMAND

DEFAULT_HOME = "~/.conductor"
DB_FILENAME = "conductor.db"


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    export_to_console: bool = False
    otlp_endpoint: str | None = None


class LiteLLMSettings(BaseModel):
    default_model: str = DEFAULT_MODEL
    max_turns: int = DEFAULT_MAX_TURNS
    team_tools: bool = True


class SubprocessSettings(BaseModel):
    command: list[str] = Field(default_factory=lambda: list(DEFAULT_COMMAND))


class ConductorSettings(BaseModel):
    """Top-level settings.

    Example YAML::

        default_runtime: litellm
        litellm:
          default_model: anthropic/claude-3-5-sonnet-20241022
        subprocess:
          command: [claude]
        telemetry:
          enabled: true
          otlp_endpoint: ${OTEL_ENDPOINT}
    """

    home: str = DEFAULT_HOME
    db_path: str | None = None
    default_runtime: str = "litellm"
    log_buffer_size: int = Field(default=500, gt=0)
    litellm: LiteLLMSettings = LiteLLMSettings()
    subprocess: SubprocessSettings = SubprocessSettings()
    telemetry: TelemetrySettings | None = None

    @property
    def database_path(self) -> str:
        """Where the SQLite database lives (``:memory:`` is passed through)."""
        if self.db_path:
            return self.db_path if self.db_path == ":memory:" else str(Path(self.db_path).expanduser())
        return str(Path(self.home).expanduser() / DB_FILENAME)
