"""Tracing for conductor.

Spans go through the OpenTelemetry API.  Until a tracer provider is
installed every span is a no-op, so instrumented code never checks whether
tracing is on.  :meth:`conductor.sdk.app.Conductor.open` installs one from
the ``telemetry`` settings block::

    telemetry:
      enabled: true
      export_to_console: false
      otlp_endpoint: http://localhost:4317

Exporters need the ``otel`` extra (``pip install conductor[otel]``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace

if TYPE_CHECKING:
    from conductor.core.agents.events import Usage
    from conductor.sdk.models import TelemetrySettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_AGENT_ID = "conductor.agent.id"
ATTR_RUNTIME = "conductor.runtime"
ATTR_SESSION_ID = "conductor.session.id"
ATTR_WORKFLOW_ID = "conductor.workflow.id"
ATTR_RUN_ID = "conductor.run.id"
ATTR_LAYER = "conductor.layer"
ATTR_LAYER_SIZE = "conductor.layer.size"
ATTR_STEP_ID = "conductor.step.id"
ATTR_STEP_STATUS = "conductor.step.status"
ATTR_TEAM_ID = "conductor.team.id"
ATTR_TOOL_NAME = "conductor.tool.name"
ATTR_MODEL = "conductor.model"
ATTR_TOKENS_PROMPT = "conductor.tokens.prompt"
ATTR_TOKENS_COMPLETION = "conductor.tokens.completion"
ATTR_COST_USD = "conductor.cost_usd"

_INSTRUMENTATION_NAME = "conductor"
_SDK_HINT = "Install it with: pip install conductor[otel]"


def get_tracer(name: str | None = None) -> trace.Tracer:
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def set_usage(span: trace.Span, usage: Usage | None) -> None:
    """Record token counts (and cost, when known) on *span*."""
    if usage is None:
        return
    span.set_attribute(ATTR_TOKENS_PROMPT, usage.input_tokens)
    span.set_attribute(ATTR_TOKENS_COMPLETION, usage.output_tokens)
    if usage.cost is not None:
        span.set_attribute(ATTR_COST_USD, usage.cost)


def configure_telemetry(settings: TelemetrySettings, *, service_name: str = "conductor") -> bool:
    """Install a tracer provider described by *settings*.

    Returns ``False`` (and changes nothing) when telemetry is disabled.

    Raises:
        ImportError: If ``opentelemetry-sdk`` is missing, or an OTLP
            endpoint is set without ``opentelemetry-exporter-otlp``.
    """
    if not settings.enabled:
        return False

    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        raise ImportError(f"opentelemetry-sdk is required for telemetry. {_SDK_HINT}") from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if settings.export_to_console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    logger.info(
        "Telemetry enabled (console=%s, otlp=%s)",
        settings.export_to_console,
        settings.otlp_endpoint or "-",
    )
    return True


def _otlp_exporter(endpoint: str) -> object:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
            OTLPSpanExporter,
        )
    except ImportError as exc:
        raise ImportError(f"opentelemetry-exporter-otlp is required for OTLP export. {_SDK_HINT}") from exc
    return OTLPSpanExporter(endpoint=endpoint)
