"""Tests for the tracing helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace

from conductor.core.agents.events import Usage
from conductor.sdk.models import TelemetrySettings
from conductor.utils.telemetry import (
    ATTR_COST_USD,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    configure_telemetry,
    get_tracer,
    set_usage,
)


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        assert isinstance(get_tracer("conductor.tests"), trace.Tracer)
        assert isinstance(get_tracer(), trace.Tracer)

    def test_unconfigured_spans_accept_attributes(self) -> None:
        with get_tracer("conductor.tests").start_as_current_span("noop") as span:
            span.set_attribute("conductor.step.id", "a")


class TestSetUsage:
    def test_records_tokens_and_cost(self) -> None:
        span = MagicMock()
        set_usage(span, Usage(input_tokens=10, output_tokens=4, cost=0.02))
        span.set_attribute.assert_any_call(ATTR_TOKENS_PROMPT, 10)
        span.set_attribute.assert_any_call(ATTR_TOKENS_COMPLETION, 4)
        span.set_attribute.assert_any_call(ATTR_COST_USD, 0.02)

    def test_cost_omitted_when_unknown(self) -> None:
        span = MagicMock()
        set_usage(span, Usage(input_tokens=1))
        keys = [c.args[0] for c in span.set_attribute.call_args_list]
        assert ATTR_COST_USD not in keys

    def test_none_is_ignored(self) -> None:
        span = MagicMock()
        set_usage(span, None)
        span.set_attribute.assert_not_called()


class TestConfigureTelemetry:
    def test_disabled_is_a_no_op(self) -> None:
        with patch.object(trace, "set_tracer_provider") as install:
            assert configure_telemetry(TelemetrySettings(enabled=False)) is False
        install.assert_not_called()

    def test_raises_without_sdk(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ImportError, match="opentelemetry-sdk"):
                configure_telemetry(TelemetrySettings(enabled=True))

    def test_installs_provider(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

        with patch.object(trace, "set_tracer_provider") as install:
            assert configure_telemetry(TelemetrySettings(enabled=True, export_to_console=True)) is True

        [provider] = install.call_args.args
        assert provider.resource.attributes["service.name"] == "conductor"

    def test_otlp_raises_without_exporter(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

        with patch.dict("sys.modules", {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None}):
            with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(TelemetrySettings(enabled=True, otlp_endpoint="http://localhost:4317"))
