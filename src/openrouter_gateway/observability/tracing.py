"""OpenTelemetry tracing for chat completions."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from openrouter_gateway.exceptions import GatewayError
from openrouter_gateway.types import CompletionResult

logger = logging.getLogger(__name__)

# The gRPC exporter ships in the optional ``otlp`` extra
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )

    HAS_OTLP = True
except ImportError:
    HAS_OTLP = False


# Module-level tracer (None while tracing is disabled)
_tracer: Any = None


def configure_tracing(
    exporter: str = "none",
    endpoint: str = "http://localhost:4317",
    service_name: str = "openrouter-gateway",
) -> None:
    """Configure OpenTelemetry tracing.

    Args:
        exporter: One of "none", "console", "otlp".
        endpoint: OTLP collector endpoint (only used when exporter="otlp").
        service_name: Service name for spans.
    """
    global _tracer

    if exporter == "none":
        _tracer = None
        return

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if exporter == "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    elif exporter == "otlp":
        if not HAS_OTLP:
            logger.warning(
                "OTLP exporter requested but opentelemetry-exporter-otlp is not installed"
            )
            _tracer = None
            return
        provider.add_span_processor(
            SimpleSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )
    else:
        logger.warning("Unknown trace exporter %r; tracing disabled", exporter)
        _tracer = None
        return

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer("openrouter_gateway")
    logger.info("OTEL tracing configured: exporter=%s, service=%s", exporter, service_name)


def get_tracer() -> Any:
    """Return the configured tracer, or None if tracing is disabled."""
    return _tracer


def disable_tracing() -> None:
    """Disable tracing (useful for tests)."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def traced_completion(
    model: str,
    caller_id: str | None = None,
    operation: str = "openrouter.chat_completion",
) -> AsyncGenerator[dict[str, Any], None]:
    """Open a span around one ``chat_completion`` call.

    Usage:
        async with traced_completion("openai/gpt-4o-mini") as span_data:
            result = ...
            span_data["result"] = result

    Records the request model and caller up front, usage/latency/cost from
    ``span_data["result"]`` on success, and the error kind on failure.
    Retry events are added to the current span by the transport.
    """
    span_data: dict[str, Any] = {}

    if _tracer is None:
        yield span_data
        return

    with _tracer.start_as_current_span(operation) as span:
        span.set_attribute("gen_ai.system", "openrouter")
        span.set_attribute("gen_ai.request.model", model)
        if caller_id:
            span.set_attribute("gateway.caller_id", caller_id)

        try:
            yield span_data
        except Exception as exc:
            if isinstance(exc, GatewayError):
                span.set_attribute("gateway.error_kind", exc.kind.value)
            span.set_status(trace.StatusCode.ERROR, str(exc))
            span.record_exception(exc)
            raise
        else:
            result = span_data.get("result")
            if isinstance(result, CompletionResult):
                span.set_attribute("gen_ai.response.model", result.model)
                span.set_attribute("gen_ai.response.id", result.request_id)
                span.set_attribute("gen_ai.response.finish_reason", result.finish_reason or "")
                span.set_attribute("gen_ai.usage.input_tokens", result.usage.prompt_tokens)
                span.set_attribute("gen_ai.usage.output_tokens", result.usage.completion_tokens)
                span.set_attribute("gateway.latency_ms", result.latency_ms)
                span.set_attribute("gateway.cost_usd", result.estimated_cost_usd)
