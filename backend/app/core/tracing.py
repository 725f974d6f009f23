"""
OpenTelemetry tracing for the triage flow.

Span tree of one request:

    POST /triage                (FastAPI instrumentation)
      router.attempt
        llm.chat
      router.repair             (only when the attempt failed validation)
        llm.chat
      answer.generate
        llm.chat

Spans are exported over OTLP/gRPC only when OTEL_EXPORTER_OTLP_ENDPOINT is
set; otherwise they are created and dropped.

Environment:
- OTEL_SERVICE_NAME (default: homeprohub_triage)
- OTEL_EXPORTER_OTLP_ENDPOINT
- OTEL_TRACES_SAMPLER_ARG: sampling ratio, 0.0 to 1.0 (default: 1.0)
"""
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from .logging import get_logger

logger = get_logger(__name__)

TRACER_NAME = "homeprohub.triage"

_provider: Optional[TracerProvider] = None


def configure_tracing(
    service_name: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    sampling_rate: Optional[float] = None,
) -> None:
    """Install the global tracer provider. Arguments override the environment."""
    global _provider

    service_name = service_name or os.getenv("OTEL_SERVICE_NAME", "homeprohub_triage")
    otlp_endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if sampling_rate is None:
        sampling_rate = float(os.getenv("OTEL_TRACES_SAMPLER_ARG", "1.0"))

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": "1.0.0"}),
        sampler=ParentBased(TraceIdRatioBased(sampling_rate)),
    )

    if otlp_endpoint:
        try:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )
        except Exception as e:
            logger.warning(
                "tracing_exporter_unavailable",
                endpoint=otlp_endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )
            otlp_endpoint = None

    trace.set_tracer_provider(provider)
    _provider = provider

    logger.info(
        "tracing_configured",
        service_name=service_name,
        sampling_rate=sampling_rate,
        otlp_endpoint=otlp_endpoint,
    )


def get_tracer() -> Tracer:
    # Resolved per call so spans work (as no-ops) before configure_tracing runs.
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def span(name: str, **attributes: Any) -> Iterator[Span]:
    """
    Open a child span of the current one with the given attributes.

    Exceptions escaping the block are recorded on the span and re-raised.
    """
    with get_tracer().start_as_current_span(name, record_exception=True) as current:
        for key, value in attributes.items():
            if value is not None:
                current.set_attribute(key, value)
        yield current


def record_exception(exception: Exception) -> None:
    """Mark the current span failed with a handled exception."""
    current = trace.get_current_span()
    current.record_exception(exception)
    current.set_status(Status(StatusCode.ERROR, str(exception)))


def instrument_fastapi(app) -> None:
    try:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")
    except Exception as e:
        logger.warning(
            "tracing_instrumentation_failed",
            error=str(e),
            error_type=type(e).__name__,
        )


def shutdown_tracing() -> None:
    """Flush pending spans and release the exporter."""
    global _provider
    if _provider is None:
        return
    try:
        _provider.shutdown()
    except Exception as e:
        logger.warning("tracing_shutdown_failed", error=str(e), error_type=type(e).__name__)
    finally:
        _provider = None
