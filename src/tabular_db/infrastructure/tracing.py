"""OpenTelemetry tracing for statement execution.

Every statement the engine runs is wrapped in a ``tabular_db.execute``
span carrying the database semantic-convention attributes
(``db.system``, ``db.statement``, ``db.operation``) and row counts.
Until ``setup_tracing`` installs a provider, the OpenTelemetry API hands
out no-op spans.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

from tabular_db.domain.errors import QueryError

STATEMENT_SPAN = "tabular_db.execute"

MAX_STATEMENT_LENGTH = 1000

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "tabular_db",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install a tracer provider for the process.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
        console_export: Whether to also print finished spans

    Returns:
        Configured tracer instance
    """
    global _tracer

    from tabular_db import __version__

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("tabular_db")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Start a span as the current span, with optional attributes."""
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span


@contextmanager
def statement_span(sql: str) -> Generator[trace.Span, None, None]:
    """Span around one SQL statement."""
    text = sql.strip()
    if len(text) > MAX_STATEMENT_LENGTH:
        text = text[:MAX_STATEMENT_LENGTH] + "..."
    with trace_span(STATEMENT_SPAN, {"db.system": "tabular_db", "db.statement": text}) as span:
        yield span


def mark_failed(span: trace.Span, error: QueryError) -> None:
    """Record a statement failure on its span."""
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.set_attribute("error.kind", error.kind)
