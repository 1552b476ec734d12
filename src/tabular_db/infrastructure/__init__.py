"""Infrastructure layer - cross-cutting concerns."""

from tabular_db.infrastructure.config import Config, get_config
from tabular_db.infrastructure.logging import get_logger, script_context, setup_logging
from tabular_db.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from tabular_db.infrastructure.tracing import (
    get_tracer,
    mark_failed,
    setup_tracing,
    statement_span,
    trace_span,
)

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "script_context",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "statement_span",
    "mark_failed",
]
