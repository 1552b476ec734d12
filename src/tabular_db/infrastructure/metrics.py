"""Prometheus metrics for the query evaluator."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)


class MetricsRegistry:
    """Registry of all query evaluator metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Statement metrics
        self.statements_total = Counter(
            "tabular_statements_total",
            "Total number of statements executed",
            ["statement_type", "status"],  # status: success, error
            registry=self._registry,
        )

        self.statement_latency_seconds = Histogram(
            "tabular_statement_latency_seconds",
            "Statement latency in seconds",
            ["statement_type"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Row metrics
        self.rows_returned_total = Counter(
            "tabular_rows_returned_total",
            "Total rows returned by queries",
            registry=self._registry,
        )

        self.rows_affected_total = Counter(
            "tabular_rows_affected_total",
            "Total rows inserted, updated, deleted or backfilled",
            registry=self._registry,
        )

        # Catalog metrics
        self.tables = Gauge(
            "tabular_tables",
            "Number of tables in the catalog",
            registry=self._registry,
        )

        self.info = Info(
            "tabular_db",
            "Query evaluator information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from tabular_db import __version__

    _metrics.info.info({"version": __version__})

    # Start HTTP server for Prometheus scraping
    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
