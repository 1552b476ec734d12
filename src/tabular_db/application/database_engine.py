"""Database Engine - Unified entry point for the query evaluator.

This module provides the main DatabaseEngine class that ties together
the statement parser, the query executor and the schema registry, and
wraps every statement in logging, metrics and tracing.

Usage:
    from tabular_db.application import DatabaseEngine

    with DatabaseEngine() as db:
        db.execute("CREATE TABLE friends (id INTEGER, name TEXT, birthday DATE)")
        db.execute("INSERT INTO friends VALUES (1, 'Jane Doe', '1990-05-30')")
        result = db.execute("SELECT * FROM friends")

When ``storage.data_file`` is configured the catalog is loaded from that
snapshot on start and written back on stop.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from tabular_db.adapters.inbound.sql_parser import SQLParser
from tabular_db.adapters.outbound.json_snapshot_store import JsonSnapshotStore
from tabular_db.application.executor import ExecutionResult, QueryExecutor
from tabular_db.domain.errors import QueryError
from tabular_db.domain.services.expression_evaluator import ExpressionEvaluator
from tabular_db.domain.services.schema_registry import SchemaRegistry
from tabular_db.domain.value_objects.logical_plan import StatementType, statement_type_of
from tabular_db.infrastructure.config import Config, get_config
from tabular_db.infrastructure.logging import get_logger, script_context
from tabular_db.infrastructure.metrics import MetricsRegistry, get_metrics
from tabular_db.infrastructure.tracing import mark_failed, statement_span
from tabular_db.ports.outbound.snapshot_store import SnapshotStore

logger = get_logger(__name__)


class DatabaseEngine:
    """Main engine that orchestrates parsing, execution and persistence.

    Statements run one at a time, each to completion. A statement that
    fails returns a failed ``ExecutionResult`` and changes nothing;
    earlier statements keep their effects.
    """

    def __init__(
        self,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
        snapshot_store: SnapshotStore | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Configuration; the global config if None.
            metrics: Metrics registry; the global registry if None.
            snapshot_store: Where to load and save the catalog. Defaults
                to a JSON snapshot at ``storage.data_file``, if set.
        """
        self._config = config or get_config()
        self._metrics = metrics
        self._parser = SQLParser(dialect=self._config.engine.dialect)
        self._store = snapshot_store
        if self._store is None and self._config.storage.data_file is not None:
            self._store = JsonSnapshotStore(
                self._config.storage.data_file, parse_default=self._parser.parse_expression
            )

        self._registry: SchemaRegistry | None = None
        self._executor: QueryExecutor | None = None
        self._statements_executed = 0
        self._statements_failed = 0
        self._started = False

    @property
    def is_started(self) -> bool:
        """Check if the engine is started."""
        return self._started

    @property
    def registry(self) -> SchemaRegistry:
        self._require_started()
        return self._registry

    @property
    def parser(self) -> SQLParser:
        return self._parser

    @property
    def snapshot_store(self) -> SnapshotStore | None:
        return self._store

    def start(self) -> None:
        """Start the engine, loading the snapshot if one exists.

        Raises:
            RuntimeError: If already started.
            SnapshotError: If the snapshot exists but cannot be loaded.
        """
        if self._started:
            raise RuntimeError("Database engine already started")

        if self._metrics is None:
            self._metrics = get_metrics()

        self._registry = SchemaRegistry()
        evaluator = ExpressionEvaluator(like_case_sensitive=self._config.engine.like_case_sensitive)
        self._executor = QueryExecutor(registry=self._registry, evaluator=evaluator)

        if self._store is not None and self._store.exists():
            for table in self._store.load():
                self._registry.add_table(table)
            logger.info(
                "snapshot_loaded",
                path=str(self._store.path),
                tables=len(self._registry),
            )

        self._metrics.tables.set(len(self._registry))
        self._started = True
        logger.info("engine_started", dialect=self._parser.dialect, tables=len(self._registry))

    def stop(self) -> None:
        """Stop the engine, saving the snapshot when autosave is on.

        Raises:
            RuntimeError: If not started.
        """
        self._require_started()
        if self._store is not None and self._config.storage.autosave:
            self.save()
        self._started = False
        self._executor = None
        self._registry = None
        logger.info(
            "engine_stopped",
            statements=self._statements_executed,
            failed=self._statements_failed,
        )

    def execute(self, sql: str) -> ExecutionResult:
        """Execute a single SQL statement.

        Args:
            sql: The SQL statement to execute.

        Returns:
            ExecutionResult with rows and/or status message. Failures are
            reported through ``error`` rather than raised.

        Raises:
            RuntimeError: If the engine is not started.
        """
        self._require_started()

        started_at = time.perf_counter()
        statement_type: StatementType | None = None
        with statement_span(sql) as span:
            try:
                plan = self._parser.parse(sql)
                statement_type = statement_type_of(plan)
                span.set_attribute("db.operation", statement_type.value)
                result = self._executor.execute(plan)
            except QueryError as e:
                result = ExecutionResult.failure(e, statement_type)
                mark_failed(span, e)
            else:
                span.set_attribute("db.rows_returned", len(result.rows))
                span.set_attribute("db.rows_affected", result.affected_rows)

        self._record(sql, result, time.perf_counter() - started_at)
        return result

    def execute_script(
        self,
        script: str,
        stop_on_error: bool = False,
        source: str = "<script>",
    ) -> list[ExecutionResult]:
        """Execute every statement of a ``;``-separated script in order.

        Args:
            script: SQL script text.
            stop_on_error: Stop at the first failed statement instead of
                continuing with the next one.
            source: Label for log lines, usually the script's path.

        Returns:
            One ExecutionResult per statement that was run.
        """
        self._require_started()
        try:
            statements = self._parser.parse_script(script)
        except QueryError as e:
            result = ExecutionResult.failure(e)
            self._record(script, result, 0.0)
            return [result]

        results = []
        for number, sql in enumerate(statements, start=1):
            with script_context(source, number):
                result = self.execute(sql)
            results.append(result)
            if stop_on_error and not result.success:
                break
        return results

    def execute_file(self, path: str | Path, stop_on_error: bool = False) -> list[ExecutionResult]:
        """Execute a SQL script file (UTF-8)."""
        script = Path(path).read_text(encoding="utf-8")
        logger.info("script_started", path=str(path))
        results = self.execute_script(script, stop_on_error=stop_on_error, source=str(path))
        logger.info(
            "script_finished",
            path=str(path),
            statements=len(results),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    def table_names(self) -> list[str]:
        """Names of all tables, in creation order."""
        return self.registry.table_names()

    def describe(self, table_name: str) -> dict[str, Any]:
        """Describe a table's columns.

        Raises:
            SchemaError: If the table does not exist.
        """
        table = self.registry.get_table(table_name)
        return {
            "name": table.name,
            "columns": table.describe(),
            "primary_key": list(table.primary_key),
            "row_count": table.row_count,
        }

    def save(self, path: str | Path | None = None) -> int:
        """Write the catalog snapshot.

        Args:
            path: Write to this file instead of the configured store.

        Returns:
            Number of tables written.

        Raises:
            RuntimeError: If no path is given and no store is configured.
        """
        self._require_started()
        store = self._store
        if path is not None:
            store = JsonSnapshotStore(path, parse_default=self._parser.parse_expression)
        if store is None:
            raise RuntimeError("No snapshot file configured")
        count = store.save(self._registry)
        logger.info("snapshot_saved", path=str(store.path), tables=count)
        return count

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics.

        Returns:
            Dictionary with various statistics.
        """
        stats: dict[str, Any] = {
            "started": self._started,
            "dialect": self._parser.dialect,
            "data_file": str(self._store.path) if self._store is not None else None,
            "statements_executed": self._statements_executed,
            "statements_failed": self._statements_failed,
        }
        if self._started:
            stats["table_count"] = len(self._registry)
            stats["tables"] = self._registry.stats()
        return stats

    def _record(self, sql: str, result: ExecutionResult, elapsed: float) -> None:
        label = result.statement_type.value if result.statement_type else "unknown"
        status = "success" if result.success else "error"
        self._statements_executed += 1

        self._metrics.statements_total.labels(statement_type=label, status=status).inc()
        self._metrics.statement_latency_seconds.labels(statement_type=label).observe(elapsed)
        self._metrics.rows_returned_total.inc(len(result.rows))
        self._metrics.rows_affected_total.inc(result.affected_rows)
        self._metrics.tables.set(len(self._registry))

        if not result.success:
            self._statements_failed += 1
            logger.warning(
                "statement_failed",
                statement_type=label,
                error_kind=result.error.kind,
                error=str(result.error),
                sql=sql,
            )
            return

        if result.statement_type == StatementType.ROLLBACK:
            logger.warning("rollback_ignored", reason="transactions are not supported")

        logger.debug(
            "statement_executed",
            statement_type=label,
            rows=len(result.rows),
            affected_rows=result.affected_rows,
            elapsed_ms=round(elapsed * 1000, 3),
        )

    def _require_started(self) -> None:
        if not self._started:
            raise RuntimeError("Database engine not started")

    def __enter__(self) -> DatabaseEngine:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()
