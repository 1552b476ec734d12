"""REST API adapter for the query evaluator.

This module provides a FastAPI-based REST API for executing SQL
statements against a running engine.

Endpoints:
    GET /health - Health check
    GET /stats - Engine statistics
    GET /tables - Table names
    GET /tables/{name} - Column definitions of one table
    POST /execute - Execute a SQL statement
    POST /execute/script - Execute a ;-separated script

A statement that fails is still a 200 response, with ``success`` false
and the error kind and message in ``error``.

Usage:
    from tabular_db.adapters.inbound.rest_api import create_app
    from tabular_db.application.database_engine import DatabaseEngine

    db = DatabaseEngine()
    db.start()
    app = create_app(db)
    # Run with uvicorn: uvicorn app:app --host 127.0.0.1 --port 8080

References:
    - FastAPI documentation: https://fastapi.tiangolo.com/
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from tabular_db import __version__
from tabular_db.application.database_engine import DatabaseEngine
from tabular_db.application.executor import ExecutionResult
from tabular_db.domain.errors import SchemaError


class SQLRequest(BaseModel):
    """Request model for SQL execution."""

    sql: str = Field(..., description="SQL statement to execute")


class ScriptRequest(BaseModel):
    """Request model for script execution."""

    script: str = Field(..., description="SQL statements separated by ';'")
    stop_on_error: bool = Field(False, description="Stop at the first failed statement")


class ErrorDetail(BaseModel):
    kind: str = Field(..., description="parse, schema, type or constraint")
    message: str = Field(..., description="Error message")


class SQLResponse(BaseModel):
    """Response model for SQL execution."""

    success: bool = Field(..., description="Whether the statement succeeded")
    statement_type: str | None = Field(None, description="select, insert, ...")
    message: str = Field("", description="Status or error message")
    columns: list[str] = Field(default_factory=list, description="Column names")
    rows: list[list[Any]] = Field(default_factory=list, description="Result rows, in column order")
    affected_rows: int = Field(0, description="Number of affected rows")
    error: ErrorDetail | None = Field(None, description="Failure details")


class ScriptResponse(BaseModel):
    """Response model for script execution."""

    success: bool = Field(..., description="Whether every statement succeeded")
    results: list[SQLResponse] = Field(default_factory=list)


class ColumnResponse(BaseModel):
    name: str
    type: str
    nullable: bool
    primary_key: bool
    unique: bool
    default: str | None = None


class TableResponse(BaseModel):
    """Response model for a table description."""

    name: str
    columns: list[ColumnResponse]
    primary_key: list[str] = Field(default_factory=list)
    row_count: int = 0


class StatsResponse(BaseModel):
    """Response model for engine statistics."""

    started: bool = Field(..., description="Whether the engine is started")
    dialect: str = Field(..., description="SQL dialect")
    data_file: str | None = Field(None, description="Snapshot file, if any")
    statements_executed: int = Field(0, description="Statements executed")
    statements_failed: int = Field(0, description="Statements that failed")
    table_count: int = Field(0, description="Number of tables")
    tables: dict[str, int] = Field(default_factory=dict, description="Row count per table")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


def _result_to_response(result: ExecutionResult) -> SQLResponse:
    """Convert ExecutionResult to SQLResponse."""
    return SQLResponse.model_validate(result.to_dict())


def create_app(db: DatabaseEngine) -> FastAPI:
    """Create a FastAPI application for the engine.

    Args:
        db: The engine to use. It is not started or stopped by the app.

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="Tabular DB API",
        description="REST API for executing SQL statements",
        version=__version__,
    )

    def _require_started() -> None:
        if not db.is_started:
            raise HTTPException(status_code=503, detail="Database not started")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy" if db.is_started else "unhealthy",
            version=__version__,
        )

    @app.get("/stats", response_model=StatsResponse, tags=["Stats"])
    async def get_stats() -> StatsResponse:
        """Get engine statistics."""
        _require_started()
        return StatsResponse.model_validate(db.get_stats())

    @app.get("/tables", response_model=list[str], tags=["Schema"])
    async def list_tables() -> list[str]:
        """List table names in creation order."""
        _require_started()
        return db.table_names()

    @app.get("/tables/{name}", response_model=TableResponse, tags=["Schema"])
    async def describe_table(name: str) -> TableResponse:
        """Describe one table."""
        _require_started()
        try:
            return TableResponse.model_validate(db.describe(name))
        except SchemaError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    @app.post("/execute", response_model=SQLResponse, tags=["SQL"])
    async def execute_sql(request: SQLRequest) -> SQLResponse:
        """Execute a SQL statement.

        Args:
            request: The SQL request containing the statement.

        Returns:
            The execution result.
        """
        _require_started()
        return _result_to_response(db.execute(request.sql))

    @app.post("/execute/script", response_model=ScriptResponse, tags=["SQL"])
    async def execute_script(request: ScriptRequest) -> ScriptResponse:
        """Execute a script, one statement after another."""
        _require_started()
        results = db.execute_script(request.script, stop_on_error=request.stop_on_error)
        return ScriptResponse(
            success=all(r.success for r in results),
            results=[_result_to_response(r) for r in results],
        )

    return app


def run_server(
    db: DatabaseEngine,
    host: str = "127.0.0.1",
    port: int = 8080,
) -> None:
    """Run the REST API server.

    Args:
        db: The engine, already started.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(db)
    uvicorn.run(app, host=host, port=port)
