"""Application layer for the query evaluator.

The application layer orchestrates domain logic to fulfill use cases.

Exports:
    DatabaseEngine:
        - DatabaseEngine: Main entry point
    Executor:
        - QueryExecutor: Executes logical plans using the Volcano iterator model
        - ExecutionResult: Result of statement execution
        - Operator: Base class for executor operators
"""

from tabular_db.application.database_engine import DatabaseEngine
from tabular_db.application.executor import (
    AggregateOperator,
    DistinctOperator,
    ExecutionResult,
    FilterOperator,
    LimitOperator,
    NestedLoopJoinOperator,
    OneRowOperator,
    Operator,
    ProjectOperator,
    QueryExecutor,
    SeqScanOperator,
    SortOperator,
)

__all__ = [
    "DatabaseEngine",
    "QueryExecutor",
    "ExecutionResult",
    "Operator",
    "SeqScanOperator",
    "OneRowOperator",
    "NestedLoopJoinOperator",
    "FilterOperator",
    "AggregateOperator",
    "ProjectOperator",
    "DistinctOperator",
    "SortOperator",
    "LimitOperator",
]
