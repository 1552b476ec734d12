"""Logical plan nodes.

A SELECT is a chain of nodes, innermost first:

    TableScan / OneRow -> Join* -> Filter(WHERE) -> Aggregate
        -> Project -> Filter(HAVING) -> Distinct -> Sort -> Limit

Every other statement is a single node.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    Expression,
    OrderByItem,
    SelectItem,
)


class StatementType(Enum):
    """Types of SQL statements."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ALTER_TABLE = "alter_table"
    BEGIN = "begin"
    COMMIT = "commit"
    ROLLBACK = "rollback"


class JoinKind(Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    CROSS = "CROSS"


class AlterAction(Enum):
    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    RENAME_COLUMN = "rename_column"
    RENAME_TABLE = "rename_table"


@dataclass
class LogicalPlan(ABC):
    """Base class for logical plan nodes."""

    @abstractmethod
    def __str__(self) -> str:
        pass


@dataclass
class TableScan(LogicalPlan):
    """Scan a table."""

    table_name: str
    alias: str | None = None

    @property
    def source_name(self) -> str:
        """Name that qualifies this table's columns."""
        return self.alias or self.table_name

    def __str__(self) -> str:
        if self.alias:
            return f"TableScan({self.table_name} AS {self.alias})"
        return f"TableScan({self.table_name})"


@dataclass
class OneRow(LogicalPlan):
    """A single row with no columns, for SELECT without FROM."""

    def __str__(self) -> str:
        return "OneRow()"


@dataclass
class Join(LogicalPlan):
    """Nested-loop join of two inputs."""

    left: LogicalPlan
    right: LogicalPlan
    kind: JoinKind = JoinKind.INNER
    condition: Expression | None = None

    def __str__(self) -> str:
        on = f" ON {self.condition}" if self.condition is not None else ""
        return f"Join({self.kind.value}{on})\n  -> {self.left}\n  -> {self.right}"


@dataclass
class Filter(LogicalPlan):
    """Filter rows based on a predicate."""

    input: LogicalPlan
    predicate: Expression

    def __str__(self) -> str:
        return f"Filter({self.predicate})\n  -> {self.input}"


@dataclass
class Aggregate(LogicalPlan):
    """Group rows and compute aggregates per group."""

    input: LogicalPlan
    group_by: list[Expression]
    aggregates: list[AggregateExpr]

    def __str__(self) -> str:
        groups = ", ".join(str(g) for g in self.group_by)
        aggs = ", ".join(str(a) for a in self.aggregates)
        return f"Aggregate(group=[{groups}], agg=[{aggs}])\n  -> {self.input}"


@dataclass
class Project(LogicalPlan):
    """Project (select) specific columns."""

    input: LogicalPlan
    items: list[SelectItem]

    def __str__(self) -> str:
        cols = ", ".join(str(item.expr) for item in self.items)
        return f"Project({cols})\n  -> {self.input}"


@dataclass
class Distinct(LogicalPlan):
    """Drop duplicate output rows, keeping the first."""

    input: LogicalPlan

    def __str__(self) -> str:
        return f"Distinct()\n  -> {self.input}"


@dataclass
class Sort(LogicalPlan):
    """Sort rows by specified keys."""

    input: LogicalPlan
    order_by: list[OrderByItem]

    def __str__(self) -> str:
        cols = ", ".join(
            f"{item.expr if item.position is None else item.position} "
            f"{'ASC' if item.ascending else 'DESC'}"
            for item in self.order_by
        )
        return f"Sort({cols})\n  -> {self.input}"


@dataclass
class Limit(LogicalPlan):
    """Skip ``offset`` rows then return at most ``count`` (None: all)."""

    input: LogicalPlan
    count: int | None
    offset: int = 0

    def __str__(self) -> str:
        return f"Limit({self.count}, offset={self.offset})\n  -> {self.input}"


@dataclass
class InsertPlan(LogicalPlan):
    """Insert rows into a table, from VALUES or from a query."""

    table_name: str
    columns: list[str]
    values: list[list[Expression]] = field(default_factory=list)
    query: LogicalPlan | None = None

    def __str__(self) -> str:
        if self.query is not None:
            return f"Insert({self.table_name}, cols={self.columns})\n  -> {self.query}"
        return f"Insert({self.table_name}, cols={self.columns}, rows={len(self.values)})"


@dataclass
class UpdatePlan(LogicalPlan):
    """Update rows in a table."""

    table_name: str
    assignments: dict[str, Expression]
    predicate: Expression | None = None

    def __str__(self) -> str:
        assigns = ", ".join(f"{k}={v}" for k, v in self.assignments.items())
        where = f" WHERE {self.predicate}" if self.predicate else ""
        return f"Update({self.table_name}, SET {assigns}{where})"


@dataclass
class DeletePlan(LogicalPlan):
    """Delete rows from a table."""

    table_name: str
    predicate: Expression | None = None

    def __str__(self) -> str:
        where = f" WHERE {self.predicate}" if self.predicate else ""
        return f"Delete({self.table_name}{where})"


@dataclass
class CreateTablePlan(LogicalPlan):
    """Create a new table."""

    table_name: str
    columns: list[ColumnDef]
    primary_key: list[str] = field(default_factory=list)
    if_not_exists: bool = False

    def __str__(self) -> str:
        cols = ", ".join(f"{c.name} {c.data_type.value}" for c in self.columns)
        return f"CreateTable({self.table_name}, [{cols}])"


@dataclass
class DropTablePlan(LogicalPlan):
    """Drop a table."""

    table_name: str
    if_exists: bool = False

    def __str__(self) -> str:
        return f"DropTable({self.table_name})"


@dataclass
class AlterTablePlan(LogicalPlan):
    """ALTER TABLE with a single action."""

    table_name: str
    action: AlterAction
    column: ColumnDef | None = None  # ADD COLUMN
    old_name: str | None = None  # DROP / RENAME COLUMN
    new_name: str | None = None  # RENAME COLUMN / RENAME TO

    def __str__(self) -> str:
        if self.action == AlterAction.ADD_COLUMN and self.column is not None:
            detail = f"{self.column.name} {self.column.data_type.value}"
        elif self.action == AlterAction.RENAME_TABLE:
            detail = f"-> {self.new_name}"
        elif self.action == AlterAction.RENAME_COLUMN:
            detail = f"{self.old_name} -> {self.new_name}"
        else:
            detail = str(self.old_name)
        return f"AlterTable({self.table_name}, {self.action.value} {detail})"


@dataclass
class TransactionPlan(LogicalPlan):
    """Transaction control statement."""

    statement_type: StatementType

    def __str__(self) -> str:
        return f"Transaction({self.statement_type.value})"


def statement_type_of(plan: LogicalPlan) -> StatementType:
    """Classify a plan for logging, metrics and results."""
    if isinstance(plan, InsertPlan):
        return StatementType.INSERT
    elif isinstance(plan, UpdatePlan):
        return StatementType.UPDATE
    elif isinstance(plan, DeletePlan):
        return StatementType.DELETE
    elif isinstance(plan, CreateTablePlan):
        return StatementType.CREATE_TABLE
    elif isinstance(plan, DropTablePlan):
        return StatementType.DROP_TABLE
    elif isinstance(plan, AlterTablePlan):
        return StatementType.ALTER_TABLE
    elif isinstance(plan, TransactionPlan):
        return plan.statement_type
    return StatementType.SELECT
