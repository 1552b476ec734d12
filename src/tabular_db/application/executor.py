"""Query Executor using Volcano iterator model.

This module implements a query executor that interprets logical plans
and executes them against the schema registry using a pull-based
iterator model.

The Volcano model:
    - Each operator is an iterator with open(), next(), close() methods
    - Operators pull rows from their children on demand
    - Blocking operators (join build side, aggregate, sort) materialize
      their input in open()

Before anything runs, every operator exposes a template row: its output
column names and table qualifiers with NULL values. Column references
are resolved against these templates while the operator tree is built,
so an unknown or ambiguous column fails the statement before any row is
read or written.

References:
    - Graefe, "Volcano" (1994)
"""

from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator

from tabular_db.domain.entities.row import Row
from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.entities.table import Table
from tabular_db.domain.errors import ParseError, QueryError, SchemaError
from tabular_db.domain.services.expression_evaluator import ExpressionEvaluator
from tabular_db.domain.services.schema_registry import SchemaRegistry
from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    ColumnExpr,
    Expression,
    OrderByItem,
    SelectItem,
    StarExpr,
    contains_aggregate,
)
from tabular_db.domain.value_objects.logical_plan import (
    Aggregate,
    AlterAction,
    AlterTablePlan,
    CreateTablePlan,
    DeletePlan,
    Distinct,
    DropTablePlan,
    Filter,
    InsertPlan,
    Join,
    JoinKind,
    Limit,
    LogicalPlan,
    OneRow,
    Project,
    Sort,
    StatementType,
    TableScan,
    TransactionPlan,
    UpdatePlan,
    statement_type_of,
)
from tabular_db.domain.value_objects.scalar_types import coerce, sort_key

_QUERY_NODES = (TableScan, OneRow, Join, Filter, Aggregate, Project, Distinct, Sort, Limit)

_EMPTY_ROW = Row(columns=[], values=[])


@dataclass
class ExecutionResult:
    """Result of statement execution.

    A failed statement has ``error`` set and leaves every table as it
    was before the statement started.
    """

    rows: list[Row] = field(default_factory=list)
    affected_rows: int = 0
    message: str = ""
    columns: list[str] = field(default_factory=list)
    error: QueryError | None = None
    statement_type: StatementType | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls, error: QueryError, statement_type: StatementType | None = None
    ) -> ExecutionResult:
        return cls(
            message=f"{error.kind} error: {error}",
            error=error,
            statement_type=statement_type,
        )

    def raise_for_error(self) -> ExecutionResult:
        """Raise the statement's error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (dates as ISO strings)."""
        return {
            "success": self.success,
            "statement_type": self.statement_type.value if self.statement_type else None,
            "columns": list(self.columns),
            "rows": [[_json_value(v) for v in row.values] for row in self.rows],
            "affected_rows": self.affected_rows,
            "message": self.message,
            "error": (
                {"kind": self.error.kind, "message": str(self.error)}
                if self.error is not None
                else None
            ),
        }


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime.date):
        return value.isoformat()
    return value


def validate_expression(expr: Expression, template: Row) -> None:
    """Resolve every column and aggregate reference against a template row.

    Raises:
        SchemaError: On an unknown or ambiguous column.
        ParseError: On ``*`` outside a select list, or an aggregate the
            template's rows will not carry.
    """
    if isinstance(expr, ColumnExpr):
        template.lookup(expr.column.name, expr.column.table)
        return
    if isinstance(expr, AggregateExpr):
        template.aggregate(str(expr))
        return
    if isinstance(expr, StarExpr):
        raise ParseError(f"{expr} is only allowed in a select list or COUNT(*)")
    for child in expr.children():
        validate_expression(child, template)


class Operator(ABC):
    """Base class for executor operators (Volcano model)."""

    @abstractmethod
    def open(self) -> None:
        """Initialize the operator."""
        pass

    @abstractmethod
    def next(self) -> Row | None:
        """Return the next row or None if exhausted."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        pass

    @abstractmethod
    def template(self) -> Row:
        """Row of NULLs describing this operator's output columns."""
        pass

    def __iter__(self) -> Iterator[Row]:
        """Allow iteration over operator results."""
        self.open()
        try:
            while True:
                row = self.next()
                if row is None:
                    break
                yield row
        finally:
            self.close()


class SeqScanOperator(Operator):
    """Sequential scan operator.

    Yields the table's rows in insertion order, qualified by the table
    name or its alias.
    """

    def __init__(self, table: Table, source_name: str | None = None) -> None:
        self._table = table
        self._source = source_name or table.name
        self._columns = table.column_names
        self._current_row = 0
        self._rows: list[dict[str, Any]] = []

    def template(self) -> Row:
        return Row(
            columns=list(self._columns),
            values=[None] * len(self._columns),
            sources=[self._source] * len(self._columns),
        )

    def open(self) -> None:
        self._rows = list(self._table.rows)
        self._current_row = 0

    def next(self) -> Row | None:
        if self._current_row >= len(self._rows):
            return None
        stored = self._rows[self._current_row]
        self._current_row += 1
        return Row(
            columns=list(self._columns),
            values=[stored[name] for name in self._columns],
            sources=[self._source] * len(self._columns),
        )

    def close(self) -> None:
        self._rows = []
        self._current_row = 0


class OneRowOperator(Operator):
    """A single empty row, the input of SELECT without FROM."""

    def __init__(self) -> None:
        self._returned = False

    def template(self) -> Row:
        return Row(columns=[], values=[])

    def open(self) -> None:
        self._returned = False

    def next(self) -> Row | None:
        if self._returned:
            return None
        self._returned = True
        return Row(columns=[], values=[])

    def close(self) -> None:
        pass


class NestedLoopJoinOperator(Operator):
    """Nested-loop join; the right input is materialized on open().

    LEFT joins emit a NULL-extended row for every left row without a
    match.
    """

    def __init__(
        self,
        left: Operator,
        right: Operator,
        kind: JoinKind,
        condition: Expression | None,
        evaluator: ExpressionEvaluator,
    ) -> None:
        self._left = left
        self._right = right
        self._kind = kind
        self._condition = condition
        self._evaluator = evaluator
        self._rows: Iterator[Row] = iter(())
        if condition is not None:
            validate_expression(condition, self.template())

    def template(self) -> Row:
        return self._combine(self._left.template(), self._right.template())

    @staticmethod
    def _combine(left: Row, right: Row) -> Row:
        return Row(
            columns=left.columns + right.columns,
            values=left.values + right.values,
            sources=left.sources + right.sources,
        )

    def open(self) -> None:
        self._rows = self._generate()

    def _generate(self) -> Iterator[Row]:
        right_rows = list(self._right)
        null_right = self._right.template()
        for left in self._left:
            matched = False
            for right in right_rows:
                combined = self._combine(left, right)
                if self._condition is None or self._evaluator.matches(self._condition, combined):
                    matched = True
                    yield combined
            if not matched and self._kind == JoinKind.LEFT:
                yield self._combine(left, null_right)

    def next(self) -> Row | None:
        return next(self._rows, None)

    def close(self) -> None:
        self._rows = iter(())


class FilterOperator(Operator):
    """Filter operator that applies a predicate.

    Rows for which the predicate is false or unknown are dropped.
    """

    def __init__(
        self, child: Operator, predicate: Expression, evaluator: ExpressionEvaluator
    ) -> None:
        self._child = child
        self._predicate = predicate
        self._evaluator = evaluator
        validate_expression(predicate, self.template())

    def template(self) -> Row:
        return self._child.template()

    def open(self) -> None:
        self._child.open()

    def next(self) -> Row | None:
        while True:
            row = self._child.next()
            if row is None:
                return None
            if self._evaluator.matches(self._predicate, row):
                return row

    def close(self) -> None:
        self._child.close()


class AggregateOperator(Operator):
    """Hash aggregate operator.

    Emits one row per group in ascending group-key order, or exactly one
    row when there are no grouping keys. Each output row is the group's
    first input row (so bare columns read its values) carrying the
    group's aggregate values.
    """

    def __init__(
        self,
        child: Operator,
        group_by: list[Expression],
        aggregates: list[AggregateExpr],
        evaluator: ExpressionEvaluator,
    ) -> None:
        self._child = child
        self._group_by = group_by
        self._aggregates = aggregates
        self._evaluator = evaluator
        self._groups: list[Row] = []
        self._current_idx = 0

        input_template = child.template()
        for expr in group_by:
            validate_expression(expr, input_template)
        for agg in aggregates:
            if agg.arg is not None:
                validate_expression(agg.arg, input_template)

    def template(self) -> Row:
        base = self._child.template()
        return Row(
            columns=base.columns,
            values=base.values,
            sources=base.sources,
            aggregates={str(agg): None for agg in self._aggregates},
        )

    def open(self) -> None:
        groups: dict[tuple[Any, ...], list[Row]] = {}
        for row in self._child:
            key = tuple(self._evaluator.evaluate(expr, row) for expr in self._group_by)
            groups.setdefault(key, []).append(row)

        if not self._group_by:
            members = groups.get((), [])
            self._groups = [self._group_row(members)]
        else:
            ordered = sorted(groups.items(), key=lambda item: [sort_key(v) for v in item[0]])
            self._groups = [self._group_row(members) for _, members in ordered]
        self._current_idx = 0

    def _group_row(self, members: list[Row]) -> Row:
        base = members[0] if members else self._child.template()
        return Row(
            columns=base.columns,
            values=base.values,
            sources=base.sources,
            aggregates={
                str(agg): self._evaluator.aggregate(agg, members) for agg in self._aggregates
            },
        )

    def next(self) -> Row | None:
        if self._current_idx >= len(self._groups):
            return None
        row = self._groups[self._current_idx]
        self._current_idx += 1
        return row

    def close(self) -> None:
        self._groups = []
        self._current_idx = 0


class ProjectOperator(Operator):
    """Project operator that computes the select list.

    Output rows keep their input row as ``parent`` so that later
    operators can still reach non-selected columns and aggregates.
    """

    def __init__(
        self, child: Operator, items: list[SelectItem], evaluator: ExpressionEvaluator
    ) -> None:
        self._child = child
        self._evaluator = evaluator
        self._columns: list[str] = []
        self._sources: list[str | None] = []
        # (expression, input position for star expansion)
        self._outputs: list[tuple[Expression | None, int | None]] = []

        input_template = child.template()
        for item in items:
            if isinstance(item.expr, StarExpr):
                self._expand_star(item.expr, input_template)
                continue
            validate_expression(item.expr, input_template)
            self._columns.append(item.output_name)
            self._sources.append(None)
            self._outputs.append((item.expr, None))

    def _expand_star(self, star: StarExpr, template: Row) -> None:
        if not template.columns and star.table is None:
            raise ParseError("no tables specified")
        wanted = star.table.casefold() if star.table else None
        found = False
        for idx, (name, source) in enumerate(zip(template.columns, template.sources)):
            if wanted is not None and (source or "").casefold() != wanted:
                continue
            found = True
            self._columns.append(name)
            self._sources.append(source)
            self._outputs.append((None, idx))
        if not found:
            raise SchemaError(f"no such table: {star.table}")

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def template(self) -> Row:
        return Row(
            columns=list(self._columns),
            values=[None] * len(self._columns),
            sources=list(self._sources),
            parent=self._child.template(),
        )

    def open(self) -> None:
        self._child.open()

    def next(self) -> Row | None:
        row = self._child.next()
        if row is None:
            return None

        values = []
        for expr, position in self._outputs:
            if expr is None:
                values.append(row.values[position])
            else:
                values.append(self._evaluator.evaluate(expr, row))

        return Row(
            columns=list(self._columns),
            values=values,
            sources=list(self._sources),
            parent=row,
        )

    def close(self) -> None:
        self._child.close()


class DistinctOperator(Operator):
    """Drops rows whose values repeat an earlier row."""

    def __init__(self, child: Operator) -> None:
        self._child = child
        self._seen: set[tuple[Any, ...]] = set()

    def template(self) -> Row:
        return self._child.template()

    def open(self) -> None:
        self._child.open()
        self._seen = set()

    def next(self) -> Row | None:
        while True:
            row = self._child.next()
            if row is None:
                return None
            key = row.as_tuple()
            if key not in self._seen:
                self._seen.add(key)
                return row

    def close(self) -> None:
        self._child.close()
        self._seen = set()


class SortOperator(Operator):
    """Sort operator that orders rows.

    The sort is stable: rows with equal keys keep their input order.
    Keys are applied as successive stable sorts from the last key to
    the first, each ascending or descending on its own.
    """

    def __init__(
        self, child: Operator, order_by: list[OrderByItem], evaluator: ExpressionEvaluator
    ) -> None:
        self._child = child
        self._order_by = order_by
        self._evaluator = evaluator
        self._sorted_rows: list[Row] = []
        self._current_idx = 0

        template = child.template()
        for number, item in enumerate(order_by, start=1):
            if item.position is not None:
                if not 1 <= item.position <= len(template.columns):
                    raise ParseError(
                        f"ORDER BY term {number} out of range - should be "
                        f"between 1 and {len(template.columns)}"
                    )
            elif item.expr is not None:
                validate_expression(item.expr, template)

    def template(self) -> Row:
        return self._child.template()

    def _key_value(self, item: OrderByItem, row: Row) -> Any:
        if item.position is not None:
            return row.values[item.position - 1]
        return self._evaluator.evaluate(item.expr, row)

    def open(self) -> None:
        # Materialize all rows and their keys
        keyed = [
            ([sort_key(self._key_value(item, row)) for item in self._order_by], row)
            for row in self._child
        ]

        for idx in reversed(range(len(self._order_by))):
            keyed.sort(key=lambda pair: pair[0][idx], reverse=not self._order_by[idx].ascending)

        self._sorted_rows = [row for _, row in keyed]
        self._current_idx = 0

    def next(self) -> Row | None:
        if self._current_idx >= len(self._sorted_rows):
            return None
        row = self._sorted_rows[self._current_idx]
        self._current_idx += 1
        return row

    def close(self) -> None:
        self._sorted_rows = []
        self._current_idx = 0


class LimitOperator(Operator):
    """Limit operator: skips ``offset`` rows, then returns up to ``limit``."""

    def __init__(self, child: Operator, limit: int | None, offset: int = 0) -> None:
        self._child = child
        self._limit = limit
        self._offset = offset
        self._returned = 0
        self._offset_done = False

    def template(self) -> Row:
        return self._child.template()

    def open(self) -> None:
        self._child.open()
        self._returned = 0
        self._offset_done = False

    def next(self) -> Row | None:
        # Skip offset rows (only once at the beginning)
        if not self._offset_done:
            self._offset_done = True
            for _ in range(self._offset):
                if self._child.next() is None:
                    return None

        if self._limit is not None and self._returned >= self._limit:
            return None
        row = self._child.next()
        if row is None:
            return None
        self._returned += 1
        return row

    def close(self) -> None:
        self._child.close()


class QueryExecutor:
    """Executes logical plans against the schema registry.

    The executor converts logical plans into physical operator trees
    and executes them using the Volcano iterator model. Failures are
    raised as ``QueryError`` subclasses; mutating statements compute and
    check every change before applying any of it.
    """

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        evaluator: ExpressionEvaluator | None = None,
    ) -> None:
        self._registry = registry if registry is not None else SchemaRegistry()
        self._evaluator = evaluator or ExpressionEvaluator()

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def execute(self, plan: LogicalPlan) -> ExecutionResult:
        """Execute a logical plan.

        Args:
            plan: The logical plan to execute.

        Returns:
            ExecutionResult with rows and/or status message.

        Raises:
            QueryError: If the statement fails. Nothing has been changed.
        """
        if isinstance(plan, _QUERY_NODES):
            result = self._execute_query(plan)
        elif isinstance(plan, InsertPlan):
            result = self._execute_insert(plan)
        elif isinstance(plan, UpdatePlan):
            result = self._execute_update(plan)
        elif isinstance(plan, DeletePlan):
            result = self._execute_delete(plan)
        elif isinstance(plan, CreateTablePlan):
            result = self._execute_create_table(plan)
        elif isinstance(plan, DropTablePlan):
            result = self._execute_drop_table(plan)
        elif isinstance(plan, AlterTablePlan):
            result = self._execute_alter_table(plan)
        elif isinstance(plan, TransactionPlan):
            result = self._execute_transaction(plan)
        else:
            raise ParseError(f"Unsupported plan type: {type(plan).__name__}")
        result.statement_type = statement_type_of(plan)
        return result

    # Queries

    def _execute_query(self, plan: LogicalPlan) -> ExecutionResult:
        """Execute a SELECT query."""
        operator = self.build_operator_tree(plan)
        columns = operator.template().columns
        rows = [Row(columns=list(row.columns), values=list(row.values)) for row in operator]
        return ExecutionResult(rows=rows, columns=columns, message=f"OK: {len(rows)} row(s)")

    def build_operator_tree(
        self, plan: LogicalPlan, select_items: list[SelectItem] | None = None
    ) -> Operator:
        """Build a physical operator tree from a logical plan.

        Raises:
            SchemaError, ParseError: If the plan references unknown
                tables or columns, or misuses aggregates.
        """
        if isinstance(plan, TableScan):
            table = self._registry.get_table(plan.table_name)
            return SeqScanOperator(table, plan.source_name)
        elif isinstance(plan, OneRow):
            return OneRowOperator()
        elif isinstance(plan, Join):
            return NestedLoopJoinOperator(
                left=self.build_operator_tree(plan.left),
                right=self.build_operator_tree(plan.right),
                kind=plan.kind,
                condition=plan.condition,
                evaluator=self._evaluator,
            )
        elif isinstance(plan, Filter):
            child = self.build_operator_tree(plan.input)
            return FilterOperator(child=child, predicate=plan.predicate, evaluator=self._evaluator)
        elif isinstance(plan, Aggregate):
            child = self.build_operator_tree(plan.input)
            group_by = [
                self._resolve_group_alias(expr, child.template(), select_items or [])
                for expr in plan.group_by
            ]
            return AggregateOperator(
                child=child,
                group_by=group_by,
                aggregates=plan.aggregates,
                evaluator=self._evaluator,
            )
        elif isinstance(plan, Project):
            child = self.build_operator_tree(plan.input, plan.items)
            return ProjectOperator(child=child, items=plan.items, evaluator=self._evaluator)
        elif isinstance(plan, Distinct):
            return DistinctOperator(self.build_operator_tree(plan.input))
        elif isinstance(plan, Sort):
            child = self.build_operator_tree(plan.input)
            return SortOperator(child=child, order_by=plan.order_by, evaluator=self._evaluator)
        elif isinstance(plan, Limit):
            child = self.build_operator_tree(plan.input)
            return LimitOperator(child=child, limit=plan.count, offset=plan.offset)
        else:
            raise ParseError(f"Unsupported plan node: {type(plan).__name__}")

    @staticmethod
    def _resolve_group_alias(
        expr: Expression, template: Row, select_items: list[SelectItem]
    ) -> Expression:
        """GROUP BY name that is not an input column but a select alias."""
        if not isinstance(expr, ColumnExpr) or expr.column.table is not None:
            return expr
        if template.has_column(expr.column.name):
            return expr
        folded = expr.column.name.casefold()
        for item in select_items:
            if item.alias and item.alias.casefold() == folded:
                if contains_aggregate(item.expr):
                    raise ParseError(
                        f"aggregate functions are not allowed in the GROUP BY clause: {item.alias}"
                    )
                return item.expr
        return expr

    # Mutations

    def _execute_insert(self, plan: InsertPlan) -> ExecutionResult:
        """Execute an INSERT statement."""
        table = self._registry.get_table(plan.table_name)
        targets = self._insert_targets(table, plan.columns)

        if plan.query is not None:
            operator = self.build_operator_tree(plan.query)
            value_rows = [list(row.values) for row in operator]
        else:
            value_rows = [
                [self._evaluator.evaluate(expr, _EMPTY_ROW) for expr in exprs]
                for exprs in plan.values
            ]

        new_rows: list[dict[str, Any]] = []
        rowid = table.rowid_column
        for values in value_rows:
            if len(values) != len(targets):
                if plan.columns:
                    raise SchemaError(f"{len(values)} values for {len(targets)} columns")
                raise SchemaError(
                    f"table {table.name} has {len(targets)} columns but "
                    f"{len(values)} values were supplied"
                )
            supplied = {column.name: value for column, value in zip(targets, values)}
            record: dict[str, Any] = {}
            for column in table.columns:
                if column.name in supplied:
                    value = supplied[column.name]
                else:
                    value = self._default_value(column)
                record[column.name] = coerce(value, column.data_type, column.name)
            if rowid is not None and record[rowid.name] is None:
                record[rowid.name] = table.next_rowid(new_rows)
            table.check_not_null(record)
            new_rows.append(record)

        table.check_unique(table.rows + new_rows)
        count = table.append_rows(new_rows)
        return ExecutionResult(affected_rows=count, message=f"OK: {count} row(s) inserted")

    @staticmethod
    def _insert_targets(table: Table, names: list[str]) -> list[ColumnDef]:
        if not names:
            return list(table.columns)
        targets: list[ColumnDef] = []
        for name in names:
            column = table.get_column(name)
            if column in targets:
                raise SchemaError(f"column {column.name} specified more than once")
            targets.append(column)
        return targets

    def _default_value(self, column: ColumnDef) -> Any:
        if column.default is None:
            return None
        return self._evaluator.evaluate(column.default, _EMPTY_ROW)

    def _execute_update(self, plan: UpdatePlan) -> ExecutionResult:
        """Execute an UPDATE statement."""
        table = self._registry.get_table(plan.table_name)
        scan = SeqScanOperator(table)
        template = scan.template()

        assignments = []
        for name, expr in plan.assignments.items():
            validate_expression(expr, template)
            assignments.append((table.get_column(name), expr))
        if plan.predicate is not None:
            validate_expression(plan.predicate, template)

        changes: dict[int, dict[str, Any]] = {}
        for position, row in enumerate(scan):
            if plan.predicate is not None and not self._evaluator.matches(plan.predicate, row):
                continue
            new_values = {
                column.name: coerce(self._evaluator.evaluate(expr, row), column.data_type, column.name)
                for column, expr in assignments
            }
            table.check_not_null({**table.rows[position], **new_values})
            changes[position] = new_values

        if changes:
            table.check_unique(
                {**stored, **changes[position]} if position in changes else stored
                for position, stored in enumerate(table.rows)
            )
        count = table.update_rows(changes)
        return ExecutionResult(affected_rows=count, message=f"OK: {count} row(s) updated")

    def _execute_delete(self, plan: DeletePlan) -> ExecutionResult:
        """Execute a DELETE statement."""
        table = self._registry.get_table(plan.table_name)
        scan = SeqScanOperator(table)
        if plan.predicate is None:
            positions = list(range(table.row_count))
        else:
            validate_expression(plan.predicate, scan.template())
            positions = [
                position
                for position, row in enumerate(scan)
                if self._evaluator.matches(plan.predicate, row)
            ]

        count = table.delete_rows(positions)
        return ExecutionResult(affected_rows=count, message=f"OK: {count} row(s) deleted")

    # DDL

    def _execute_create_table(self, plan: CreateTablePlan) -> ExecutionResult:
        """Execute a CREATE TABLE statement."""
        for column in plan.columns:
            if column.default is not None:
                validate_expression(column.default, _EMPTY_ROW)

        created = self._registry.create_table(
            plan.table_name,
            plan.columns,
            primary_key=plan.primary_key,
            if_not_exists=plan.if_not_exists,
        )
        if not created:
            return ExecutionResult(message=f"OK: table '{plan.table_name}' already exists")
        return ExecutionResult(message=f"OK: table '{plan.table_name}' created")

    def _execute_drop_table(self, plan: DropTablePlan) -> ExecutionResult:
        """Execute a DROP TABLE statement."""
        if not self._registry.drop_table(plan.table_name, if_exists=plan.if_exists):
            return ExecutionResult(message=f"OK: table '{plan.table_name}' does not exist")
        return ExecutionResult(message=f"OK: table '{plan.table_name}' dropped")

    def _execute_alter_table(self, plan: AlterTablePlan) -> ExecutionResult:
        """Execute an ALTER TABLE statement."""
        if plan.action == AlterAction.ADD_COLUMN and plan.column is not None:
            column = plan.column
            fill_value = None
            if column.default is not None:
                validate_expression(column.default, _EMPTY_ROW)
                fill_value = coerce(self._default_value(column), column.data_type, column.name)
            count = self._registry.add_column(plan.table_name, column, fill_value)
            return ExecutionResult(
                affected_rows=count,
                message=f"OK: column '{column.name}' added to '{plan.table_name}'",
            )

        if plan.action == AlterAction.RENAME_TABLE:
            self._registry.rename_table(plan.table_name, plan.new_name)
            return ExecutionResult(
                message=f"OK: table '{plan.table_name}' renamed to '{plan.new_name}'"
            )

        table = self._registry.get_table(plan.table_name)
        if plan.action == AlterAction.RENAME_COLUMN:
            table.rename_column(plan.old_name, plan.new_name)
            return ExecutionResult(
                message=f"OK: column '{plan.old_name}' renamed to '{plan.new_name}'"
            )
        if plan.action == AlterAction.DROP_COLUMN:
            table.drop_column(plan.old_name)
            return ExecutionResult(message=f"OK: column '{plan.old_name}' dropped")
        raise ParseError(f"Unsupported ALTER TABLE action: {plan.action.value}")

    def _execute_transaction(self, plan: TransactionPlan) -> ExecutionResult:
        """Acknowledge a transaction control statement; nothing is undone."""
        if plan.statement_type == StatementType.BEGIN:
            return ExecutionResult(message="OK: transaction started")
        elif plan.statement_type == StatementType.COMMIT:
            return ExecutionResult(message="OK: transaction committed")
        elif plan.statement_type == StatementType.ROLLBACK:
            return ExecutionResult(message="OK: rollback ignored, changes are kept")
        raise ParseError(f"Unknown transaction statement: {plan.statement_type}")
