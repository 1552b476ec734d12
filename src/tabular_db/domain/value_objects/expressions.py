"""Expression trees evaluated against rows.

Expressions are produced by the SQL parser and consumed by the
expression evaluator. ``str()`` of an expression is a normalized SQL
rendering; for aggregates it doubles as the key under which a grouped
row stores the aggregate's value.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from tabular_db.domain.value_objects.scalar_types import ScalarType


class ComparisonOp(Enum):
    """Comparison operators for predicates."""

    EQ = "="
    NE = "<>"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IS = "IS"
    IS_NOT = "IS NOT"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"


class LogicalOp(Enum):
    """Logical operators for combining predicates."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class ArithmeticOp(Enum):
    """Binary arithmetic and string operators."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    CONCAT = "||"


class AggregateFunc(Enum):
    """Aggregate functions."""

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


@dataclass
class ColumnRef:
    """Reference to a column, optionally qualified with a table name or alias."""

    name: str
    table: str | None = None

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.{self.name}"
        return self.name


@dataclass
class Expression(ABC):
    """Base class for expressions."""

    @abstractmethod
    def __str__(self) -> str:
        pass

    def children(self) -> tuple[Expression, ...]:
        """Direct sub-expressions."""
        return ()


@dataclass
class ColumnExpr(Expression):
    """Column reference expression."""

    column: ColumnRef

    def __str__(self) -> str:
        return str(self.column)


@dataclass
class StarExpr(Expression):
    """``*`` or ``t.*`` in a select list."""

    table: str | None = None

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.*"
        return "*"


@dataclass
class LiteralExpr(Expression):
    """Literal value expression. ``None`` is SQL NULL."""

    value: Any

    def __str__(self) -> str:
        if self.value is None:
            return "NULL"
        if isinstance(self.value, str):
            escaped = self.value.replace("'", "''")
            return f"'{escaped}'"
        return str(self.value)


@dataclass
class ComparisonExpr(Expression):
    """Comparison expression (e.g., col = value)."""

    left: Expression
    op: ComparisonOp
    right: Expression | None = None  # None for IS NULL / IS NOT NULL

    def __str__(self) -> str:
        if self.right is None:
            return f"{self.left} {self.op.value}"
        return f"{self.left} {self.op.value} {self.right}"

    def children(self) -> tuple[Expression, ...]:
        if self.right is None:
            return (self.left,)
        return (self.left, self.right)


@dataclass
class LogicalExpr(Expression):
    """Logical expression combining other expressions."""

    op: LogicalOp
    operands: list[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        if self.op == LogicalOp.NOT:
            return f"NOT ({self.operands[0]})"
        op_str = f" {self.op.value} "
        return f"({op_str.join(str(o) for o in self.operands)})"

    def children(self) -> tuple[Expression, ...]:
        return tuple(self.operands)


@dataclass
class InExpr(Expression):
    """``x [NOT] IN (a, b, ...)``."""

    operand: Expression
    values: list[Expression]
    negated: bool = False

    def __str__(self) -> str:
        values = ", ".join(str(v) for v in self.values)
        keyword = "NOT IN" if self.negated else "IN"
        return f"{self.operand} {keyword} ({values})"

    def children(self) -> tuple[Expression, ...]:
        return (self.operand, *self.values)


@dataclass
class BetweenExpr(Expression):
    """``x [NOT] BETWEEN low AND high``."""

    operand: Expression
    low: Expression
    high: Expression
    negated: bool = False

    def __str__(self) -> str:
        keyword = "NOT BETWEEN" if self.negated else "BETWEEN"
        return f"{self.operand} {keyword} {self.low} AND {self.high}"

    def children(self) -> tuple[Expression, ...]:
        return (self.operand, self.low, self.high)


@dataclass
class ArithmeticExpr(Expression):
    """Binary arithmetic or concatenation."""

    left: Expression
    op: ArithmeticOp
    right: Expression

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"

    def children(self) -> tuple[Expression, ...]:
        return (self.left, self.right)


@dataclass
class NegateExpr(Expression):
    """Unary minus."""

    operand: Expression

    def __str__(self) -> str:
        return f"-{self.operand}"

    def children(self) -> tuple[Expression, ...]:
        return (self.operand,)


@dataclass
class WhenClause:
    """One ``WHEN condition THEN result`` branch."""

    condition: Expression
    result: Expression


@dataclass
class CaseExpr(Expression):
    """``CASE [operand] WHEN ... THEN ... [ELSE ...] END``.

    With an operand each WHEN value is compared to it with ``=``;
    without one each WHEN is a predicate.
    """

    whens: list[WhenClause]
    default: Expression | None = None
    operand: Expression | None = None

    def __str__(self) -> str:
        parts = ["CASE"]
        if self.operand is not None:
            parts.append(str(self.operand))
        for when in self.whens:
            parts.append(f"WHEN {when.condition} THEN {when.result}")
        if self.default is not None:
            parts.append(f"ELSE {self.default}")
        parts.append("END")
        return " ".join(parts)

    def children(self) -> tuple[Expression, ...]:
        nodes: list[Expression] = []
        if self.operand is not None:
            nodes.append(self.operand)
        for when in self.whens:
            nodes.extend((when.condition, when.result))
        if self.default is not None:
            nodes.append(self.default)
        return tuple(nodes)


@dataclass
class CastExpr(Expression):
    """``CAST(x AS type)``."""

    operand: Expression
    target: ScalarType

    def __str__(self) -> str:
        return f"CAST({self.operand} AS {self.target.value})"

    def children(self) -> tuple[Expression, ...]:
        return (self.operand,)


@dataclass
class FunctionExpr(Expression):
    """Scalar function call."""

    name: str
    args: list[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.args and self.name == "CURRENT_DATE":
            return self.name
        return f"{self.name}({', '.join(str(a) for a in self.args)})"

    def children(self) -> tuple[Expression, ...]:
        return tuple(self.args)


@dataclass
class AggregateExpr(Expression):
    """Aggregate function expression."""

    func: AggregateFunc
    arg: Expression | None = None  # None for COUNT(*)
    distinct: bool = False

    def __str__(self) -> str:
        if self.arg is None:
            return f"{self.func.value}(*)"
        distinct_str = "DISTINCT " if self.distinct else ""
        return f"{self.func.value}({distinct_str}{self.arg})"

    def children(self) -> tuple[Expression, ...]:
        if self.arg is None:
            return ()
        return (self.arg,)


def walk(expr: Expression) -> Iterator[Expression]:
    """Yield an expression and all of its descendants, depth first."""
    yield expr
    for child in expr.children():
        yield from walk(child)


def find_aggregates(expr: Expression) -> list[AggregateExpr]:
    """Aggregates appearing in an expression, outermost only."""
    if isinstance(expr, AggregateExpr):
        return [expr]
    found: list[AggregateExpr] = []
    for child in expr.children():
        found.extend(find_aggregates(child))
    return found


def contains_aggregate(expr: Expression) -> bool:
    return any(isinstance(node, AggregateExpr) for node in walk(expr))


@dataclass
class SelectItem:
    """An item in a SELECT list.

    ``name`` is the SQL text the item was written as, used for the
    output column name when there is no alias.
    """

    expr: Expression
    alias: str | None = None
    name: str | None = None

    @property
    def output_name(self) -> str:
        if self.alias:
            return self.alias
        if isinstance(self.expr, ColumnExpr):
            return self.expr.column.name
        return self.name or str(self.expr)


@dataclass
class OrderByItem:
    """An item in an ORDER BY clause.

    ``position`` is set for ordinal keys (``ORDER BY 2``) and refers to
    the 1-based output column.
    """

    expr: Expression | None
    ascending: bool = True
    position: int | None = None
