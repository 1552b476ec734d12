"""Value objects for the query evaluator.

Exports:
    Scalar types:
        - ScalarType: INTEGER, REAL, TEXT, DATE storage types
        - coerce, compare, sort_key: value rules shared by the
          evaluator, the executor and the row store

    Expressions:
        - Expression and its node types, parsed from SQL and evaluated
          against rows

Logical plans live in ``tabular_db.domain.value_objects.logical_plan``
and are imported from there directly.
"""

from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    AggregateFunc,
    ArithmeticExpr,
    ArithmeticOp,
    BetweenExpr,
    CaseExpr,
    CastExpr,
    ColumnExpr,
    ColumnRef,
    ComparisonExpr,
    ComparisonOp,
    Expression,
    FunctionExpr,
    InExpr,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    NegateExpr,
    OrderByItem,
    SelectItem,
    StarExpr,
    WhenClause,
    contains_aggregate,
    find_aggregates,
    walk,
)
from tabular_db.domain.value_objects.scalar_types import (
    ScalarType,
    coerce,
    compare,
    sort_key,
)

__all__ = [
    # Scalar types
    "ScalarType",
    "coerce",
    "compare",
    "sort_key",
    # Expressions
    "Expression",
    "ColumnRef",
    "ColumnExpr",
    "StarExpr",
    "LiteralExpr",
    "ComparisonExpr",
    "ComparisonOp",
    "LogicalExpr",
    "LogicalOp",
    "InExpr",
    "BetweenExpr",
    "ArithmeticExpr",
    "ArithmeticOp",
    "NegateExpr",
    "CaseExpr",
    "WhenClause",
    "CastExpr",
    "FunctionExpr",
    "AggregateExpr",
    "AggregateFunc",
    "SelectItem",
    "OrderByItem",
    "walk",
    "find_aggregates",
    "contains_aggregate",
]
