"""Domain services for the query evaluator.

Exports:
    Expression evaluation:
        - ExpressionEvaluator: three-valued predicate, scalar and
          aggregate evaluation

    Schema registry:
        - SchemaRegistry: catalog of named tables
"""

from tabular_db.domain.services.expression_evaluator import (
    SCALAR_FUNCTIONS,
    ExpressionEvaluator,
)
from tabular_db.domain.services.schema_registry import SchemaRegistry

__all__ = [
    "ExpressionEvaluator",
    "SCALAR_FUNCTIONS",
    "SchemaRegistry",
]
