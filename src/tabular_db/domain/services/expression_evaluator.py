"""Expression evaluation with SQL three-valued logic.

Predicates evaluate to True, False or None (unknown). A comparison with
a NULL operand is unknown, and unknown is treated as false when the
predicate filters rows:

    AND      True   False  None        OR       True  False  None
    True     True   False  None        True     True  True   True
    False    False  False  False       False    True  False  None
    None     None   False  None        None     True  None   None

Aggregates are evaluated in two places: ``aggregate()`` computes one
over a group of rows, and evaluating an ``AggregateExpr`` against a
grouped row reads the value the aggregate operator stored on it.
"""

from __future__ import annotations

import datetime
import math
import re
from functools import lru_cache
from typing import Any, Iterable

from tabular_db.domain.entities.row import Row
from tabular_db.domain.errors import ParseError, TypeMismatchError
from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    AggregateFunc,
    ArithmeticExpr,
    ArithmeticOp,
    BetweenExpr,
    CaseExpr,
    CastExpr,
    ColumnExpr,
    ComparisonExpr,
    ComparisonOp,
    Expression,
    FunctionExpr,
    InExpr,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    NegateExpr,
    StarExpr,
)
from tabular_db.domain.value_objects.scalar_types import (
    coerce,
    compare,
    kind_name,
    sort_key,
    to_text,
)

SCALAR_FUNCTIONS = frozenset(
    {
        "UPPER",
        "LOWER",
        "LENGTH",
        "ABS",
        "ROUND",
        "COALESCE",
        "NULLIF",
        "SUBSTRING",
        "TRIM",
        "CURRENT_DATE",
    }
)

# ROUND() keeps at most this many decimal places, like SQLite
MAX_ROUND_DIGITS = 30
MAX_EXACT_FRACTION = 2**52


@lru_cache(maxsize=256)
def _like_regex(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts), flags)


def _is_number(value: Any) -> bool:
    return isinstance(value, (bool, int, float))


class ExpressionEvaluator:
    """Evaluates expressions against rows.

    Example:
        >>> evaluator = ExpressionEvaluator()
        >>> row = Row(columns=["name"], values=["Storm"])
        >>> predicate = ComparisonExpr(
        ...     ColumnExpr(ColumnRef("name")), ComparisonOp.LIKE, LiteralExpr("s%")
        ... )
        >>> evaluator.matches(predicate, row)
        True
    """

    def __init__(self, like_case_sensitive: bool = False) -> None:
        """Initialize the evaluator.

        Args:
            like_case_sensitive: Make LIKE match case-sensitively.
        """
        self._like_case_sensitive = like_case_sensitive

    def matches(self, predicate: Expression, row: Row) -> bool:
        """Evaluate a predicate as a row filter; unknown counts as false."""
        return self.truth(self.evaluate(predicate, row)) is True

    def evaluate(self, expr: Expression, row: Row) -> Any:
        """Evaluate an expression against a row.

        Raises:
            SchemaError: On an unknown or ambiguous column.
            TypeMismatchError: On incompatible operands.
            ParseError: On an aggregate used outside a grouped context.
        """
        if isinstance(expr, LiteralExpr):
            return expr.value
        elif isinstance(expr, ColumnExpr):
            return row.lookup(expr.column.name, expr.column.table)
        elif isinstance(expr, ComparisonExpr):
            return self._evaluate_comparison(expr, row)
        elif isinstance(expr, LogicalExpr):
            return self._evaluate_logical(expr, row)
        elif isinstance(expr, InExpr):
            return self._evaluate_in(expr, row)
        elif isinstance(expr, BetweenExpr):
            value = self.evaluate(expr.operand, row)
            low = self.evaluate(expr.low, row)
            high = self.evaluate(expr.high, row)
            result = self._and(
                [self.compare(value, ComparisonOp.GE, low), self.compare(value, ComparisonOp.LE, high)]
            )
            return self._not(result) if expr.negated else result
        elif isinstance(expr, ArithmeticExpr):
            left = self.evaluate(expr.left, row)
            right = self.evaluate(expr.right, row)
            return self.arithmetic(left, expr.op, right)
        elif isinstance(expr, NegateExpr):
            value = self.evaluate(expr.operand, row)
            if value is None:
                return None
            if not _is_number(value):
                raise TypeMismatchError(f"Cannot negate {kind_name(value)} {value!r}")
            return -value
        elif isinstance(expr, CaseExpr):
            return self._evaluate_case(expr, row)
        elif isinstance(expr, CastExpr):
            return coerce(self.evaluate(expr.operand, row), expr.target)
        elif isinstance(expr, FunctionExpr):
            args = [self.evaluate(arg, row) for arg in expr.args]
            return self.call_function(expr.name, args)
        elif isinstance(expr, AggregateExpr):
            return row.aggregate(str(expr))
        elif isinstance(expr, StarExpr):
            raise ParseError(f"{expr} is only allowed in a select list or COUNT(*)")
        raise ParseError(f"Unsupported expression: {expr}")

    # Three-valued logic

    @staticmethod
    def truth(value: Any) -> bool | None:
        """Interpret a scalar as a truth value (NULL is unknown)."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return float(value) != 0
            except ValueError:
                return False
        if isinstance(value, datetime.date):
            return True
        return bool(value)

    def _and(self, values: Iterable[Any]) -> bool | None:
        result: bool | None = True
        for value in values:
            truth = self.truth(value)
            if truth is False:
                return False
            if truth is None:
                result = None
        return result

    def _not(self, value: Any) -> bool | None:
        truth = self.truth(value)
        if truth is None:
            return None
        return not truth

    def _evaluate_logical(self, expr: LogicalExpr, row: Row) -> bool | None:
        if expr.op == LogicalOp.NOT:
            return self._not(self.evaluate(expr.operands[0], row))

        if expr.op == LogicalOp.AND:
            result: bool | None = True
            for operand in expr.operands:
                truth = self.truth(self.evaluate(operand, row))
                if truth is False:
                    return False
                if truth is None:
                    result = None
            return result

        result = False
        for operand in expr.operands:
            truth = self.truth(self.evaluate(operand, row))
            if truth is True:
                return True
            if truth is None:
                result = None
        return result

    # Comparisons

    def _evaluate_comparison(self, expr: ComparisonExpr, row: Row) -> bool | None:
        left = self.evaluate(expr.left, row)
        if expr.op == ComparisonOp.IS_NULL:
            return left is None
        if expr.op == ComparisonOp.IS_NOT_NULL:
            return left is not None
        if expr.right is None:
            raise ParseError(f"Missing right operand in {expr}")
        right = self.evaluate(expr.right, row)
        return self.compare(left, expr.op, right)

    def compare(self, left: Any, op: ComparisonOp, right: Any) -> bool | None:
        """Compare two values with the given operator.

        Returns:
            The comparison result, or None when it is unknown.
        """
        if op in (ComparisonOp.IS, ComparisonOp.IS_NOT):
            if left is None or right is None:
                same = left is None and right is None
            else:
                same = compare(left, right) == 0
            return same if op == ComparisonOp.IS else not same

        if op in (ComparisonOp.LIKE, ComparisonOp.NOT_LIKE):
            matched = self.like(left, right)
            if matched is None or op == ComparisonOp.LIKE:
                return matched
            return not matched

        order = compare(left, right)
        if order is None:
            return None
        if op == ComparisonOp.EQ:
            return order == 0
        elif op == ComparisonOp.NE:
            return order != 0
        elif op == ComparisonOp.LT:
            return order < 0
        elif op == ComparisonOp.LE:
            return order <= 0
        elif op == ComparisonOp.GT:
            return order > 0
        elif op == ComparisonOp.GE:
            return order >= 0
        raise ParseError(f"Unsupported comparison operator: {op.value}")

    def like(self, value: Any, pattern: Any) -> bool | None:
        """Match ``%`` (any run) and ``_`` (one character) wildcards."""
        if value is None or pattern is None:
            return None
        regex = _like_regex(to_text(pattern), self._like_case_sensitive)
        return regex.fullmatch(to_text(value)) is not None

    def _evaluate_in(self, expr: InExpr, row: Row) -> bool | None:
        value = self.evaluate(expr.operand, row)
        if value is None:
            return None
        result: bool | None = False
        for candidate_expr in expr.values:
            candidate = self.evaluate(candidate_expr, row)
            outcome = self.compare(value, ComparisonOp.EQ, candidate)
            if outcome is True:
                result = True
                break
            if outcome is None:
                result = None
        if expr.negated:
            return self._not(result)
        return result

    def _evaluate_case(self, expr: CaseExpr, row: Row) -> Any:
        operand = self.evaluate(expr.operand, row) if expr.operand is not None else None
        for when in expr.whens:
            if expr.operand is not None:
                hit = self.compare(operand, ComparisonOp.EQ, self.evaluate(when.condition, row))
            else:
                hit = self.truth(self.evaluate(when.condition, row))
            if hit is True:
                return self.evaluate(when.result, row)
        if expr.default is not None:
            return self.evaluate(expr.default, row)
        return None

    # Arithmetic

    def arithmetic(self, left: Any, op: ArithmeticOp, right: Any) -> Any:
        """Apply a binary operator; NULL in, NULL out."""
        if left is None or right is None:
            return None

        if op == ArithmeticOp.CONCAT:
            return f"{to_text(left)}{to_text(right)}"

        for value in (left, right):
            if not _is_number(value):
                raise TypeMismatchError(
                    f"Cannot apply '{op.value}' to {kind_name(value)} {value!r}"
                )

        if op == ArithmeticOp.ADD:
            return left + right
        elif op == ArithmeticOp.SUB:
            return left - right
        elif op == ArithmeticOp.MUL:
            return left * right
        elif op == ArithmeticOp.DIV:
            if right == 0:
                return None
            if isinstance(left, int) and isinstance(right, int):
                quotient = abs(left) // abs(right)
                return quotient if (left >= 0) == (right >= 0) else -quotient
            return left / right
        elif op == ArithmeticOp.MOD:
            if right == 0:
                return None
            if isinstance(left, int) and isinstance(right, int):
                remainder = abs(left) % abs(right)
                return remainder if left >= 0 else -remainder
            return math.fmod(left, right)
        raise ParseError(f"Unsupported operator: {op.value}")

    # Scalar functions

    def call_function(self, name: str, args: list[Any]) -> Any:
        """Evaluate a scalar function over already-evaluated arguments."""
        if name == "COALESCE":
            return next((arg for arg in args if arg is not None), None)
        if name == "CURRENT_DATE":
            return datetime.date.today()
        if name == "NULLIF":
            self._check_arity(name, args, 2)
            return None if self.compare(args[0], ComparisonOp.EQ, args[1]) else args[0]

        if not args:
            raise ParseError(f"wrong number of arguments to function {name}()")
        value = args[0]
        if value is None:
            return None

        if name == "UPPER":
            self._check_arity(name, args, 1)
            return to_text(value).upper()
        elif name == "LOWER":
            self._check_arity(name, args, 1)
            return to_text(value).lower()
        elif name == "LENGTH":
            self._check_arity(name, args, 1)
            return len(to_text(value))
        elif name == "TRIM":
            self._check_arity(name, args, 1)
            return to_text(value).strip()
        elif name == "ABS":
            self._check_arity(name, args, 1)
            if not _is_number(value):
                raise TypeMismatchError(f"ABS() expects a number, got {value!r}")
            return abs(value)
        elif name == "ROUND":
            return self._round(args)
        elif name == "SUBSTRING":
            return self._substring(args)
        raise ParseError(f"no such function: {name}")

    @staticmethod
    def _check_arity(name: str, args: list[Any], expected: int) -> None:
        if len(args) != expected:
            raise ParseError(f"wrong number of arguments to function {name}()")

    @staticmethod
    def _round(args: list[Any]) -> float | None:
        if len(args) not in (1, 2):
            raise ParseError("wrong number of arguments to function ROUND()")
        value = args[0]
        digits = args[1] if len(args) == 2 else 0
        if digits is None:
            return None
        if not _is_number(value) or not _is_number(digits):
            raise TypeMismatchError(f"ROUND() expects numbers, got {value!r}, {digits!r}")
        try:
            value = float(value)
        except OverflowError as e:
            raise TypeMismatchError(f"ROUND() argument out of range: {args[0]!r}") from e
        # Past 2**52 a double has no fractional part left to round.
        if not math.isfinite(value) or abs(value) >= MAX_EXACT_FRACTION:
            return value
        scale = 10 ** int(min(max(digits, 0), MAX_ROUND_DIGITS))
        rounded = math.floor(abs(value) * scale + 0.5) / scale
        if rounded == 0:
            return 0.0
        return math.copysign(rounded, value)

    @staticmethod
    def _substring(args: list[Any]) -> str | None:
        if len(args) not in (2, 3):
            raise ParseError("wrong number of arguments to function SUBSTRING()")
        if any(arg is None for arg in args):
            return None
        text = to_text(args[0])
        start = int(args[1])
        # Position 0 sits one before the first character.
        if start > 0:
            begin = start - 1
        elif start == 0:
            begin = -1
        else:
            begin = len(text) + start
        if len(args) == 3:
            end = begin + max(int(args[2]), 0)
            return text[max(begin, 0) : max(end, 0)]
        return text[max(begin, 0) :]

    # Aggregates

    def aggregate(self, agg: AggregateExpr, rows: list[Row]) -> Any:
        """Compute an aggregate over a group of rows.

        NULLs are ignored. COUNT of nothing is 0; every other aggregate
        of nothing is NULL.
        """
        if agg.arg is None:
            return len(rows)

        values = [self.evaluate(agg.arg, row) for row in rows]
        values = [value for value in values if value is not None]
        if agg.distinct:
            unique: list[Any] = []
            seen: set[Any] = set()
            for value in values:
                if value not in seen:
                    seen.add(value)
                    unique.append(value)
            values = unique

        if agg.func == AggregateFunc.COUNT:
            return len(values)
        if not values:
            return None

        if agg.func in (AggregateFunc.SUM, AggregateFunc.AVG):
            for value in values:
                if not _is_number(value):
                    raise TypeMismatchError(
                        f"{agg.func.value}() expects numbers, got {kind_name(value)} {value!r}"
                    )
            total = sum(values)
            if agg.func == AggregateFunc.AVG:
                return total / len(values)
            if all(isinstance(v, int) for v in values):
                return int(total)
            return float(total)

        if agg.func == AggregateFunc.MIN:
            return min(values, key=sort_key)
        if agg.func == AggregateFunc.MAX:
            return max(values, key=sort_key)
        raise ParseError(f"Unsupported aggregate function: {agg.func.value}")
