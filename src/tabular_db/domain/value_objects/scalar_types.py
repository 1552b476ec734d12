"""Scalar storage types, coercion and comparison rules.

Columns declare a type name which is mapped to one of four storage types
by affinity (the same substring rules SQLite uses), and every value
written to a column is coerced to that storage type.

Comparison kinds:

    numeric   int, float, bool
    text      str
    date      datetime.date

Numbers compare with numbers, text with text, dates with dates, and a
date with text when the text parses as an ISO date. Everything else is a
type error. Sorting uses a total order by kind instead, so it never fails:

    NULL < numeric < text < date
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from tabular_db.domain.errors import TypeMismatchError


class ScalarType(Enum):
    """Storage types a column can hold."""

    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    DATE = "DATE"

    @classmethod
    def from_declared(cls, declared: str | None) -> ScalarType:
        """Map a declared column type name to its storage type."""
        if not declared:
            return cls.TEXT
        name = declared.upper()
        if "INT" in name or "BOOL" in name:
            return cls.INTEGER
        if any(part in name for part in ("CHAR", "CLOB", "TEXT", "STRING")):
            return cls.TEXT
        if any(part in name for part in ("REAL", "FLOA", "DOUB", "DEC", "NUMERIC", "MONEY")):
            return cls.REAL
        if "DATE" in name or "TIME" in name:
            return cls.DATE
        return cls.TEXT


_KIND_NULL = 0
_KIND_NUMERIC = 1
_KIND_TEXT = 2
_KIND_DATE = 3

_KIND_NAMES = {
    _KIND_NULL: "NULL",
    _KIND_NUMERIC: "numeric",
    _KIND_TEXT: "text",
    _KIND_DATE: "date",
}


def kind_of(value: Any) -> int:
    """Return the comparison kind of a scalar value."""
    if value is None:
        return _KIND_NULL
    if isinstance(value, (bool, int, float)):
        return _KIND_NUMERIC
    if isinstance(value, str):
        return _KIND_TEXT
    if isinstance(value, datetime.date):
        return _KIND_DATE
    raise TypeMismatchError(f"Unsupported scalar value: {value!r}")


def kind_name(value: Any) -> str:
    return _KIND_NAMES[kind_of(value)]


def parse_date(text: str) -> datetime.date:
    """Parse ISO-8601 text into a date, dropping any time part.

    Raises:
        TypeMismatchError: If the text is not an ISO date.
    """
    text = text.strip()
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.datetime.fromisoformat(text).date()
    except ValueError as e:
        raise TypeMismatchError(f"Invalid date: {text!r}") from e


def coerce(value: Any, scalar_type: ScalarType, column: str | None = None) -> Any:
    """Coerce a value to a storage type.

    Args:
        value: The value to store.
        scalar_type: Storage type of the target column.
        column: Column name, used in error messages.

    Returns:
        The stored representation. NULL stays NULL.

    Raises:
        TypeMismatchError: If the value cannot be represented.
    """
    if value is None:
        return None

    target = f" for column '{column}'" if column else ""

    if scalar_type is ScalarType.INTEGER:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise TypeMismatchError(f"Expected INTEGER{target}, got {value!r}")

    if scalar_type is ScalarType.REAL:
        if isinstance(value, (bool, int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
        raise TypeMismatchError(f"Expected REAL{target}, got {value!r}")

    if scalar_type is ScalarType.DATE:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str):
            return parse_date(value)
        raise TypeMismatchError(f"Expected DATE{target}, got {value!r}")

    return to_text(value)


def to_text(value: Any) -> str | None:
    """Render a scalar as text the way it is stored in a TEXT column."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, datetime.date):
        return value.isoformat()
    return str(value)


def _align(left: Any, right: Any) -> tuple[Any, Any]:
    """Bring two non-NULL values to a comparable pair."""
    left_kind = kind_of(left)
    right_kind = kind_of(right)
    if left_kind == right_kind:
        return left, right
    if left_kind == _KIND_DATE and right_kind == _KIND_TEXT:
        return left, parse_date(right)
    if left_kind == _KIND_TEXT and right_kind == _KIND_DATE:
        return parse_date(left), right
    raise TypeMismatchError(
        f"Cannot compare {_KIND_NAMES[left_kind]} {left!r} with "
        f"{_KIND_NAMES[right_kind]} {right!r}"
    )


def compare(left: Any, right: Any) -> int | None:
    """Three-way compare two scalars.

    Returns:
        -1, 0 or 1, or None when either side is NULL.

    Raises:
        TypeMismatchError: If the kinds are not comparable.
    """
    if left is None or right is None:
        return None
    left, right = _align(left, right)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def sort_key(value: Any) -> tuple[int, Any]:
    """Total-order key: kind rank first, then the value itself."""
    kind = kind_of(value)
    if kind == _KIND_NULL:
        return (kind, 0)
    return (kind, value)
