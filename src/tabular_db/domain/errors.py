"""Errors raised while parsing or executing a statement.

Every error is terminal for the statement that raised it. Nothing the
statement would have changed is applied, and effects of earlier statements
are kept.
"""

from __future__ import annotations


class QueryError(Exception):
    """Base class for all statement failures."""

    kind = "query"


class ParseError(QueryError):
    """Malformed or unsupported SQL."""

    kind = "parse"


class SchemaError(QueryError):
    """Unknown, ambiguous or duplicate table or column."""

    kind = "schema"


class TypeMismatchError(QueryError):
    """Incompatible scalar kinds or a value that cannot be coerced."""

    kind = "type"


class ConstraintError(QueryError):
    """NOT NULL, PRIMARY KEY or UNIQUE violation."""

    kind = "constraint"
