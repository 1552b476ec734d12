"""Rows flowing through the executor.

A row carries its column names, values and, per column, the table name
or alias that qualifies it. Grouped rows also carry aggregate values
keyed by the aggregate's normalized SQL, and projected rows keep a link
to the row they were computed from so that ORDER BY and HAVING can see
columns that were not selected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tabular_db.domain.errors import ParseError, SchemaError


@dataclass
class Row:
    """A row of data returned by the executor.

    Rows can be accessed by column name (case-insensitive, first match)
    or by index.
    """

    columns: list[str]
    values: list[Any]
    sources: list[str | None] = field(default_factory=list)
    aggregates: dict[str, Any] = field(default_factory=dict)
    parent: Row | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.sources:
            self.sources = [None] * len(self.columns)

    def __getitem__(self, key: str | int) -> Any:
        if isinstance(key, int):
            return self.values[key]
        folded = key.casefold()
        for idx, name in enumerate(self.columns):
            if name.casefold() == folded:
                return self.values[idx]
        raise KeyError(f"Column '{key}' not found")

    def _matches(self, name: str, table: str | None) -> list[int]:
        folded = name.casefold()
        table_folded = table.casefold() if table else None
        return [
            idx
            for idx, column in enumerate(self.columns)
            if column.casefold() == folded
            and (table_folded is None or (self.sources[idx] or "").casefold() == table_folded)
        ]

    def has_column(self, name: str, table: str | None = None) -> bool:
        """True if the reference resolves at this level (ignores the parent)."""
        return bool(self._matches(name, table))

    def lookup(self, name: str, table: str | None = None) -> Any:
        """Value of a column reference, falling back to the parent row.

        Raises:
            SchemaError: If the column is unknown here and in every
                ancestor, or ambiguous at the level it is found.
        """
        matches = self._matches(name, table)
        if len(matches) == 1:
            return self.values[matches[0]]
        if len(matches) > 1:
            raise SchemaError(f"ambiguous column name: {name}")
        if self.parent is not None:
            return self.parent.lookup(name, table)
        qualified = f"{table}.{name}" if table else name
        raise SchemaError(f"no such column: {qualified}")

    def aggregate(self, key: str) -> Any:
        """Value of an aggregate computed for this row's group.

        Raises:
            ParseError: If the row is not a grouped row, i.e. the
                aggregate was used where aggregates are not allowed.
        """
        if key in self.aggregates:
            return self.aggregates[key]
        if self.parent is not None:
            return self.parent.aggregate(key)
        raise ParseError(f"misuse of aggregate function {key}")

    def as_tuple(self) -> tuple[Any, ...]:
        return tuple(self.values)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{c}={v!r}" for c, v in zip(self.columns, self.values))
        return f"Row({pairs})"
