"""Table entity: a schema plus an ordered in-memory row store.

Stored rows are plain dicts keyed by the declared column names, in
column order. Every stored row has a key for every column currently on
the table.

Mutating methods assume their input has already been validated and
coerced; constraint checks are exposed separately so that callers can
check a whole statement's effect before applying any of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.errors import ConstraintError, SchemaError
from tabular_db.domain.value_objects.scalar_types import ScalarType


@dataclass
class Table:
    """A named table with its column definitions and rows."""

    name: str
    columns: list[ColumnDef]
    primary_key: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for column in self.columns:
            folded = column.name.casefold()
            if folded in seen:
                raise SchemaError(f"duplicate column name: {column.name}")
            seen.add(folded)
        if not self.primary_key:
            self.primary_key = [c.name for c in self.columns if c.primary_key]
        self.primary_key = [self.get_column(key).name for key in self.primary_key]
        for key in self.primary_key:
            column = self.get_column(key)
            column.primary_key = True
            column.nullable = False

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def has_column(self, name: str) -> bool:
        return any(c.matches(name) for c in self.columns)

    def get_column(self, name: str) -> ColumnDef:
        """Column definition by name (case-insensitive).

        Raises:
            SchemaError: If the table has no such column.
        """
        for column in self.columns:
            if column.matches(name):
                return column
        raise SchemaError(f"table {self.name} has no column named {name}")

    @property
    def rowid_column(self) -> ColumnDef | None:
        """The single-column INTEGER PRIMARY KEY, if any.

        Inserting NULL (or nothing) into it assigns the next id.
        """
        if len(self.primary_key) != 1:
            return None
        column = self.get_column(self.primary_key[0])
        if column.data_type is ScalarType.INTEGER:
            return column
        return None

    def next_rowid(self, pending: Iterable[Mapping[str, Any]] = ()) -> int:
        column = self.rowid_column
        if column is None:
            raise SchemaError(f"table {self.name} has no INTEGER PRIMARY KEY")
        ids = [row[column.name] for row in self.rows if row[column.name] is not None]
        ids.extend(row[column.name] for row in pending if row.get(column.name) is not None)
        return max(ids, default=0) + 1

    # Constraints

    def check_not_null(self, row: Mapping[str, Any]) -> None:
        for column in self.columns:
            if not column.nullable and row.get(column.name) is None:
                raise ConstraintError(
                    f"NOT NULL constraint failed: {self.name}.{column.name}"
                )

    def _unique_keys(self) -> list[list[str]]:
        keys: list[list[str]] = []
        if self.primary_key:
            keys.append(list(self.primary_key))
        for column in self.columns:
            if column.unique and [column.name] not in keys:
                keys.append([column.name])
        return keys

    def check_unique(self, rows: Iterable[Mapping[str, Any]]) -> None:
        """Check PRIMARY KEY and UNIQUE constraints over a candidate row set.

        Keys containing NULL never collide.

        Raises:
            ConstraintError: On the first duplicate key.
        """
        keys = self._unique_keys()
        if not keys:
            return
        rows = list(rows)
        for key in keys:
            seen: set[tuple[Any, ...]] = set()
            for row in rows:
                values = tuple(row.get(name) for name in key)
                if any(v is None for v in values):
                    continue
                if values in seen:
                    label = "PRIMARY KEY" if key == self.primary_key else "UNIQUE"
                    columns = ", ".join(f"{self.name}.{name}" for name in key)
                    raise ConstraintError(f"{label} constraint failed: {columns}")
                seen.add(values)

    # Row store

    def append_rows(self, rows: Iterable[dict[str, Any]]) -> int:
        count = 0
        for row in rows:
            self.rows.append({name: row.get(name) for name in self.column_names})
            count += 1
        return count

    def update_rows(self, changes: Mapping[int, Mapping[str, Any]]) -> int:
        """Apply per-row changes in place, keyed by row position."""
        for position, values in changes.items():
            self.rows[position].update(values)
        return len(changes)

    def delete_rows(self, positions: Iterable[int]) -> int:
        doomed = set(positions)
        self.rows = [row for idx, row in enumerate(self.rows) if idx not in doomed]
        return len(doomed)

    # Schema changes

    def add_column(self, column: ColumnDef, fill_value: Any = None) -> int:
        """Append a column and backfill every existing row.

        Returns:
            Number of rows backfilled.

        Raises:
            SchemaError: If the column already exists.
        """
        if self.has_column(column.name):
            raise SchemaError(f"duplicate column name: {column.name}")
        self.columns.append(column)
        for row in self.rows:
            row[column.name] = fill_value
        return len(self.rows)

    def drop_column(self, name: str) -> None:
        column = self.get_column(name)
        if column.primary_key or column.unique:
            raise SchemaError(f"cannot drop {column.name}: column is constrained")
        if len(self.columns) == 1:
            raise SchemaError(f"cannot drop {column.name}: no other columns exist")
        self.columns.remove(column)
        for row in self.rows:
            del row[column.name]

    def rename_column(self, old: str, new: str) -> None:
        column = self.get_column(old)
        if self.has_column(new) and not column.matches(new):
            raise SchemaError(f"duplicate column name: {new}")
        previous = column.name
        column.name = new
        self.primary_key = [new if key == previous else key for key in self.primary_key]
        self.rows = [
            {(new if key == previous else key): value for key, value in row.items()}
            for row in self.rows
        ]

    def describe(self) -> list[dict[str, object]]:
        return [column.describe() for column in self.columns]
