"""Schema registry: the catalog of named tables.

Table names are unique case-insensitively and keep the case they were
created with. The registry owns table lifecycle (create, drop, rename,
add column); row-level work happens on the ``Table`` entities it hands
out.
"""

from __future__ import annotations

from typing import Any, Iterator

from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.entities.table import Table
from tabular_db.domain.errors import ConstraintError, SchemaError


class SchemaRegistry:
    """In-memory catalog of tables.

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.create_table("friends", [ColumnDef("id"), ColumnDef("name")])
        True
        >>> registry.get_table("FRIENDS").column_names
        ['id', 'name']
    """

    def __init__(self) -> None:
        self._tables: dict[str, Table] = {}

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[Table]:
        return iter(list(self._tables.values()))

    @staticmethod
    def _key(name: str) -> str:
        return name.casefold()

    def create_table(
        self,
        name: str,
        columns: list[ColumnDef],
        primary_key: list[str] | None = None,
        if_not_exists: bool = False,
    ) -> bool:
        """Create a new table.

        Returns:
            True if created, False if it existed and ``if_not_exists``.

        Raises:
            SchemaError: If the table exists, or on duplicate columns.
        """
        if self._key(name) in self._tables:
            if if_not_exists:
                return False
            raise SchemaError(f"table {name} already exists")
        if not columns:
            raise SchemaError(f"table {name} must have at least one column")
        table = Table(name=name, columns=list(columns), primary_key=list(primary_key or []))
        self._tables[self._key(name)] = table
        return True

    def add_table(self, table: Table) -> None:
        """Register an already-built table (used when loading snapshots)."""
        if self._key(table.name) in self._tables:
            raise SchemaError(f"table {table.name} already exists")
        self._tables[self._key(table.name)] = table

    def drop_table(self, name: str, if_exists: bool = False) -> bool:
        """Drop a table.

        Returns:
            True if dropped, False if missing and ``if_exists``.

        Raises:
            SchemaError: If the table does not exist.
        """
        if self._key(name) not in self._tables:
            if if_exists:
                return False
            raise SchemaError(f"no such table: {name}")
        del self._tables[self._key(name)]
        return True

    def get_table(self, name: str) -> Table:
        """Get a table by name.

        Raises:
            SchemaError: If the table does not exist.
        """
        table = self._tables.get(self._key(name))
        if table is None:
            raise SchemaError(f"no such table: {name}")
        return table

    def table_exists(self, name: str) -> bool:
        """Check if a table exists."""
        return self._key(name) in self._tables

    def table_names(self) -> list[str]:
        return [table.name for table in self._tables.values()]

    def rename_table(self, name: str, new_name: str) -> None:
        table = self.get_table(name)
        if self._key(new_name) in self._tables and self._key(new_name) != self._key(name):
            raise SchemaError(f"there is already another table named {new_name}")
        del self._tables[self._key(name)]
        table.name = new_name
        self._tables[self._key(new_name)] = table

    def add_column(self, table_name: str, column: ColumnDef, fill_value: Any = None) -> int:
        """Append a column to a table, backfilling existing rows.

        Args:
            table_name: Table to alter.
            column: The new column definition.
            fill_value: Value for pre-existing rows (the evaluated default).

        Returns:
            Number of rows backfilled.

        Raises:
            SchemaError: On unknown table or duplicate column.
            ConstraintError: If a NOT NULL column would be backfilled with NULL.
        """
        table = self.get_table(table_name)
        if table.has_column(column.name):
            raise SchemaError(f"duplicate column name: {column.name}")
        if column.primary_key or column.unique:
            raise SchemaError("Cannot add a PRIMARY KEY or UNIQUE column")
        if not column.nullable and fill_value is None and table.row_count:
            raise ConstraintError("Cannot add a NOT NULL column with default value NULL")
        return table.add_column(column, fill_value)

    def stats(self) -> dict[str, int]:
        return {table.name: table.row_count for table in self._tables.values()}
