"""JSON file Snapshot Store implementation.

This adapter implements the SnapshotStore protocol with a single JSON
document holding the whole catalog.

File Format:
    {
      "format_version": 1,
      "saved_at": "2024-01-01T12:00:00+00:00",
      "tables": [
        {
          "name": "friends",
          "columns": [{"name": "id", "data_type": "INTEGER", ...}, ...],
          "primary_key": ["id"],
          "rows": [[1, "Jo"], ...]       # values in column order
        }
      ]
    }

Dates are written as ISO strings and restored through the column's
storage type. Column defaults are stored as SQL text and re-parsed.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field, ValidationError

from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.entities.table import Table
from tabular_db.domain.errors import QueryError
from tabular_db.domain.value_objects.expressions import Expression
from tabular_db.domain.value_objects.scalar_types import ScalarType, coerce
from tabular_db.ports.outbound.snapshot_store import SnapshotError

FORMAT_VERSION = 1


class ColumnSnapshot(BaseModel):
    """Serialized column definition."""

    name: str
    data_type: ScalarType = ScalarType.TEXT
    declared_type: str | None = None
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    default_sql: str | None = None


class TableSnapshot(BaseModel):
    """Serialized table: definition plus rows in column order."""

    name: str
    columns: list[ColumnSnapshot]
    primary_key: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)


class CatalogSnapshot(BaseModel):
    """The whole snapshot document."""

    format_version: int = FORMAT_VERSION
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tables: list[TableSnapshot] = Field(default_factory=list)


class JsonSnapshotStore:
    """JSON file implementation of the SnapshotStore protocol.

    Attributes:
        path: Location of the snapshot file.
    """

    def __init__(
        self,
        path: str | Path,
        parse_default: Callable[[str], Expression] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            path: Snapshot file path. Its directory is created on save.
            parse_default: Turns stored default SQL back into an
                expression. Without it, columns load without defaults.
        """
        self._path = Path(path)
        self._parse_default = parse_default

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def save(self, tables: Iterable[Table]) -> int:
        snapshot = CatalogSnapshot(tables=[self._dump_table(table) for table in tables])
        payload = snapshot.model_dump_json(indent=2)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise SnapshotError(f"Failed to write snapshot {self._path}: {e}") from e
        return len(snapshot.tables)

    def load(self) -> list[Table]:
        try:
            payload = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise SnapshotError(f"Failed to read snapshot {self._path}: {e}") from e

        try:
            snapshot = CatalogSnapshot.model_validate_json(payload)
        except ValidationError as e:
            raise SnapshotError(f"Malformed snapshot {self._path}: {e}") from e

        if snapshot.format_version != FORMAT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot format version {snapshot.format_version}"
            )

        try:
            return [self._load_table(table) for table in snapshot.tables]
        except QueryError as e:
            raise SnapshotError(f"Invalid snapshot contents in {self._path}: {e}") from e

    @staticmethod
    def _dump_table(table: Table) -> TableSnapshot:
        return TableSnapshot(
            name=table.name,
            columns=[
                ColumnSnapshot(
                    name=column.name,
                    data_type=column.data_type,
                    declared_type=column.declared_type,
                    nullable=column.nullable,
                    primary_key=column.primary_key,
                    unique=column.unique,
                    default_sql=column.default_sql,
                )
                for column in table.columns
            ],
            primary_key=list(table.primary_key),
            rows=[[row[name] for name in table.column_names] for row in table.rows],
        )

    def _load_table(self, snapshot: TableSnapshot) -> Table:
        columns = []
        for column in snapshot.columns:
            default = None
            if column.default_sql is not None and self._parse_default is not None:
                default = self._parse_default(column.default_sql)
            columns.append(
                ColumnDef(
                    name=column.name,
                    data_type=column.data_type,
                    declared_type=column.declared_type,
                    nullable=column.nullable,
                    primary_key=column.primary_key,
                    unique=column.unique,
                    default=default,
                    default_sql=column.default_sql,
                )
            )

        table = Table(name=snapshot.name, columns=columns, primary_key=list(snapshot.primary_key))
        rows = []
        for values in snapshot.rows:
            if len(values) != len(columns):
                raise SnapshotError(
                    f"Row width {len(values)} does not match {len(columns)} columns "
                    f"in table {snapshot.name}"
                )
            rows.append(
                {
                    column.name: coerce(value, column.data_type, column.name)
                    for column, value in zip(columns, values)
                }
            )
        table.append_rows(rows)
        return table
