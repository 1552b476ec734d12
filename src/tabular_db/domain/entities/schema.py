"""Column definitions."""

from __future__ import annotations

from dataclasses import dataclass

from tabular_db.domain.value_objects.expressions import Expression
from tabular_db.domain.value_objects.scalar_types import ScalarType


@dataclass
class ColumnDef:
    """Column definition for CREATE TABLE and ALTER TABLE ADD COLUMN.

    Attributes:
        name: Column name as declared. Lookups are case-insensitive.
        data_type: Storage type derived from the declared type.
        declared_type: Declared type name, kept for DESCRIBE output.
        nullable: False for NOT NULL and PRIMARY KEY columns.
        primary_key: Column is (part of) the primary key.
        unique: Column carries a UNIQUE constraint.
        default: Expression evaluated when a value is omitted on INSERT
            and when backfilling existing rows on ADD COLUMN.
        default_sql: SQL text of ``default``, kept so snapshots can
            rebuild the expression.
    """

    name: str
    data_type: ScalarType = ScalarType.TEXT
    declared_type: str | None = None
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    default: Expression | None = None
    default_sql: str | None = None

    def matches(self, name: str) -> bool:
        return self.name.casefold() == name.casefold()

    def describe(self) -> dict[str, object]:
        return {
            "name": self.name,
            "type": self.declared_type or self.data_type.value,
            "nullable": self.nullable,
            "primary_key": self.primary_key,
            "unique": self.unique,
            "default": self.default_sql,
        }
