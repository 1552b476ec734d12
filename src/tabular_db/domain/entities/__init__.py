"""Domain entities for the query evaluator.

Exports:
    Schema:
        - ColumnDef: Column name, storage type and constraints

    Table:
        - Table: Column definitions plus the ordered row store

    Row:
        - Row: A row flowing through the executor, resolvable by
          (optionally qualified) column name
"""

from tabular_db.domain.entities.row import Row
from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.entities.table import Table

__all__ = [
    "ColumnDef",
    "Row",
    "Table",
]
