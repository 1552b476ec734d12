"""Snapshot Store port for persisting the table catalog.

An engine configured with a data file loads the catalog from its
snapshot on start and writes it back on save. The snapshot holds every
table's definition and rows; there is no write-ahead log, so changes
made after the last save are lost on a crash.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Iterable, Protocol

from tabular_db.domain.entities.table import Table


class SnapshotStore(Protocol):
    """Protocol for whole-catalog snapshot persistence."""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Location of the snapshot."""
        ...

    @abstractmethod
    def exists(self) -> bool:
        """Return True if a snapshot has been written."""
        ...

    @abstractmethod
    def load(self) -> list[Table]:
        """Read every table from the snapshot.

        Raises:
            SnapshotError: If the snapshot is unreadable or malformed.
        """
        ...

    @abstractmethod
    def save(self, tables: Iterable[Table]) -> int:
        """Replace the snapshot with the given tables.

        The write is atomic: a reader sees either the old snapshot or
        the new one.

        Returns:
            Number of tables written.
        """
        ...


class SnapshotError(Exception):
    """Raised when a snapshot cannot be read or written."""
