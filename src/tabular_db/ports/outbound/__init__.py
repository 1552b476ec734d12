"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for external systems that the query
evaluator depends on, such as snapshot persistence.
"""

from tabular_db.ports.outbound.snapshot_store import SnapshotError, SnapshotStore

__all__ = [
    "SnapshotStore",
    "SnapshotError",
]
