"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts. The
query evaluator has one outbound port, the snapshot store; adapters
implement it with concrete functionality.
"""

from tabular_db.ports.outbound import SnapshotError, SnapshotStore

__all__ = [
    "SnapshotStore",
    "SnapshotError",
]
