"""Outbound adapters - implementations of outbound ports."""

from tabular_db.adapters.outbound.json_snapshot_store import (
    CatalogSnapshot,
    JsonSnapshotStore,
    TableSnapshot,
)

__all__ = [
    "JsonSnapshotStore",
    "CatalogSnapshot",
    "TableSnapshot",
]
