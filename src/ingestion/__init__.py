"""
Data Ingestion Module
"""
from .snapshot_reader import CsvSnapshotProvider, InMemorySnapshotProvider, SnapshotProvider

__all__ = [
    "CsvSnapshotProvider",
    "InMemorySnapshotProvider",
    "SnapshotProvider",
]
