"""Snapshot ingestion: pipeline, scheduler, and storage."""

from crypto_stats.ingestion.pipeline import IngestionPipeline
from crypto_stats.ingestion.scheduler import IngestScheduler
from crypto_stats.ingestion.store import SnapshotStore, SqliteSnapshotStore, create_store

__all__ = [
    "IngestionPipeline",
    "IngestScheduler",
    "SnapshotStore",
    "SqliteSnapshotStore",
    "create_store",
]
