"""Idempotent materialization of clusters into grouping records."""

from .orchestrator import SyncResult, run_clustering_sync, sync_author
from .store import GroupingRecordStore

__all__ = ["GroupingRecordStore", "SyncResult", "run_clustering_sync", "sync_author"]
