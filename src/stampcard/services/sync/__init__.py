"""Outbox, retry policy, conflict resolution and the reconciler."""

from .manager import SyncManager
from .metadata import add_sync_metadata, mark_dirty, mark_synced, read_sync_metadata, resolve_conflict
from .outbox import SyncQueue
from .retry import RetryDecision, RetryPolicy

__all__ = [
    "RetryDecision",
    "RetryPolicy",
    "SyncManager",
    "SyncQueue",
    "add_sync_metadata",
    "mark_dirty",
    "mark_synced",
    "read_sync_metadata",
    "resolve_conflict",
]
