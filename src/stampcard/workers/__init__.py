"""Background workers driving periodic sync."""

from .auto_sync import AutoSyncWorker

__all__ = ["AutoSyncWorker"]
