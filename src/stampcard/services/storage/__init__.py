"""Local record store abstraction and its implementations."""

from .base import RecordStore
from .memory import InMemoryRecordStore
from .sql import SqlRecordStore

__all__ = ["InMemoryRecordStore", "RecordStore", "SqlRecordStore"]
