"""Outbox, sync metadata and sync status envelopes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SyncOperationType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncMetadata(BaseModel):
    """Version stamp attached under ``_sync`` to every syncable entity."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = 0
    last_modified: datetime = Field(..., alias="lastModified")
    device_id: str = Field(..., alias="deviceId")
    is_dirty: bool = Field(False, alias="isDirty")
    created_at: datetime = Field(..., alias="createdAt")


class SyncOperation(BaseModel):
    """A single durable outbox entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: SyncOperationType
    entity_type: str | None = Field(None, alias="entityType")
    entity_id: str | None = Field(None, alias="entityId")
    data: Any | None = None
    timestamp: int
    retries: int = 0

    @property
    def remote_key(self) -> str:
        return f"{self.entity_type}:{self.entity_id}"

    def is_valid(self) -> bool:
        if not self.entity_type or not self.entity_id:
            return False
        if self.type is SyncOperationType.DELETE:
            return True
        return self.data is not None


class SyncStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_online: bool = Field(False, alias="isOnline")
    last_sync_time: int | None = Field(None, alias="lastSyncTime")
    pending_operations: int = Field(0, alias="pendingOperations")
    is_syncing: bool = Field(False, alias="isSyncing")
    last_error: str | None = Field(None, alias="lastError")


class ConflictResolution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resolved: bool = True
    local_wins: bool = Field(False, alias="localWins")
    remote_wins: bool = Field(False, alias="remoteWins")
    merged: bool = False


class SyncResult(BaseModel):
    pushed: int = 0
    pulled: int = 0
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "ConflictResolution",
    "SyncMetadata",
    "SyncOperation",
    "SyncOperationType",
    "SyncResult",
    "SyncStatus",
]
