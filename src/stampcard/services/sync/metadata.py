"""Version stamps carried by every syncable entity and the conflict rule."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from stampcard.schemas.customer import utcnow
from stampcard.schemas.sync import ConflictResolution, SyncMetadata

SYNC_KEY = "_sync"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def read_sync_metadata(entity: Mapping[str, Any] | None) -> SyncMetadata | None:
    if not isinstance(entity, Mapping):
        return None
    raw = entity.get(SYNC_KEY)
    if not isinstance(raw, Mapping):
        return None
    try:
        return SyncMetadata.model_validate(raw)
    except ValidationError:
        return None


def _with_metadata(entity: Mapping[str, Any], metadata: SyncMetadata) -> dict[str, Any]:
    stamped = dict(entity)
    stamped[SYNC_KEY] = metadata.model_dump(mode="json", by_alias=True)
    return stamped


def add_sync_metadata(
    entity: Mapping[str, Any],
    device_id: str,
    *,
    is_dirty: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Stamp ``entity`` for transmission, keeping its version and creation time."""

    now = now or utcnow()
    existing = read_sync_metadata(entity)
    metadata = SyncMetadata(
        version=existing.version if existing else 0,
        last_modified=now,
        device_id=device_id,
        is_dirty=is_dirty,
        created_at=existing.created_at if existing else now,
    )
    return _with_metadata(entity, metadata)


def mark_dirty(entity: Mapping[str, Any], device_id: str, *, now: datetime | None = None) -> dict[str, Any]:
    now = now or utcnow()
    existing = read_sync_metadata(entity)
    metadata = SyncMetadata(
        version=(existing.version if existing else 0) + 1,
        last_modified=now,
        device_id=device_id,
        is_dirty=True,
        created_at=existing.created_at if existing else now,
    )
    return _with_metadata(entity, metadata)


def mark_synced(entity: Mapping[str, Any]) -> dict[str, Any]:
    existing = read_sync_metadata(entity)
    if existing is None:
        return dict(entity)
    return _with_metadata(entity, existing.model_copy(update={"is_dirty": False}))


def resolve_conflict(local: Mapping[str, Any], remote: Mapping[str, Any]) -> ConflictResolution:
    """Pick a winner between two copies of the same entity.

    The higher version wins. Equal versions fall back to ``lastModified``
    and an exact tie keeps the local copy. Missing metadata counts as
    version 0 modified at the epoch.
    """

    local_meta = read_sync_metadata(local)
    remote_meta = read_sync_metadata(remote)
    local_version = local_meta.version if local_meta else 0
    remote_version = remote_meta.version if remote_meta else 0

    if local_version == remote_version:
        local_time = local_meta.last_modified if local_meta else _EPOCH
        remote_time = remote_meta.last_modified if remote_meta else _EPOCH
        local_wins = local_time >= remote_time
    else:
        local_wins = local_version > remote_version
    return ConflictResolution(resolved=True, local_wins=local_wins, remote_wins=not local_wins)


__all__ = [
    "SYNC_KEY",
    "add_sync_metadata",
    "mark_dirty",
    "mark_synced",
    "read_sync_metadata",
    "resolve_conflict",
]
