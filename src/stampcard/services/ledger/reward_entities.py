"""Per-reward entities published to the shared store for the business side.

The customer record stays the source of truth. At sync time each reward's
progress is flattened into a ``customerReward`` entity, version-stamped and
queued only when it changed since the last publish.
"""

from __future__ import annotations

from typing import Any, Mapping

from stampcard.schemas.customer import CustomerRecord, RewardProgress, utcnow
from stampcard.schemas.sync import SyncOperationType
from stampcard.services.identity import IdentityStore
from stampcard.services.storage.base import RecordStore
from stampcard.services.sync.manager import SyncManager, local_key
from stampcard.services.sync.metadata import SYNC_KEY, mark_dirty

ENTITY_TYPE = "customerReward"
_VOLATILE_FIELDS = frozenset({SYNC_KEY, "updatedAt"})


def reward_entity(progress: RewardProgress, customer_id: str) -> dict[str, Any]:
    return {
        "id": progress.reward_id,
        "customerId": customer_id,
        "rewardName": progress.reward_name,
        "businessId": progress.business_id,
        "businessName": progress.business_name,
        "pointsEarned": progress.points_earned,
        "pointsRequired": progress.points_required,
        "rewardType": progress.reward_type.value if progress.reward_type else None,
        "qrCode": progress.qr_code,
        "lastScanAt": progress.last_scan_at.isoformat() if progress.last_scan_at else None,
        "createdAt": progress.first_scan_at.isoformat() if progress.first_scan_at else None,
        "isEarned": progress.is_complete,
        "isRedeemed": False,
    }


def _comparable(entity: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in entity.items() if key not in _VOLATILE_FIELDS}


class CustomerRewardEntities:
    def __init__(self, store: RecordStore, identity: IdentityStore, sync_manager: SyncManager) -> None:
        self._store = store
        self._identity = identity
        self._sync_manager = sync_manager

    async def get(self, reward_id: str) -> dict[str, Any] | None:
        stored = await self._store.get(local_key(ENTITY_TYPE, reward_id))
        return stored if isinstance(stored, dict) else None

    async def list_all(self) -> list[dict[str, Any]]:
        return [entity for entity in await self._store.get_all_with_prefix(f"{ENTITY_TYPE}:") if isinstance(entity, dict)]

    async def save(self, entity: Mapping[str, Any]) -> dict[str, Any]:
        reward_id = str(entity["id"])
        existing = await self.get(reward_id) or {}
        merged = {**existing, **entity, "updatedAt": utcnow().isoformat()}
        stamped = mark_dirty(merged, await self._identity.get_device_id())
        await self._store.set(local_key(ENTITY_TYPE, reward_id), stamped)
        await self._sync_manager.enqueue(SyncOperationType.UPDATE, ENTITY_TYPE, reward_id, stamped)
        return stamped

    async def delete(self, reward_id: str) -> None:
        await self._store.delete(local_key(ENTITY_TYPE, reward_id))
        await self._sync_manager.enqueue(SyncOperationType.DELETE, ENTITY_TYPE, reward_id)

    async def publish(self, record: CustomerRecord) -> int:
        """Queue every reward whose progress changed since it was last published."""

        published = 0
        for progress in [*record.active_rewards, *record.earned_rewards]:
            entity = reward_entity(progress, record.customer_id)
            existing = await self.get(progress.reward_id)
            if existing is not None and _comparable(existing) == _comparable(entity):
                continue
            await self.save(entity)
            published += 1
        return published


__all__ = ["CustomerRewardEntities", "ENTITY_TYPE", "reward_entity"]
