"""Customer progress ledger: scans, redemption and profile edits.

The whole :class:`CustomerRecord` lives under one local key. Every mutation
is a read-modify-write of that key, serialized by an ``asyncio.Lock``.
Scans stay local; profile edits, redemptions and explicit actions are
queued for sync.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from loguru import logger

from stampcard.schemas.customer import (
    CampaignProgress,
    CustomerProfile,
    CustomerRecord,
    CustomerStats,
    Progress,
    ProgressKind,
    ProgressStatus,
    RewardProgress,
    RewardType,
    ScanEntry,
    TransactionAction,
    TransactionLogEntry,
    utcnow,
)
from stampcard.schemas.sync import SyncOperationType
from stampcard.services.identity import IdentityStore
from stampcard.services.storage.base import RecordStore
from stampcard.services.sync.manager import SyncManager

RECORD_KEY = "customerRecord"
_IMMUTABLE_PROFILE_FIELDS = frozenset({"id", "created_at"})
_REDEMPTION_ENTITY = {
    ProgressKind.REWARD: ("customerRewardRedemption", "rewardId"),
    ProgressKind.CAMPAIGN: ("customerCampaignRedemption", "campaignId"),
}


@dataclass
class ScanExtras:
    reward_type: RewardType | str | None = None
    qr_code: str | None = None
    pin_code: str | None = None
    selected_products: Sequence[str] | None = None
    description: str | None = None


@dataclass
class ScanOutcome:
    record: CustomerRecord
    progress: Progress
    is_newly_earned: bool


def _coerce_reward_type(value: RewardType | str | None) -> RewardType | None:
    if value is None or isinstance(value, RewardType):
        return value
    try:
        return RewardType(value)
    except ValueError:
        return RewardType.OTHER


def _profile_field_names() -> dict[str, str]:
    """Map both aliases and attribute names of the profile to attribute names."""

    names: dict[str, str] = {}
    for name, field in CustomerProfile.model_fields.items():
        names[name] = name
        if field.alias:
            names[field.alias] = name
    return names


_PROFILE_FIELDS = _profile_field_names()


class CustomerLedger:
    def __init__(
        self,
        store: RecordStore,
        identity: IdentityStore,
        *,
        sync_manager: SyncManager | None = None,
        transaction_log_limit: int = 300,
    ) -> None:
        self._store = store
        self._identity = identity
        self._sync_manager = sync_manager
        self._transaction_log_limit = transaction_log_limit
        self._lock = asyncio.Lock()

    async def get_record(self) -> CustomerRecord:
        async with self._lock:
            return await self._load()

    async def _load(self) -> CustomerRecord:
        stored = await self._store.get(RECORD_KEY)
        if isinstance(stored, dict):
            return CustomerRecord.model_validate(stored)
        owner_id = await self._identity.get_owner_id()
        record = CustomerRecord.empty(owner_id)
        await self._store.set(RECORD_KEY, record.to_storage())
        logger.info("Created customer record", customer_id=owner_id)
        return record

    async def _save(self, record: CustomerRecord, *, queue: bool) -> None:
        record.updated_at = utcnow()
        payload = record.to_storage()
        await self._store.set(RECORD_KEY, payload)
        if queue and self._sync_manager is not None:
            await self._sync_manager.enqueue(SyncOperationType.UPDATE, "customer", record.customer_id, payload)

    def _append_log(self, record: CustomerRecord, action: TransactionAction, data: Mapping[str, Any]) -> None:
        record.transaction_log.append(TransactionLogEntry(action=action, data=dict(data)))
        overflow = len(record.transaction_log) - max(self._transaction_log_limit, 0)
        if overflow > 0:
            del record.transaction_log[:overflow]

    async def record_scan(
        self,
        kind: ProgressKind | str,
        entity_id: str,
        name: str,
        points_awarded: int,
        points_required: int,
        business_id: str = "default",
        business_name: str | None = None,
        extra: ScanExtras | None = None,
    ) -> ScanOutcome:
        """Apply one scan to the matching reward or campaign.

        Scans are local only; nothing is queued for sync.
        """

        kind = ProgressKind(kind)
        if points_awarded < 0:
            raise ValueError("points_awarded must not be negative")
        points_required = max(1, points_required)
        business_id = business_id or "default"
        extra = extra or ScanExtras()

        async with self._lock:
            record = await self._load()
            now = utcnow()
            active, earned, _redeemed = record.buckets(kind)
            progress = _find(active, entity_id) or _find(earned, entity_id)
            newly_earned = False

            if progress is None:
                progress = _new_progress(kind, entity_id, name, points_required, business_id, business_name, extra)
                progress.points_earned = points_awarded
                progress.scan_history.append(ScanEntry(timestamp=now, points_awarded=points_awarded))
                progress.first_scan_at = now
                progress.last_scan_at = now
                if progress.is_complete:
                    progress.status = ProgressStatus.EARNED
                    progress.earned_at = now
                    earned.append(progress)
                    newly_earned = True
                else:
                    active.append(progress)
            else:
                progress.points_earned += points_awarded
                progress.scan_history.append(ScanEntry(timestamp=now, points_awarded=points_awarded))
                progress.last_scan_at = now
                if progress.first_scan_at is None:
                    progress.first_scan_at = now
                if progress.business_name is None and business_name:
                    progress.business_name = business_name
                if progress.qr_code is None and extra.qr_code:
                    progress.qr_code = extra.qr_code
                if progress.pin_code is None and extra.pin_code:
                    progress.pin_code = extra.pin_code
                if progress.status is ProgressStatus.ACTIVE and progress.is_complete:
                    active[:] = [entry for entry in active if entry is not progress]
                    progress.status = ProgressStatus.EARNED
                    progress.earned_at = now
                    earned.append(progress)
                    newly_earned = True

            stats = record.stats
            stats.total_scans += 1
            if business_id not in stats.businesses_visited:
                stats.businesses_visited.append(business_id)
            if newly_earned:
                _increment(stats, kind, "earned")

            self._append_log(
                record,
                TransactionAction.SCAN,
                {
                    "kind": kind.value,
                    "id": entity_id,
                    "name": progress.display_name,
                    "businessId": business_id,
                    "pointsAwarded": points_awarded,
                    "pointsEarned": progress.points_earned,
                    "pointsRequired": progress.points_required,
                },
            )
            await self._save(record, queue=False)

        logger.info(
            "Recorded scan",
            kind=kind.value,
            entity_id=entity_id,
            business_id=business_id,
            points_earned=progress.points_earned,
            points_required=progress.points_required,
            newly_earned=newly_earned,
        )
        return ScanOutcome(record=record, progress=progress, is_newly_earned=newly_earned)

    async def redeem(self, reward_id: str) -> RewardProgress | None:
        return await self._redeem(ProgressKind.REWARD, reward_id)

    async def redeem_campaign(self, campaign_id: str) -> CampaignProgress | None:
        return await self._redeem(ProgressKind.CAMPAIGN, campaign_id)

    async def _redeem(self, kind: ProgressKind, entity_id: str) -> Any:
        async with self._lock:
            record = await self._load()
            active, earned, redeemed = record.buckets(kind)
            progress = _find(earned, entity_id)
            if progress is None:
                logger.warning("Redemption rejected, nothing earned", kind=kind.value, entity_id=entity_id)
                return None

            now = utcnow()
            earned[:] = [entry for entry in earned if entry is not progress]
            progress.status = ProgressStatus.REDEEMED
            progress.redeemed_at = now
            redeemed.append(progress)
            active.append(_reseed(progress))
            _increment(record.stats, kind, "redeemed")
            self._append_log(
                record,
                TransactionAction.ACTION,
                {"action": "redeem", "kind": kind.value, "id": entity_id, "businessId": progress.business_id},
            )
            await self._save(record, queue=True)

            if self._sync_manager is not None:
                entity_type, id_field = _REDEMPTION_ENTITY[kind]
                await self._sync_manager.enqueue(
                    SyncOperationType.UPDATE,
                    entity_type,
                    entity_id,
                    {
                        "customerId": record.customer_id,
                        id_field: entity_id,
                        "businessId": progress.business_id,
                        "redeemedAt": now.isoformat(),
                    },
                )

        logger.info("Redeemed progress", kind=kind.value, entity_id=entity_id, business_id=progress.business_id)
        return progress

    async def update_profile(self, changes: Mapping[str, Any]) -> CustomerRecord:
        """Shallow-merge profile fields given by alias or attribute name."""

        updates: dict[str, Any] = {}
        for key, value in changes.items():
            name = _PROFILE_FIELDS.get(key)
            if name is None:
                logger.warning("Ignoring unknown profile field", field=key)
                continue
            if name in _IMMUTABLE_PROFILE_FIELDS:
                continue
            updates[name] = value

        async with self._lock:
            record = await self._load()
            merged = record.profile.model_dump()
            merged.update(updates)
            merged["updated_at"] = utcnow()
            record.profile = CustomerProfile.model_validate(merged)
            self._append_log(
                record,
                TransactionAction.EDIT,
                {"fields": sorted(CustomerProfile.model_fields[name].alias or name for name in updates)},
            )
            await self._save(record, queue=True)
        return record

    async def log_event(
        self,
        action: TransactionAction | str,
        data: Mapping[str, Any] | None = None,
        *,
        queue: bool = False,
    ) -> CustomerRecord:
        async with self._lock:
            record = await self._load()
            self._append_log(record, TransactionAction(action), data or {})
            await self._save(record, queue=queue)
        return record

    async def get_progress(self, kind: ProgressKind | str, entity_id: str) -> Progress | None:
        record = await self.get_record()
        for bucket in record.buckets(ProgressKind(kind)):
            progress = _find(bucket, entity_id)
            if progress is not None:
                return progress
        return None

    async def list_active(self, kind: ProgressKind | str = ProgressKind.REWARD) -> list[Progress]:
        return list((await self.get_record()).buckets(ProgressKind(kind))[0])

    async def list_earned(self, kind: ProgressKind | str = ProgressKind.REWARD) -> list[Progress]:
        return list((await self.get_record()).buckets(ProgressKind(kind))[1])

    async def list_redeemed(self, kind: ProgressKind | str = ProgressKind.REWARD) -> list[Progress]:
        return list((await self.get_record()).buckets(ProgressKind(kind))[2])

    async def get_stats(self) -> CustomerStats:
        return (await self.get_record()).stats

    async def business_ids(self) -> list[str]:
        """Distinct business ids across visits and every progress bucket."""

        record = await self.get_record()
        ids = list(record.stats.businesses_visited)
        for kind in ProgressKind:
            for bucket in record.buckets(kind):
                ids.extend(progress.business_id for progress in bucket)
        return [business_id for business_id in dict.fromkeys(ids) if business_id]


def _find(bucket: list[Any], entity_id: str) -> Any:
    for progress in bucket:
        if progress.entity_id == entity_id:
            return progress
    return None


def _increment(stats: CustomerStats, kind: ProgressKind, transition: str) -> None:
    attribute = f"total_{kind.value}s_{transition}"
    setattr(stats, attribute, getattr(stats, attribute) + 1)


def _new_progress(
    kind: ProgressKind,
    entity_id: str,
    name: str,
    points_required: int,
    business_id: str,
    business_name: str | None,
    extra: ScanExtras,
) -> Progress:
    common = {
        "business_id": business_id,
        "business_name": business_name,
        "points_required": points_required,
        "qr_code": extra.qr_code,
        "pin_code": extra.pin_code,
        "selected_products": list(extra.selected_products) if extra.selected_products else None,
    }
    if kind is ProgressKind.REWARD:
        return RewardProgress(
            reward_id=entity_id,
            reward_name=name,
            reward_type=_coerce_reward_type(extra.reward_type),
            **common,
        )
    return CampaignProgress(
        campaign_id=entity_id,
        campaign_name=name,
        campaign_description=extra.description,
        **common,
    )


_CARRIED_FIELDS = {
    "business_id",
    "business_name",
    "points_required",
    "qr_code",
    "pin_code",
    "selected_products",
}
_IDENTITY_FIELDS = {
    ProgressKind.REWARD: {"reward_id", "reward_name", "reward_type"},
    ProgressKind.CAMPAIGN: {"campaign_id", "campaign_name", "campaign_description"},
}


def _reseed(progress: Progress) -> Progress:
    """Fresh active entry for the same reward or campaign after redemption."""

    kind = ProgressKind.REWARD if isinstance(progress, RewardProgress) else ProgressKind.CAMPAIGN
    carried = progress.model_dump(include=_CARRIED_FIELDS | _IDENTITY_FIELDS[kind])
    return type(progress).model_validate(carried)


__all__ = ["CustomerLedger", "RECORD_KEY", "ScanExtras", "ScanOutcome"]
