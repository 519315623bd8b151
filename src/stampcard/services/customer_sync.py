"""Whole-record customer sync and logout.

The server copy is only overwritten when the local record is strictly newer;
a newer or equal server copy is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from stampcard.core.errors import ApiClientError
from stampcard.schemas.customer import CampaignProgress, CustomerRecord, RewardProgress, TransactionAction
from stampcard.services.business.details_cache import BusinessDetailCache
from stampcard.services.identity import IdentityStore
from stampcard.services.ledger.service import CustomerLedger
from stampcard.services.remote.api_client import LoyaltyApiClient

MISSING_TIMESTAMP = "Cannot compare timestamps: local or server updatedAt missing. Not uploading."


@dataclass
class FullSyncResult:
    success: bool
    errors: list[str] = field(default_factory=list)
    uploaded: bool = False


def _progress_item(progress: RewardProgress | CampaignProgress) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": progress.entity_id,
        "name": progress.display_name,
        "count": progress.points_earned,
        "total": progress.points_required,
        "pointsEarned": progress.points_earned,
        "requirement": progress.points_required,
        "businessId": progress.business_id,
        "businessName": progress.business_name,
        "qrCode": progress.qr_code,
        "selectedProducts": progress.selected_products,
    }
    if isinstance(progress, CampaignProgress):
        item["tokenKind"] = "campaign"
    elif progress.reward_type is not None:
        item["rewardType"] = progress.reward_type.value
    return {key: value for key, value in item.items() if value is not None}


def build_sync_body(record: CustomerRecord, customer_uuid: str, *, log_limit: int = 300) -> dict[str, Any]:
    """Server payload for ``PUT /customers/{id}/sync``."""

    profile = record.profile
    parts = (profile.name or "").split()
    items = [
        _progress_item(progress)
        for progress in (*record.active_rewards, *record.earned_rewards, *record.redeemed_rewards)
    ]
    items.extend(
        _progress_item(progress)
        for progress in (*record.active_campaigns, *record.earned_campaigns, *record.redeemed_campaigns)
    )
    body: dict[str, Any] = {
        "id": customer_uuid,
        "email": (profile.email or "").strip().lower() or None,
        "firstName": parts[0] if parts else "Customer",
        "lastName": " ".join(parts[1:]),
        "phone": profile.phone,
        "dateOfBirth": profile.date_of_birth,
        "addressLine1": profile.address_line1,
        "addressLine2": profile.address_line2,
        "city": profile.city,
        "postcode": profile.postcode,
        "createdAt": record.created_at.isoformat(),
        "updatedAt": record.updated_at.isoformat(),
        "preferences": profile.preferences.model_dump(by_alias=True) if profile.preferences else None,
        "totalStamps": record.stats.total_scans,
        "totalRedemptions": record.stats.total_rewards_redeemed + record.stats.total_campaigns_redeemed,
        "rewards": items,
    }
    log = record.transaction_log[-log_limit:] if log_limit else []
    if log:
        body["transactionLog"] = [entry.model_dump(mode="json") for entry in log]
    return {key: value for key, value in body.items() if value is not None}


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class CustomerRecordSync:
    def __init__(
        self,
        ledger: CustomerLedger,
        identity: IdentityStore,
        api_client: LoyaltyApiClient,
        business_cache: BusinessDetailCache,
        *,
        log_limit: int = 300,
    ) -> None:
        self._ledger = ledger
        self._identity = identity
        self._api_client = api_client
        self._business_cache = business_cache
        self._log_limit = log_limit

    async def _resolve_customer_uuid(self, record: CustomerRecord) -> str | None:
        customer_uuid = await self._identity.get_customer_id()
        if customer_uuid or not record.profile.email:
            return customer_uuid
        resolved = await self._api_client.get_customer_by_email(record.profile.email)
        if resolved and resolved.get("id"):
            customer_uuid = str(resolved["id"])
            await self._identity.set_customer_id(customer_uuid)
            logger.info("Resolved customer id from email", customer_uuid=customer_uuid)
        return customer_uuid

    async def perform_full_sync(self, record: CustomerRecord | None = None) -> FullSyncResult:
        try:
            record = record or await self._ledger.get_record()
            customer_uuid = await self._resolve_customer_uuid(record)
            if not customer_uuid:
                logger.debug("No customer id known, skipping full sync")
                return FullSyncResult(success=True)

            server = await self._api_client.get_customer(customer_uuid)
            server_updated = _parse_timestamp((server or {}).get("updatedAt"))
            if server_updated is None:
                logger.error(MISSING_TIMESTAMP, customer_uuid=customer_uuid)
                return FullSyncResult(success=False, errors=[MISSING_TIMESTAMP])
            if server_updated >= record.updated_at:
                logger.info("Server record is current, not uploading", customer_uuid=customer_uuid)
                return FullSyncResult(success=True)

            body = build_sync_body(record, customer_uuid, log_limit=self._log_limit)
            await self._api_client.sync_customer(customer_uuid, body)
        except ApiClientError as exc:
            logger.error("Customer full sync failed", error=str(exc), url=exc.url, status_code=exc.status_code)
            return FullSyncResult(success=False, errors=[str(exc)])

        logger.info("Customer record synced", customer_uuid=customer_uuid)
        return FullSyncResult(success=True, uploaded=True)

    async def logout(self) -> FullSyncResult:
        """Log the logout, push the record if newer, then forget the session."""

        record = await self._ledger.log_event(TransactionAction.ACTION, {"event": "LOGOUT"}, queue=True)
        result = await self.perform_full_sync(record)
        await self._identity.clear_customer_id()
        await self._business_cache.clear()
        logger.info("Customer logged out", synced=result.success, uploaded=result.uploaded)
        return result


__all__ = ["CustomerRecordSync", "FullSyncResult", "MISSING_TIMESTAMP", "build_sync_body"]
