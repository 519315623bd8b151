"""Local mirror of business metadata for businesses the customer visits.

Stored under ``business_details`` as a map of business id to
:class:`BusinessDetails`. Entries are replaced wholesale on each pull.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from loguru import logger

from stampcard.core.errors import ApiClientError
from stampcard.schemas.business import (
    BusinessCampaignSummary,
    BusinessDetails,
    BusinessRewardSummary,
    BusinessSocials,
)
from stampcard.services.remote.api_client import LoyaltyApiClient
from stampcard.services.storage.base import RecordStore

DETAILS_KEY = "business_details"
_ADDRESS_PARTS = ("addressLine1", "addressLine2", "city", "postcode")
_SOCIAL_NETWORKS = ("facebook", "instagram", "twitter", "tiktok", "linkedin")


@dataclass
class BusinessPullResult:
    pulled: int = 0
    errors: list[str] = field(default_factory=list)


def _format_address(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, Mapping):
        parts = [str(value[part]).strip() for part in _ADDRESS_PARTS if value.get(part)]
        joined = ", ".join(part for part in parts if part)
        return joined or None
    return None


def _extract_socials(profile: Mapping[str, Any]) -> BusinessSocials | None:
    raw = profile.get("socials") or profile.get("socialMedia")
    if not isinstance(raw, Mapping):
        return None
    values = {network: raw.get(network) for network in _SOCIAL_NETWORKS if raw.get(network)}
    return BusinessSocials(**values) if values else None


def build_business_details(
    business_id: str,
    profile: Mapping[str, Any],
    rewards: Sequence[Mapping[str, Any]],
    campaigns: Sequence[Mapping[str, Any]],
) -> BusinessDetails:
    """Normalize the REST payloads for one business into the cached shape."""

    active_rewards = [
        BusinessRewardSummary(
            id=str(reward["id"]),
            name=str(reward.get("name") or ""),
            stamps_required=reward.get("stampsRequired", reward.get("requirement")),
            is_active=reward.get("isActive", True),
        )
        for reward in rewards
        if reward.get("id") and reward.get("isActive", True) is not False
    ]
    active_campaigns = [
        BusinessCampaignSummary(
            id=str(campaign["id"]),
            name=str(campaign.get("name") or ""),
            status=campaign.get("status"),
        )
        for campaign in campaigns
        if campaign.get("id") and campaign.get("status") in (None, "active")
    ]
    return BusinessDetails(
        id=business_id,
        name=str(profile.get("name") or profile.get("businessName") or business_id),
        logo=profile.get("logo") or profile.get("logoUrl"),
        address=_format_address(profile.get("address")),
        website=profile.get("website"),
        socials=_extract_socials(profile),
        phone=profile.get("phone"),
        email=profile.get("email"),
        whatsapp=profile.get("whatsapp"),
        rewards=active_rewards,
        campaigns=active_campaigns,
    )


class BusinessDetailCache:
    def __init__(
        self,
        store: RecordStore,
        api_client: LoyaltyApiClient,
        *,
        placeholder_ids: Iterable[str] = ("default",),
    ) -> None:
        self._store = store
        self._api_client = api_client
        self._placeholder_ids = frozenset(placeholder_ids)

    async def pull(self, business_ids: Iterable[str]) -> BusinessPullResult:
        result = BusinessPullResult()
        ids = [
            business_id
            for business_id in dict.fromkeys(business_ids)
            if business_id and business_id not in self._placeholder_ids
        ]
        if not ids:
            return result

        cached = await self._load()
        for business_id in ids:
            try:
                details = await self._fetch(business_id)
            except ApiClientError as exc:
                logger.warning("Business detail fetch failed", business_id=business_id, error=str(exc))
                result.errors.append(f"{business_id}: {exc}")
                continue
            if details is None:
                logger.debug("Business profile missing, skipping", business_id=business_id)
                continue
            cached[business_id] = details.model_dump(mode="json", by_alias=True, exclude_none=True)
            result.pulled += 1

        if result.pulled:
            await self._store.set(DETAILS_KEY, cached)
        logger.info("Business details refreshed", pulled=result.pulled, failed=len(result.errors))
        return result

    async def _fetch(self, business_id: str) -> BusinessDetails | None:
        profile, rewards, campaigns = await asyncio.gather(
            self._api_client.get_business(business_id),
            self._api_client.list_business_rewards(business_id),
            self._api_client.list_business_campaigns(business_id),
        )
        if not profile:
            return None
        return build_business_details(business_id, profile, rewards, campaigns)

    async def get(self, business_id: str) -> BusinessDetails | None:
        entry = (await self._load()).get(business_id)
        return BusinessDetails.model_validate(entry) if isinstance(entry, dict) else None

    async def get_all(self) -> dict[str, BusinessDetails]:
        return {
            business_id: BusinessDetails.model_validate(entry)
            for business_id, entry in (await self._load()).items()
            if isinstance(entry, dict)
        }

    async def clear(self) -> None:
        await self._store.delete(DETAILS_KEY)

    async def _load(self) -> dict[str, Any]:
        stored = await self._store.get(DETAILS_KEY)
        return dict(stored) if isinstance(stored, dict) else {}


__all__ = ["BusinessDetailCache", "BusinessPullResult", "DETAILS_KEY", "build_business_details"]
