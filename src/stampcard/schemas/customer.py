"""Customer record aggregate as stored locally and shipped to the remote store.

Key format in the local store: ``customerRecord``. Every model serializes
with camelCase keys so stored JSON matches what the business side reads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressKind(str, Enum):
    REWARD = "reward"
    CAMPAIGN = "campaign"


class ProgressStatus(str, Enum):
    ACTIVE = "active"
    EARNED = "earned"
    REDEEMED = "redeemed"


class RewardType(str, Enum):
    FREE_PRODUCT = "free_product"
    DISCOUNT = "discount"
    OTHER = "other"


class TransactionAction(str, Enum):
    SCAN = "SCAN"
    EDIT = "EDIT"
    ACTION = "ACTION"


class CommunicationPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notifications: bool = False
    email_marketing: bool = Field(False, alias="emailMarketing")
    sms_marketing: bool = Field(False, alias="smsMarketing")


class CustomerProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    date_of_birth: str | None = Field(None, alias="dateOfBirth")
    postcode: str | None = None
    address_line1: str | None = Field(None, alias="addressLine1")
    address_line2: str | None = Field(None, alias="addressLine2")
    city: str | None = None
    preferences: CommunicationPreferences | None = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")


class ScanEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    points_awarded: int = Field(..., alias="pointsAwarded")


class _ProgressBase(BaseModel):
    """Fields shared by reward and campaign progress entries."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    business_id: str = Field("default", alias="businessId")
    business_name: str | None = Field(None, alias="businessName")
    points_earned: int = Field(0, ge=0, alias="pointsEarned")
    points_required: int = Field(1, gt=0, alias="pointsRequired")
    status: ProgressStatus = ProgressStatus.ACTIVE
    scan_history: list[ScanEntry] = Field(default_factory=list, alias="scanHistory")
    first_scan_at: datetime | None = Field(None, alias="firstScanAt")
    last_scan_at: datetime | None = Field(None, alias="lastScanAt")
    earned_at: datetime | None = Field(None, alias="earnedAt")
    redeemed_at: datetime | None = Field(None, alias="redeemedAt")
    qr_code: str | None = Field(None, alias="qrCode")
    pin_code: str | None = Field(None, alias="pinCode")
    selected_products: list[str] | None = Field(None, alias="selectedProducts")

    @property
    def is_complete(self) -> bool:
        return self.points_earned >= self.points_required


class RewardProgress(_ProgressBase):
    reward_id: str = Field(..., alias="rewardId")
    reward_name: str = Field(..., alias="rewardName")
    reward_type: RewardType | None = Field(None, alias="rewardType")

    @property
    def entity_id(self) -> str:
        return self.reward_id

    @property
    def display_name(self) -> str:
        return self.reward_name


class CampaignProgress(_ProgressBase):
    campaign_id: str = Field(..., alias="campaignId")
    campaign_name: str = Field(..., alias="campaignName")
    campaign_description: str | None = Field(None, alias="campaignDescription")

    @property
    def entity_id(self) -> str:
        return self.campaign_id

    @property
    def display_name(self) -> str:
        return self.campaign_name


Progress = Union[RewardProgress, CampaignProgress]


class CustomerStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_scans: int = Field(0, alias="totalScans")
    total_rewards_earned: int = Field(0, alias="totalRewardsEarned")
    total_rewards_redeemed: int = Field(0, alias="totalRewardsRedeemed")
    total_campaigns_earned: int = Field(0, alias="totalCampaignsEarned")
    total_campaigns_redeemed: int = Field(0, alias="totalCampaignsRedeemed")
    businesses_visited: list[str] = Field(default_factory=list, alias="businessesVisited")


class TransactionLogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=utcnow)
    action: TransactionAction
    data: dict[str, Any] = Field(default_factory=dict)


class CustomerRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile: CustomerProfile
    active_rewards: list[RewardProgress] = Field(default_factory=list, alias="activeRewards")
    earned_rewards: list[RewardProgress] = Field(default_factory=list, alias="earnedRewards")
    redeemed_rewards: list[RewardProgress] = Field(default_factory=list, alias="redeemedRewards")
    active_campaigns: list[CampaignProgress] = Field(default_factory=list, alias="activeCampaigns")
    earned_campaigns: list[CampaignProgress] = Field(default_factory=list, alias="earnedCampaigns")
    redeemed_campaigns: list[CampaignProgress] = Field(default_factory=list, alias="redeemedCampaigns")
    stats: CustomerStats = Field(default_factory=CustomerStats)
    transaction_log: list[TransactionLogEntry] = Field(default_factory=list, alias="transactionLog")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    @classmethod
    def empty(cls, customer_id: str) -> "CustomerRecord":
        now = utcnow()
        return cls(
            profile=CustomerProfile(id=customer_id, created_at=now, updated_at=now),
            created_at=now,
            updated_at=now,
        )

    @property
    def customer_id(self) -> str:
        return self.profile.id

    def buckets(self, kind: ProgressKind) -> tuple[list[Any], list[Any], list[Any]]:
        """Return the (active, earned, redeemed) lists for the given kind."""

        if kind is ProgressKind.REWARD:
            return self.active_rewards, self.earned_rewards, self.redeemed_rewards
        return self.active_campaigns, self.earned_campaigns, self.redeemed_campaigns

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "CampaignProgress",
    "CommunicationPreferences",
    "CustomerProfile",
    "CustomerRecord",
    "CustomerStats",
    "Progress",
    "ProgressKind",
    "ProgressStatus",
    "RewardProgress",
    "RewardType",
    "ScanEntry",
    "TransactionAction",
    "TransactionLogEntry",
    "utcnow",
]
