"""Pydantic models for the customer record, sync envelopes and business cache."""

from .business import BusinessCampaignSummary, BusinessDetails, BusinessRewardSummary, BusinessSocials
from .customer import (
    CampaignProgress,
    CommunicationPreferences,
    CustomerProfile,
    CustomerRecord,
    CustomerStats,
    ProgressKind,
    ProgressStatus,
    RewardProgress,
    RewardType,
    ScanEntry,
    TransactionAction,
    TransactionLogEntry,
)
from .sync import (
    ConflictResolution,
    SyncMetadata,
    SyncOperation,
    SyncOperationType,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "BusinessCampaignSummary",
    "BusinessDetails",
    "BusinessRewardSummary",
    "BusinessSocials",
    "CampaignProgress",
    "CommunicationPreferences",
    "ConflictResolution",
    "CustomerProfile",
    "CustomerRecord",
    "CustomerStats",
    "ProgressKind",
    "ProgressStatus",
    "RewardProgress",
    "RewardType",
    "ScanEntry",
    "SyncMetadata",
    "SyncOperation",
    "SyncOperationType",
    "SyncResult",
    "SyncStatus",
    "TransactionAction",
    "TransactionLogEntry",
]
