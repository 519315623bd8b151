"""Customer progress ledger and the reward entities published from it."""

from .reward_entities import CustomerRewardEntities
from .service import RECORD_KEY, CustomerLedger, ScanExtras, ScanOutcome

__all__ = ["CustomerLedger", "CustomerRewardEntities", "RECORD_KEY", "ScanExtras", "ScanOutcome"]
