from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stampcard.schemas.sync import SyncOperation


class RetryDecision(str, Enum):
    OK = "ok"
    RETRY_LATER = "retry_later"
    PERMANENTLY_DROPPED = "permanently_dropped"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for outbox operations.

    An operation is attempted at most ``max_retries`` times across sync
    cycles; the failure that reaches the ceiling drops it.
    """

    max_retries: int = 3

    def on_failure(self, operation: SyncOperation) -> tuple[RetryDecision, SyncOperation]:
        attempted = operation.model_copy(update={"retries": operation.retries + 1})
        if attempted.retries >= self.max_retries:
            return RetryDecision.PERMANENTLY_DROPPED, attempted
        return RetryDecision.RETRY_LATER, attempted


__all__ = ["RetryDecision", "RetryPolicy"]
