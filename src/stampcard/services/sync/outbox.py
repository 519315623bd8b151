"""Durable outbox of pending remote mutations.

Each operation lives under its own key,
``sync_queue:{timestamp:013d}:{operation id}``, so a prefix scan returns the
queue in enqueue order and a retry rewrites the entry in place.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from loguru import logger

from stampcard.schemas.customer import utcnow
from stampcard.schemas.sync import SyncOperation, SyncOperationType
from stampcard.services.storage.base import RecordStore

QUEUE_PREFIX = "sync_queue:"
DEAD_LETTER_KEY = "sync_dead_letters"


def _now_ms() -> int:
    return int(time.time() * 1000)


class SyncQueue:
    def __init__(self, store: RecordStore, *, dead_letter_limit: int = 50) -> None:
        self._store = store
        self._dead_letter_limit = dead_letter_limit
        self._last_timestamp = 0

    @staticmethod
    def key_for(operation: SyncOperation) -> str:
        return f"{QUEUE_PREFIX}{operation.timestamp:013d}:{operation.id}"

    async def add(
        self,
        operation_type: SyncOperationType | str,
        entity_type: str,
        entity_id: str,
        data: Any | None = None,
    ) -> SyncOperation:
        # Strictly increasing within a process.
        timestamp = max(_now_ms(), self._last_timestamp + 1)
        self._last_timestamp = timestamp
        operation = SyncOperation(
            id=f"{entity_type}:{entity_id}:{timestamp}:{uuid.uuid4().hex[:8]}",
            type=SyncOperationType(operation_type),
            entity_type=entity_type,
            entity_id=entity_id,
            data=data,
            timestamp=timestamp,
        )
        await self.save(operation)
        return operation

    async def save(self, operation: SyncOperation) -> None:
        await self._store.set(self.key_for(operation), operation.model_dump(mode="json", by_alias=True))

    async def get_all(self) -> list[SyncOperation]:
        raw_entries = await self._store.get_all_with_prefix(QUEUE_PREFIX)
        operations = [SyncOperation.model_validate(entry) for entry in raw_entries]
        return sorted(operations, key=lambda operation: operation.timestamp)

    async def remove(self, operation: SyncOperation) -> None:
        await self._store.delete(self.key_for(operation))

    async def count(self) -> int:
        return len(await self._store.get_all_with_prefix(QUEUE_PREFIX))

    async def clear(self) -> None:
        for operation in await self.get_all():
            await self.remove(operation)

    async def dead_letter(self, operation: SyncOperation, reason: str) -> None:
        """Move ``operation`` out of the queue into the capped dead-letter list."""

        await self.remove(operation)
        entries = await self.dead_letters()
        entries.append(
            {
                "operation": operation.model_dump(mode="json", by_alias=True),
                "reason": reason,
                "droppedAt": utcnow().isoformat(),
            }
        )
        await self._store.set(DEAD_LETTER_KEY, entries[-self._dead_letter_limit :])
        logger.error(
            "Dropped sync operation after repeated failures",
            operation_id=operation.id,
            entity_type=operation.entity_type,
            entity_id=operation.entity_id,
            retries=operation.retries,
            reason=reason,
        )

    async def dead_letters(self) -> list[dict[str, Any]]:
        stored = await self._store.get(DEAD_LETTER_KEY)
        return list(stored) if isinstance(stored, list) else []


__all__ = ["DEAD_LETTER_KEY", "QUEUE_PREFIX", "SyncQueue"]
