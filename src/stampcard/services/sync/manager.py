"""Push the outbox, pull remote changes and reconcile them with local copies."""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from loguru import logger
from opentelemetry import trace

from stampcard.core.errors import RemoteStoreError
from stampcard.observability.sync import SyncObservabilityStore
from stampcard.schemas.customer import utcnow
from stampcard.schemas.sync import SyncOperation, SyncOperationType, SyncResult, SyncStatus
from stampcard.services.identity import IdentityStore
from stampcard.services.remote.base import RemoteStore
from stampcard.services.remote.connectivity import ConnectivityProbe
from stampcard.services.storage.base import RecordStore
from stampcard.services.sync.metadata import add_sync_metadata, mark_synced, read_sync_metadata, resolve_conflict
from stampcard.services.sync.outbox import SyncQueue
from stampcard.services.sync.retry import RetryDecision, RetryPolicy
from stampcard.workers.auto_sync import AutoSyncWorker

if TYPE_CHECKING:
    from stampcard.services.business.details_cache import BusinessDetailCache

STATUS_KEY = "sync_status"
SYNC_IN_PROGRESS = "Sync already in progress"
OFFLINE_OR_UNAVAILABLE = "Offline or remote store unavailable"

_PUSH_FAILURES = (RemoteStoreError, TypeError, ValueError)

tracer = trace.get_tracer(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def local_key(entity_type: str, entity_id: str) -> str:
    return f"{entity_type}:{entity_id}"


class SyncManager:
    """Outbox drain plus pull/merge reconciliation against the shared store."""

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteStore,
        probe: ConnectivityProbe,
        queue: SyncQueue,
        identity: IdentityStore,
        *,
        business_cache: "BusinessDetailCache | None" = None,
        retry_policy: RetryPolicy | None = None,
        observability: SyncObservabilityStore | None = None,
        opportunistic_sync: bool = True,
        auto_sync_interval_seconds: float = 30,
    ) -> None:
        self._store = store
        self._remote = remote
        self._probe = probe
        self._queue = queue
        self._identity = identity
        self._business_cache = business_cache
        self._retry_policy = retry_policy or RetryPolicy()
        self._observability = observability or SyncObservabilityStore()
        self._opportunistic_sync = opportunistic_sync
        self._auto_sync_interval_seconds = auto_sync_interval_seconds
        self._is_syncing = False
        self._last_error: str | None = None
        self._background: set[asyncio.Task] = set()
        self._auto_sync: AutoSyncWorker | None = None

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    async def enqueue(
        self,
        operation_type: SyncOperationType | str,
        entity_type: str | None,
        entity_id: str | None,
        data: Any | None = None,
    ) -> SyncOperation | None:
        """Persist a pending mutation and nudge a background sync.

        Invalid calls are dropped with a warning. The background attempt
        never raises into the caller.
        """

        try:
            operation_type = SyncOperationType(operation_type)
        except ValueError:
            logger.warning("Rejected sync operation with unknown type", operation_type=operation_type)
            return None
        if not entity_type or not entity_id:
            logger.warning(
                "Rejected sync operation without entity reference",
                operation_type=operation_type.value,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            return None
        if operation_type is not SyncOperationType.DELETE and data is None:
            logger.warning(
                "Rejected sync operation without data",
                operation_type=operation_type.value,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            return None

        operation = await self._queue.add(operation_type, entity_type, entity_id, data)
        logger.debug(
            "Queued sync operation",
            operation_id=operation.id,
            operation_type=operation_type.value,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        if self._opportunistic_sync:
            task = asyncio.create_task(self._opportunistic_run())
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return operation

    async def wait_for_background(self) -> None:
        """Wait for opportunistic sync attempts spawned by :meth:`enqueue`."""

        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _opportunistic_run(self) -> None:
        try:
            if not self._probe.is_online() or not await self._probe.is_remote_available():
                return
            await self.perform_sync()
        except Exception as exc:
            logger.warning("Background sync attempt failed", error=str(exc))

    async def drain_queue(self) -> int:
        """Push every queued operation once; returns how many succeeded."""

        pushed = 0
        for operation in await self._queue.get_all():
            if not operation.is_valid():
                logger.warning("Removing invalid sync operation", operation_id=operation.id)
                await self._queue.remove(operation)
                self._observability.record_operation("invalid", operation.entity_type)
                continue
            try:
                await self._push(operation)
            except _PUSH_FAILURES as exc:
                await self._handle_failure(operation, exc)
                continue
            await self._queue.remove(operation)
            pushed += 1
            self._observability.record_operation("pushed", operation.entity_type)
        return pushed

    async def _handle_failure(self, operation: SyncOperation, exc: Exception) -> None:
        decision, attempted = self._retry_policy.on_failure(operation)
        if decision is RetryDecision.RETRY_LATER:
            await self._queue.save(attempted)
            self._observability.record_operation("requeued", operation.entity_type)
            logger.warning(
                "Sync operation failed, will retry",
                operation_id=operation.id,
                entity_type=operation.entity_type,
                entity_id=operation.entity_id,
                retries=attempted.retries,
                error=str(exc),
            )
            return
        await self._queue.dead_letter(attempted, str(exc))
        self._observability.record_operation("dropped", operation.entity_type)

    async def _push(self, operation: SyncOperation) -> None:
        key = operation.remote_key
        if operation.type is SyncOperationType.DELETE:
            await self._remote.delete(key)
            return

        await self._write_entity(operation.entity_type, str(operation.entity_id), operation.data)

    async def _write_entity(self, entity_type: str, entity_id: str, data: Any) -> None:
        device_id = await self._identity.get_device_id()
        if isinstance(data, Mapping):
            payload: Any = add_sync_metadata(data, device_id, is_dirty=False)
        else:
            payload = data
        await self._remote.set(local_key(entity_type, entity_id), json.dumps(payload))

        if entity_type == "customerReward" and isinstance(data, Mapping) and data.get("customerId"):
            await self._fan_out_customer_reward(entity_id, data)

    async def _fan_out_customer_reward(self, reward_id: str, data: Mapping[str, Any]) -> None:
        customer_id = str(data["customerId"])
        business_id = str(data.get("businessId") or "default")
        now = utcnow().isoformat()
        points_earned = int(data.get("pointsEarned") or 0)
        points_required = int(data.get("pointsRequired") or data.get("requirement") or 0)
        scan_record = {
            "customerId": customer_id,
            "rewardId": reward_id,
            "rewardName": data.get("rewardName") or data.get("name") or "",
            "pointsEarned": points_earned,
            "pointsRequired": points_required,
            "rewardEarned": bool(data.get("isEarned", points_required > 0 and points_earned >= points_required)),
            "rewardRedeemed": bool(data.get("isRedeemed", False)),
            "lastScanAt": data.get("lastScanAt") or now,
            "createdAt": data.get("createdAt") or now,
            "updatedAt": now,
        }
        await self._remote.sadd(f"customer:{customer_id}:rewards", reward_id)
        await self._remote.set(
            f"business:{business_id}:customerScans:{customer_id}:{reward_id}",
            json.dumps(scan_record),
        )
        await self._remote.sadd(f"business:{business_id}:customers", customer_id)

    async def pull(
        self,
        customer_id: str | None = None,
        business_ids: Iterable[str] | None = None,
    ) -> int:
        """Reconcile remote entities for a customer and the given businesses."""

        pulled = 0
        if customer_id:
            for reward_id in await self._remote.smembers(f"customer:{customer_id}:rewards"):
                if await self.reconcile_one("customerReward", reward_id):
                    pulled += 1

        ids = list(dict.fromkeys(business_ids or []))
        for business_id in ids:
            for reward_id in await self._remote.smembers(f"business:{business_id}:rewards"):
                if await self.reconcile_one("reward", reward_id):
                    pulled += 1
            for campaign_id in await self._remote.smembers(f"business:{business_id}:campaigns"):
                if await self.reconcile_one("campaign", campaign_id):
                    pulled += 1

        if ids and self._business_cache is not None:
            cache_result = await self._business_cache.pull(ids)
            if cache_result.errors:
                logger.warning("Business detail refresh incomplete", errors=cache_result.errors)
        return pulled

    async def reconcile_one(self, entity_type: str, entity_id: str) -> bool:
        """Merge the remote copy of one entity into the local store.

        Returns ``True`` when the entity was reconciled, ``False`` when the
        remote copy is missing or could not be read.
        """

        key = local_key(entity_type, entity_id)
        try:
            raw = await self._remote.get(key)
            if raw is None:
                return False
            remote = json.loads(raw)
        except (RemoteStoreError, ValueError) as exc:
            logger.warning("Unable to read remote entity", key=key, error=str(exc))
            return False
        if not isinstance(remote, dict):
            logger.warning("Ignoring non-object remote entity", key=key)
            return False

        local = await self._store.get(key)
        if not isinstance(local, dict):
            await self._store.set(key, remote)
            self._observability.record_conflict("adopted")
            logger.debug("Adopted remote entity", key=key)
            return True

        resolution = resolve_conflict(local, remote)
        if resolution.remote_wins:
            await self._store.set(key, remote)
            self._observability.record_conflict("remote")
            logger.debug("Conflict resolved in favour of remote copy", key=key)
            return True

        self._observability.record_conflict("local")
        metadata = read_sync_metadata(local)
        if metadata is not None and metadata.is_dirty:
            try:
                await self._write_entity(entity_type, entity_id, local)
            except RemoteStoreError as exc:
                logger.warning("Corrective push failed", key=key, error=str(exc))
                return False
            await self._store.set(key, mark_synced(local))
            logger.debug("Conflict resolved in favour of local copy, pushed", key=key)
        else:
            logger.debug("Conflict resolved in favour of local copy", key=key)
        return True

    async def perform_sync(
        self,
        customer_id: str | None = None,
        business_ids: Iterable[str] | None = None,
    ) -> SyncResult:
        if self._is_syncing:
            self._observability.record_cycle("rejected")
            return SyncResult(errors=[SYNC_IN_PROGRESS])
        self._is_syncing = True
        self._observability.record_cycle("started")
        result = SyncResult()
        try:
            available = self._probe.is_online() and await self._probe.is_remote_available()
            if not available:
                self._last_error = OFFLINE_OR_UNAVAILABLE
                await self._update_status(is_online=False)
                self._observability.record_cycle("aborted")
                logger.info("Sync skipped, remote store unreachable")
                result.errors.append(OFFLINE_OR_UNAVAILABLE)
                return result

            await self._update_status(is_online=True)
            with tracer.start_as_current_span("stampcard.sync.perform") as span:
                result.pushed = await self.drain_queue()
                result.pulled = await self.pull(customer_id, business_ids)
                span.set_attribute("stampcard.sync.pushed", result.pushed)
                span.set_attribute("stampcard.sync.pulled", result.pulled)
            await self._update_status(last_sync_time=_now_ms())
            self._last_error = None
            self._observability.record_cycle("completed")
            logger.info("Sync completed", pushed=result.pushed, pulled=result.pulled)
        except Exception as exc:
            self._last_error = str(exc)
            self._observability.record_cycle("failed")
            logger.exception("Sync failed", error=str(exc))
            result.errors.append(str(exc))
        finally:
            self._is_syncing = False
        return result

    async def get_status(self) -> SyncStatus:
        stored = await self._store.get(STATUS_KEY)
        status = SyncStatus.model_validate(stored) if isinstance(stored, dict) else SyncStatus()
        return status.model_copy(
            update={
                "pending_operations": await self._queue.count(),
                "is_syncing": self._is_syncing,
                "last_error": self._last_error,
            }
        )

    async def _update_status(self, **changes: Any) -> None:
        stored = await self._store.get(STATUS_KEY)
        status = SyncStatus.model_validate(stored) if isinstance(stored, dict) else SyncStatus()
        status = status.model_copy(update=changes)
        await self._store.set(
            STATUS_KEY,
            status.model_dump(mode="json", by_alias=True, include={"is_online", "last_sync_time"}),
        )

    async def auto_sync(
        self,
        customer_id: str | None = None,
        business_ids: Iterable[str] | None = None,
    ) -> AutoSyncWorker:
        """Start periodic sync, replacing any worker already running."""

        await self.stop_auto_sync()
        ids = list(business_ids or [])
        worker = AutoSyncWorker(
            lambda: self.perform_sync(customer_id, ids),
            interval_seconds=self._auto_sync_interval_seconds,
        )
        worker.start()
        self._auto_sync = worker
        return worker

    async def stop_auto_sync(self) -> None:
        if self._auto_sync is None:
            return
        await self._auto_sync.stop()
        self._auto_sync = None


__all__ = [
    "OFFLINE_OR_UNAVAILABLE",
    "STATUS_KEY",
    "SYNC_IN_PROGRESS",
    "SyncManager",
    "local_key",
]
