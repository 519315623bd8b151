"""Application container: builds every service once from settings."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from stampcard.core.settings import Settings, get_settings
from stampcard.observability.sync import SyncObservabilityStore
from stampcard.schemas.sync import SyncResult
from stampcard.services.business.details_cache import BusinessDetailCache
from stampcard.services.customer_sync import CustomerRecordSync
from stampcard.services.identity import IdentityStore
from stampcard.services.ledger.reward_entities import CustomerRewardEntities
from stampcard.services.ledger.service import CustomerLedger
from stampcard.services.remote.api_client import LoyaltyApiClient
from stampcard.services.remote.base import RemoteStore
from stampcard.services.remote.connectivity import ConnectivityProbe, HealthCheckProbe, RedisPingProbe
from stampcard.services.remote.http_store import HttpRemoteStore
from stampcard.services.remote.redis_store import RedisRemoteStore
from stampcard.services.scanning import ScanProcessor
from stampcard.services.storage.base import RecordStore
from stampcard.services.storage.memory import InMemoryRecordStore
from stampcard.services.storage.sql import SqlRecordStore
from stampcard.services.sync.manager import SyncManager
from stampcard.services.sync.outbox import SyncQueue
from stampcard.services.sync.retry import RetryPolicy


@dataclass
class StampcardApp:
    settings: Settings
    store: RecordStore
    remote: RemoteStore
    probe: ConnectivityProbe
    api_client: LoyaltyApiClient
    identity: IdentityStore
    observability: SyncObservabilityStore
    queue: SyncQueue
    business_cache: BusinessDetailCache
    sync_manager: SyncManager
    ledger: CustomerLedger
    reward_entities: CustomerRewardEntities
    scanner: ScanProcessor
    customer_sync: CustomerRecordSync
    http_client: httpx.AsyncClient | None = None

    async def sync(self) -> SyncResult:
        """User-triggered sync: publish changed rewards, then push and pull."""

        record = await self.ledger.get_record()
        published = await self.reward_entities.publish(record)
        if published:
            logger.debug("Published reward entities", count=published)
        await self.sync_manager.wait_for_background()
        return await self.sync_manager.perform_sync(record.customer_id, await self.ledger.business_ids())

    async def aclose(self) -> None:
        await self.sync_manager.stop_auto_sync()
        await self.sync_manager.wait_for_background()
        await self.remote.aclose()
        if self.http_client is not None:
            await self.http_client.aclose()
        await self.store.close()


async def create_app(
    settings: Settings | None = None,
    *,
    store: RecordStore | None = None,
    remote: RemoteStore | None = None,
    probe: ConnectivityProbe | None = None,
    api_client: LoyaltyApiClient | None = None,
) -> StampcardApp:
    settings = settings or get_settings()

    if store is None:
        if settings.uses_memory_store:
            store = InMemoryRecordStore()
        else:
            store = await SqlRecordStore.from_url(settings.local_store_url)

    http_client: httpx.AsyncClient | None = None
    if remote is None or probe is None or api_client is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    if remote is None:
        if settings.remote_backend == "redis":
            remote = RedisRemoteStore(url=settings.redis_url)
        else:
            remote = HttpRemoteStore(
                settings.api_base_url,
                proxy_path=settings.remote_proxy_path,
                http_client=http_client,
            )
    if probe is None:
        if isinstance(remote, RedisRemoteStore):
            probe = RedisPingProbe(remote)
        else:
            probe = HealthCheckProbe(settings.api_base_url, http_client=http_client)
    if api_client is None:
        api_client = LoyaltyApiClient(settings.api_base_url, http_client=http_client)

    identity = IdentityStore(store, provider_id=settings.customer_id)
    observability = SyncObservabilityStore()
    queue = SyncQueue(store, dead_letter_limit=settings.dead_letter_limit)
    business_cache = BusinessDetailCache(
        store,
        api_client,
        placeholder_ids=settings.business_placeholder_ids,
    )
    sync_manager = SyncManager(
        store,
        remote,
        probe,
        queue,
        identity,
        business_cache=business_cache,
        retry_policy=RetryPolicy(max_retries=settings.sync_max_retries),
        observability=observability,
        opportunistic_sync=settings.opportunistic_sync_enabled,
        auto_sync_interval_seconds=settings.sync_interval_seconds,
    )
    ledger = CustomerLedger(
        store,
        identity,
        sync_manager=sync_manager,
        transaction_log_limit=settings.transaction_log_limit,
    )
    app = StampcardApp(
        settings=settings,
        store=store,
        remote=remote,
        probe=probe,
        api_client=api_client,
        identity=identity,
        observability=observability,
        queue=queue,
        business_cache=business_cache,
        sync_manager=sync_manager,
        ledger=ledger,
        reward_entities=CustomerRewardEntities(store, identity, sync_manager),
        scanner=ScanProcessor(ledger, campaign_points_required=settings.campaign_default_points_required),
        customer_sync=CustomerRecordSync(
            ledger,
            identity,
            api_client,
            business_cache,
            log_limit=settings.transaction_log_limit,
        ),
        http_client=http_client,
    )
    logger.info(
        "Stampcard services ready",
        environment=settings.environment,
        remote_backend=settings.remote_backend,
        memory_store=settings.uses_memory_store,
    )
    return app


__all__ = ["StampcardApp", "create_app"]
