import fnmatch
import sys
from pathlib import Path

import pytest
import pytest_asyncio


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from stampcard.core.errors import ApiClientError, RemoteStoreError  # noqa: E402
from stampcard.observability.sync import SyncObservabilityStore  # noqa: E402
from stampcard.services.business.details_cache import BusinessDetailCache  # noqa: E402
from stampcard.services.identity import IdentityStore  # noqa: E402
from stampcard.services.ledger.service import CustomerLedger  # noqa: E402
from stampcard.services.remote.connectivity import StaticConnectivityProbe  # noqa: E402
from stampcard.services.storage.memory import InMemoryRecordStore  # noqa: E402
from stampcard.services.storage.sql import SqlRecordStore  # noqa: E402
from stampcard.services.sync.manager import SyncManager  # noqa: E402
from stampcard.services.sync.outbox import SyncQueue  # noqa: E402


class FakeRemoteStore:
    """In-process stand-in for the shared store with failure injection."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.failing_keys: set[str] = set()
        self.commands: list[tuple[str, str]] = []

    def _check(self, command: str, key: str) -> None:
        self.commands.append((command, key))
        if key in self.failing_keys:
            raise RemoteStoreError(f"{command} {key} failed", command=command)

    async def get(self, key):
        self._check("get", key)
        return self.values.get(key)

    async def set(self, key, value, *, expiry_seconds=None):
        self._check("set", key)
        self.values[key] = value

    async def delete(self, key):
        self._check("del", key)
        self.values.pop(key, None)
        self.sets.pop(key, None)

    async def exists(self, key):
        self._check("exists", key)
        return key in self.values or key in self.sets

    async def keys(self, pattern):
        return sorted(key for key in [*self.values, *self.sets] if fnmatch.fnmatch(key, pattern))

    async def sadd(self, key, *members):
        self._check("sadd", key)
        bucket = self.sets.setdefault(key, set())
        added = len(set(members) - bucket)
        bucket.update(members)
        return added

    async def smembers(self, key):
        self._check("smembers", key)
        return sorted(self.sets.get(key, set()))

    async def srem(self, key, *members):
        self._check("srem", key)
        bucket = self.sets.get(key, set())
        removed = len(bucket & set(members))
        bucket.difference_update(members)
        return removed

    async def mget(self, keys):
        return [self.values.get(key) for key in keys]

    async def mset(self, values):
        self.values.update(values)

    async def aclose(self):
        return None


class StubApiClient:
    """Business/customer API double returning canned payloads."""

    def __init__(self) -> None:
        self.businesses: dict[str, dict] = {}
        self.rewards: dict[str, list[dict]] = {}
        self.campaigns: dict[str, list[dict]] = {}
        self.customers: dict[str, dict] = {}
        self.customers_by_email: dict[str, dict] = {}
        self.failing_businesses: set[str] = set()
        self.synced: list[tuple[str, dict]] = []

    async def get_business(self, business_id):
        if business_id in self.failing_businesses:
            raise ApiClientError("boom", url=f"/businesses/{business_id}", status_code=500)
        return self.businesses.get(business_id)

    async def list_business_rewards(self, business_id):
        return self.rewards.get(business_id, [])

    async def list_business_campaigns(self, business_id):
        return self.campaigns.get(business_id, [])

    async def get_customer(self, customer_id):
        return self.customers.get(customer_id)

    async def get_customer_by_email(self, email):
        return self.customers_by_email.get(email.strip().lower())

    async def sync_customer(self, customer_id, body):
        self.synced.append((customer_id, body))
        return body

    async def aclose(self):
        return None


@pytest.fixture
def memory_store():
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def sql_store():
    store = await SqlRecordStore.from_url("sqlite+aiosqlite:///:memory:")
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def probe():
    return StaticConnectivityProbe(online=True, available=True)


@pytest.fixture
def api_client():
    return StubApiClient()


@pytest.fixture
def identity(memory_store):
    return IdentityStore(memory_store, provider_id="cust-1")


@pytest.fixture
def business_cache(memory_store, api_client):
    return BusinessDetailCache(memory_store, api_client)


@pytest.fixture
def sync_manager(memory_store, remote, probe, identity, business_cache):
    return SyncManager(
        memory_store,
        remote,
        probe,
        SyncQueue(memory_store),
        identity,
        business_cache=business_cache,
        observability=SyncObservabilityStore(),
        opportunistic_sync=False,
    )


@pytest.fixture
def ledger(memory_store, identity, sync_manager):
    return CustomerLedger(memory_store, identity, sync_manager=sync_manager)
