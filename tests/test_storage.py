import pytest
from sqlalchemy.exc import OperationalError

from stampcard.services.storage.base import RecordStore
from stampcard.services.storage.memory import InMemoryRecordStore


@pytest.fixture
def store(store_fixture, request):
    # Resolve the (possibly async) store fixture during setup, outside the running loop.
    return request.getfixturevalue(store_fixture)


@pytest.mark.asyncio
@pytest.mark.parametrize("store_fixture", ["memory_store", "sql_store"])
async def test_record_store_contract(store_fixture, store) -> None:
    assert isinstance(store, RecordStore)

    assert await store.get("missing") is None

    await store.set("sync_queue:0002", {"id": "b"})
    await store.set("sync_queue:0001", {"id": "a"})
    await store.set("customerRecord", {"profile": {"id": "cust-1"}})
    await store.set("customerRecord", {"profile": {"id": "cust-2"}})

    assert await store.get("customerRecord") == {"profile": {"id": "cust-2"}}
    assert await store.get_all_with_prefix("sync_queue:") == [{"id": "a"}, {"id": "b"}]

    await store.delete("sync_queue:0001")
    await store.delete("never-written")
    assert await store.get_all_with_prefix("sync_queue:") == [{"id": "b"}]


@pytest.mark.asyncio
async def test_sql_store_prefix_scan_escapes_wildcards(sql_store) -> None:
    await sql_store.set("business_details", {"a": 1})
    await sql_store.set("businessXdetails", {"b": 2})

    assert await sql_store.get_all_with_prefix("business_") == [{"a": 1}]


@pytest.mark.asyncio
async def test_sql_store_persists_scalars(sql_store) -> None:
    await sql_store.set("device_id", "device-1-abc")

    assert await sql_store.get("device_id") == "device-1-abc"


@pytest.mark.asyncio
async def test_sql_store_read_failure_degrades_to_none(sql_store, monkeypatch) -> None:
    def broken_factory():
        raise OperationalError("select", {}, Exception("disk I/O error"))

    monkeypatch.setattr(sql_store, "_session_factory", broken_factory)

    assert await sql_store.get("customerRecord") is None
    assert await sql_store.get_all_with_prefix("sync_queue:") == []
    await sql_store.set("customerRecord", {"profile": {"id": "x"}})


@pytest.mark.asyncio
async def test_malformed_stored_json_propagates() -> None:
    store = InMemoryRecordStore()
    store._items["customerRecord"] = "{not-json"

    with pytest.raises(ValueError):
        await store.get("customerRecord")
