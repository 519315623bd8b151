from datetime import timedelta

import pytest

from stampcard.schemas.customer import CustomerRecord, ProgressKind, TransactionAction
from stampcard.services.customer_sync import MISSING_TIMESTAMP, CustomerRecordSync, build_sync_body


@pytest.fixture
def customer_sync(ledger, identity, api_client, business_cache):
    return CustomerRecordSync(ledger, identity, api_client, business_cache)


@pytest.mark.asyncio
async def test_without_customer_uuid_full_sync_is_a_noop(customer_sync, api_client) -> None:
    result = await customer_sync.perform_full_sync()

    assert result.success is True
    assert result.uploaded is False
    assert api_client.synced == []


@pytest.mark.asyncio
async def test_uuid_is_resolved_by_email_and_persisted(customer_sync, ledger, identity, api_client) -> None:
    record = await ledger.update_profile({"email": "Ada@Example.com"})
    api_client.customers_by_email["ada@example.com"] = {"id": "uuid-1"}
    api_client.customers["uuid-1"] = {"updatedAt": (record.updated_at - timedelta(minutes=1)).isoformat()}

    result = await customer_sync.perform_full_sync()

    assert result.uploaded is True
    assert await identity.get_customer_id() == "uuid-1"
    customer_id, body = api_client.synced[0]
    assert customer_id == "uuid-1"
    assert body["email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_upload_only_when_local_is_strictly_newer(customer_sync, ledger, identity, api_client) -> None:
    await identity.set_customer_id("uuid-1")
    record = await ledger.get_record()

    api_client.customers["uuid-1"] = {"updatedAt": record.updated_at.isoformat()}
    same = await customer_sync.perform_full_sync()

    api_client.customers["uuid-1"] = {"updatedAt": "2000-01-01T00:00:00Z"}
    older = await customer_sync.perform_full_sync()

    assert same.success is True and same.uploaded is False
    assert older.success is True and older.uploaded is True
    assert len(api_client.synced) == 1


@pytest.mark.asyncio
async def test_missing_server_timestamp_fails_without_upload(customer_sync, identity, api_client) -> None:
    await identity.set_customer_id("uuid-1")

    result = await customer_sync.perform_full_sync()

    assert result.success is False
    assert result.errors == [MISSING_TIMESTAMP]
    assert api_client.synced == []


@pytest.mark.asyncio
async def test_build_sync_body_flattens_record(ledger) -> None:
    await ledger.update_profile({"name": "Ada King Lovelace", "phone": "0700"})
    await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 1, business_id="biz-1")
    await ledger.redeem("r1")
    await ledger.record_scan(ProgressKind.CAMPAIGN, "c1", "Summer", 1, 5)
    record = await ledger.get_record()

    body = build_sync_body(record, "uuid-1", log_limit=2)

    assert body["id"] == "uuid-1"
    assert body["firstName"] == "Ada"
    assert body["lastName"] == "King Lovelace"
    assert body["totalStamps"] == 2
    assert body["totalRedemptions"] == 1
    assert "email" not in body
    assert [item["id"] for item in body["rewards"]] == ["r1", "r1", "c1"]
    assert body["rewards"][2]["tokenKind"] == "campaign"
    assert body["rewards"][0]["count"] == 0
    assert len(body["transactionLog"]) == 2


def test_build_sync_body_defaults_first_name() -> None:
    body = build_sync_body(CustomerRecord.empty("cust-1"), "uuid-1")

    assert body["firstName"] == "Customer"
    assert body["lastName"] == ""
    assert body["rewards"] == []
    assert "transactionLog" not in body


@pytest.mark.asyncio
async def test_logout_logs_syncs_and_clears_session(customer_sync, ledger, identity, business_cache, api_client, sync_manager) -> None:
    await identity.set_customer_id("uuid-1")
    api_client.customers["uuid-1"] = {"updatedAt": "2000-01-01T00:00:00+00:00"}
    api_client.businesses["biz-1"] = {"name": "Bean There"}
    await business_cache.pull(["biz-1"])

    result = await customer_sync.logout()

    assert result.success is True
    assert result.uploaded is True
    body = api_client.synced[0][1]
    assert body["transactionLog"][-1]["action"] == TransactionAction.ACTION.value
    assert body["transactionLog"][-1]["data"] == {"event": "LOGOUT"}
    assert await identity.get_customer_id() is None
    assert await business_cache.get_all() == {}
    assert await sync_manager.queue.count() == 1
