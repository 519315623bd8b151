import re

import pytest

from stampcard.services.identity import CUSTOMER_UUID_KEY, IdentityStore, generate_device_id


def test_generated_device_ids_follow_expected_shape() -> None:
    device_id = generate_device_id()

    assert re.fullmatch(r"device-\d{13}-[a-z0-9]{9}", device_id)
    assert generate_device_id() != device_id


@pytest.mark.asyncio
async def test_device_id_is_generated_once_and_persisted(memory_store) -> None:
    first = await IdentityStore(memory_store).get_device_id()
    second = await IdentityStore(memory_store).get_device_id()

    assert first == second
    assert await memory_store.get("device_id") == first


@pytest.mark.asyncio
async def test_owner_id_prefers_identity_provider(memory_store) -> None:
    assert await IdentityStore(memory_store, provider_id="auth0|42").get_owner_id() == "auth0|42"
    assert (await IdentityStore(memory_store).get_owner_id()).startswith("device-")


@pytest.mark.asyncio
async def test_customer_uuid_round_trip(memory_store) -> None:
    identity = IdentityStore(memory_store)
    assert await identity.get_customer_id() is None

    await identity.set_customer_id("uuid-1")
    assert await identity.get_customer_id() == "uuid-1"
    assert await memory_store.get(CUSTOMER_UUID_KEY) == "uuid-1"

    await identity.clear_customer_id()
    assert await identity.get_customer_id() is None
