"""Device and customer identity persisted in the local record store."""

from __future__ import annotations

import secrets
import string
import time

from stampcard.services.storage.base import RecordStore

DEVICE_ID_KEY = "device_id"
CUSTOMER_UUID_KEY = "customer_uuid"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_device_id() -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"device-{int(time.time() * 1000)}-{suffix}"


class IdentityStore:
    """Resolves the ids that key the customer record and sync metadata.

    ``provider_id`` is the stable id handed over by the external identity
    provider; without one the locally generated device id is used.
    """

    def __init__(self, store: RecordStore, *, provider_id: str | None = None) -> None:
        self._store = store
        self._provider_id = provider_id
        self._device_id: str | None = None

    async def get_device_id(self) -> str:
        if self._device_id:
            return self._device_id
        stored = await self._store.get(DEVICE_ID_KEY)
        if isinstance(stored, str) and stored:
            self._device_id = stored
            return stored
        device_id = generate_device_id()
        await self._store.set(DEVICE_ID_KEY, device_id)
        self._device_id = device_id
        return device_id

    async def get_owner_id(self) -> str:
        return self._provider_id or await self.get_device_id()

    async def get_customer_id(self) -> str | None:
        stored = await self._store.get(CUSTOMER_UUID_KEY)
        return stored if isinstance(stored, str) and stored else None

    async def set_customer_id(self, customer_uuid: str) -> None:
        await self._store.set(CUSTOMER_UUID_KEY, customer_uuid)

    async def clear_customer_id(self) -> None:
        await self._store.delete(CUSTOMER_UUID_KEY)


__all__ = ["IdentityStore", "generate_device_id"]
