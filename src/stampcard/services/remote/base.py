"""Contract for the shared remote key/value store.

Every implementation raises :class:`stampcard.core.errors.RemoteStoreError`
when a command cannot be delivered, so callers can route the failure into
their retry policy instead of mistaking it for an empty result.
"""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RemoteStore(Protocol):
    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str, *, expiry_seconds: int | None = None) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def keys(self, pattern: str) -> list[str]:
        ...

    async def sadd(self, key: str, *members: str) -> int:
        ...

    async def smembers(self, key: str) -> list[str]:
        ...

    async def srem(self, key: str, *members: str) -> int:
        ...

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        ...

    async def mset(self, values: Mapping[str, str]) -> None:
        ...

    async def aclose(self) -> None:
        ...


__all__ = ["RemoteStore"]
