"""Remote store backed directly by Redis via ``redis.asyncio``."""

from __future__ import annotations

from typing import Mapping, Sequence

from redis.asyncio import Redis
from redis.exceptions import RedisError

from stampcard.core.errors import RemoteStoreError


class RedisRemoteStore:
    """Shared key/value store for deployments that can reach Redis directly."""

    def __init__(self, redis_client: Redis | None = None, *, url: str = "redis://localhost:6379/0") -> None:
        self._redis = redis_client or Redis.from_url(url, encoding="utf-8", decode_responses=True)

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="get") from exc

    async def set(self, key: str, value: str, *, expiry_seconds: int | None = None) -> None:
        try:
            await self._redis.set(key, value, ex=expiry_seconds)
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="set") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="del") from exc

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(key))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="exists") from exc

    async def keys(self, pattern: str) -> list[str]:
        try:
            return list(await self._redis.keys(pattern))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="keys") from exc

    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        try:
            return int(await self._redis.sadd(key, *members))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="sadd") from exc

    async def smembers(self, key: str) -> list[str]:
        try:
            return sorted(await self._redis.smembers(key))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="smembers") from exc

    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        try:
            return int(await self._redis.srem(key, *members))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="srem") from exc

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        if not keys:
            return []
        try:
            return list(await self._redis.mget(list(keys)))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="mget") from exc

    async def mset(self, values: Mapping[str, str]) -> None:
        if not values:
            return
        try:
            await self._redis.mset(dict(values))
        except RedisError as exc:
            raise RemoteStoreError(str(exc), command="mset") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def aclose(self) -> None:
        await self._redis.aclose()


__all__ = ["RedisRemoteStore"]
