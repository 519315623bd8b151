"""Remote store client speaking the HTTP key/value proxy protocol.

Each command is ``POST {base_url}{proxy_path}/{command}`` with a JSON body of
``{"args": [...]}``. Responses carry the result either as ``{"data": ...}``
or as a bare JSON value.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import httpx

from stampcard.core.errors import RemoteStoreError


class HttpRemoteStore:
    """Shared key/value store reached through the API's proxy endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        proxy_path: str = "/api/v1/redis",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/{proxy_path.strip('/')}"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def get(self, key: str) -> str | None:
        result = await self._execute("get", key)
        return None if result is None else str(result)

    async def set(self, key: str, value: str, *, expiry_seconds: int | None = None) -> None:
        if expiry_seconds:
            await self._execute("setex", key, expiry_seconds, value)
        else:
            await self._execute("set", key, value)

    async def delete(self, key: str) -> None:
        await self._execute("del", key)

    async def exists(self, key: str) -> bool:
        result = await self._execute("exists", key)
        return result is True or result == 1

    async def keys(self, pattern: str) -> list[str]:
        return _as_str_list(await self._execute("keys", pattern))

    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return _as_int(await self._execute("sadd", key, *members))

    async def smembers(self, key: str) -> list[str]:
        return _as_str_list(await self._execute("smembers", key))

    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return _as_int(await self._execute("srem", key, *members))

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        if not keys:
            return []
        result = await self._execute("mget", *keys)
        if not isinstance(result, list):
            raise RemoteStoreError("Unexpected mget response", command="mget", url=self._endpoint)
        return [None if item is None else str(item) for item in result]

    async def mset(self, values: Mapping[str, str]) -> None:
        if not values:
            return
        args: list[Any] = []
        for key, value in values.items():
            args.extend([key, value])
        await self._execute("mset", *args)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _execute(self, command: str, *args: Any) -> Any:
        url = f"{self._endpoint}/{command}"
        try:
            response = await self._client.post(url, json={"args": list(args)})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Remote store {command} failed: {exc}", command=command, url=url) from exc
        except ValueError as exc:
            raise RemoteStoreError(
                f"Remote store {command} returned invalid JSON", command=command, url=url
            ) from exc
        if isinstance(payload, Mapping) and "data" in payload:
            return payload["data"]
        return payload


def _as_str_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    return [str(value)]


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


__all__ = ["HttpRemoteStore"]
