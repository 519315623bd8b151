"""Connectivity probes answering "is the device online" and "is the store up"."""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

import httpx
from loguru import logger

from stampcard.services.remote.redis_store import RedisRemoteStore


@runtime_checkable
class ConnectivityProbe(Protocol):
    def is_online(self) -> bool:
        ...

    async def is_remote_available(self) -> bool:
        ...


class StaticConnectivityProbe:
    """Probe with fixed answers; flip the attributes to simulate outages."""

    def __init__(self, *, online: bool = True, available: bool = True) -> None:
        self.online = online
        self.available = available

    def is_online(self) -> bool:
        return self.online

    async def is_remote_available(self) -> bool:
        return self.available


class HealthCheckProbe:
    """Checks the API health endpoint, which reports the proxied store state."""

    def __init__(
        self,
        base_url: str,
        *,
        online_check: Callable[[], bool] | None = None,
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._health_url = f"{base_url.rstrip('/')}/health"
        self._online_check = online_check or (lambda: True)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    def is_online(self) -> bool:
        return bool(self._online_check())

    async def is_remote_available(self) -> bool:
        try:
            response = await self._client.get(self._health_url)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Health check failed", url=self._health_url, error=str(exc))
            return False
        return isinstance(payload, dict) and payload.get("redis") == "connected"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class RedisPingProbe:
    """Availability probe for the direct Redis backend."""

    def __init__(self, store: RedisRemoteStore, *, online_check: Callable[[], bool] | None = None) -> None:
        self._store = store
        self._online_check = online_check or (lambda: True)

    def is_online(self) -> bool:
        return bool(self._online_check())

    async def is_remote_available(self) -> bool:
        return await self._store.ping()


__all__ = ["ConnectivityProbe", "HealthCheckProbe", "RedisPingProbe", "StaticConnectivityProbe"]
