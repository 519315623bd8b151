"""HTTP client for the record-level and business REST endpoints."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

import httpx

from stampcard.core.errors import ApiClientError

_ENTITY_COLLECTIONS = {"reward": "rewards", "campaign": "campaigns"}


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, Mapping) and "data" in payload:
        return payload["data"]
    return payload


class LoyaltyApiClient:
    """Thin wrapper over ``/api/v1`` customer, business and entity endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = f"{base_url.rstrip('/')}/api/v1"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def get_customer(self, customer_id: str) -> dict[str, Any] | None:
        if not customer_id:
            return None
        return await self._get_object(f"/customers/{quote(customer_id, safe='')}")

    async def get_customer_by_email(self, email: str) -> dict[str, Any] | None:
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        return await self._get_object(f"/customers/by-email/{quote(normalized, safe='')}")

    async def sync_customer(self, customer_id: str, body: Mapping[str, Any]) -> dict[str, Any] | None:
        """Full replace of the customer record (``PUT /customers/{id}/sync``)."""

        url = f"{self._api_url}/customers/{quote(customer_id, safe='')}/sync"
        payload = await self._request("PUT", url, json=dict(body))
        data = _unwrap(payload)
        return data if isinstance(data, dict) else None

    async def get_business(self, business_id: str) -> dict[str, Any] | None:
        return await self._get_object(f"/businesses/{quote(business_id, safe='')}")

    async def list_business_rewards(self, business_id: str) -> list[dict[str, Any]]:
        return await self._get_list(f"/businesses/{quote(business_id, safe='')}/rewards")

    async def list_business_campaigns(self, business_id: str) -> list[dict[str, Any]]:
        return await self._get_list(f"/businesses/{quote(business_id, safe='')}/campaigns")

    async def get_entity(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        collection = self._collection(entity_type)
        return await self._get_object(f"/{collection}/{quote(entity_id, safe='')}")

    async def put_entity(self, entity_type: str, entity_id: str, body: Mapping[str, Any]) -> dict[str, Any] | None:
        collection = self._collection(entity_type)
        url = f"{self._api_url}/{collection}/{quote(entity_id, safe='')}"
        data = _unwrap(await self._request("PUT", url, json=dict(body)))
        return data if isinstance(data, dict) else None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _collection(entity_type: str) -> str:
        try:
            return _ENTITY_COLLECTIONS[entity_type]
        except KeyError as exc:
            raise ValueError(f"Unsupported entity type: {entity_type}") from exc

    async def _get_object(self, path: str) -> dict[str, Any] | None:
        payload = await self._request("GET", f"{self._api_url}{path}", allow_missing=True)
        data = _unwrap(payload)
        return data if isinstance(data, dict) else None

    async def _get_list(self, path: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"{self._api_url}{path}", allow_missing=True)
        data = _unwrap(payload)
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]
        return []

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any | None = None,
        allow_missing: bool = False,
    ) -> Any:
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise ApiClientError(str(exc), url=url) from exc

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            detail = _error_detail(response)
            raise ApiClientError(detail, url=url, status_code=response.status_code)
        try:
            return response.json()
        except ValueError:
            return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, Mapping):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


__all__ = ["LoyaltyApiClient"]
