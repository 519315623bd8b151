from __future__ import annotations

import json
from typing import Any, Dict


class InMemoryRecordStore:
    """Process-local record store; values are JSON round-tripped on write."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._items.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._items[key] = json.dumps(value, default=str)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    async def get_all_with_prefix(self, prefix: str) -> list[Any]:
        return [json.loads(self._items[key]) for key in sorted(self._items) if key.startswith(prefix)]

    async def close(self) -> None:
        return None

    def snapshot(self) -> Dict[str, Any]:
        return {key: json.loads(value) for key, value in self._items.items()}


__all__ = ["InMemoryRecordStore"]
