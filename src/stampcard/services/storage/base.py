"""Narrow persistence interface used by every other component."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RecordStore(Protocol):
    """Key/value persistence with per-key atomic writes.

    There is no cross-key transaction: a caller mutating two keys must
    tolerate the first write succeeding while the second fails.
    """

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def get_all_with_prefix(self, prefix: str) -> list[Any]:
        ...

    async def close(self) -> None:
        ...


__all__ = ["RecordStore"]
