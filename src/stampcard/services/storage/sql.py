"""SQLAlchemy-backed record store (aiosqlite by default)."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stampcard.core.errors import StorageError
from stampcard.db.session import build_engine, build_session_factory, create_schema
from stampcard.models.record import LocalRecord


class SqlRecordStore:
    """Durable key/value store with one row per key.

    Driver failures are logged and degrade to ``None``/no-op. Values that
    were stored but no longer parse as JSON raise ``ValueError``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    async def from_url(cls, url: str) -> "SqlRecordStore":
        engine = build_engine(url)
        await create_schema(engine)
        return cls(build_session_factory(engine), engine=engine)

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._read(key)
        except StorageError as exc:
            logger.warning("Local store read failed", key=key, error=str(exc))
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        serialized = json.dumps(value, default=str)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.get(LocalRecord, key)
                    if existing is None:
                        session.add(LocalRecord(key=key, value=serialized))
                    else:
                        existing.value = serialized
        except SQLAlchemyError as exc:
            logger.warning("Local store write failed", key=key, error=str(exc))

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(LocalRecord).where(LocalRecord.key == key))
        except SQLAlchemyError as exc:
            logger.warning("Local store delete failed", key=key, error=str(exc))

    async def get_all_with_prefix(self, prefix: str) -> list[Any]:
        stmt = (
            select(LocalRecord.value)
            .where(LocalRecord.key.startswith(prefix, autoescape=True))
            .order_by(LocalRecord.key.asc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.warning("Local store prefix scan failed", prefix=prefix, error=str(exc))
            return []
        return [json.loads(raw) for raw in rows]

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def _read(self, key: str) -> str | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(LocalRecord, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), key=key) from exc


__all__ = ["SqlRecordStore"]
