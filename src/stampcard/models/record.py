"""Durable key/value row for the local record store."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from stampcard.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalRecord(Base):
    """One JSON value per key; writes replace the whole value."""

    __tablename__ = "local_records"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
