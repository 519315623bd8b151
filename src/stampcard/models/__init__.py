"""SQLAlchemy models backing the local record store."""

from .record import LocalRecord

__all__ = ["LocalRecord"]
