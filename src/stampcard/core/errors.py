"""Exception hierarchy shared across the ledger and sync engine."""

from __future__ import annotations


class StampcardError(RuntimeError):
    """Base class for stampcard failures that may cross module boundaries."""


class StorageError(StampcardError):
    """Raised by record store drivers when a read or write cannot complete."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class RemoteStoreError(StampcardError):
    """Raised when the shared remote key/value store rejects or drops a command."""

    def __init__(self, message: str, *, command: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.command = command
        self.url = url


class ApiClientError(StampcardError):
    """Raised when a record or business endpoint cannot be invoked successfully."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


__all__ = ["ApiClientError", "RemoteStoreError", "StampcardError", "StorageError"]
