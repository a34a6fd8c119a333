from __future__ import annotations

from typing import Protocol


class StorageError(Exception):
    """Base class for durable key-value storage failures."""


class StorageUnavailableError(StorageError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Storage unavailable for key={key!r}: {reason}")
        self.key = key
        self.reason = reason


class KeyValueStorage(Protocol):
    """Durable local key-value storage.

    Values are opaque strings (the cart stores JSON). ``remove`` on a missing key is not
    an error.
    """

    backend: str

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...
