from __future__ import annotations

import os

from services.api.app.services.storage_base import KeyValueStorage
from services.api.app.services.storage_memory import InMemoryKeyValueStorage


def get_key_value_storage() -> KeyValueStorage:
    """Select cart storage based on env vars.

    Defaults to in-memory storage so tests and local dev need no database unless
    explicitly configured otherwise.
    """

    backend = os.getenv("STOREFRONT_CART_STORAGE", "memory").strip().lower()

    if backend == "memory":
        return InMemoryKeyValueStorage()

    if backend in ("db", "sql"):
        from services.api.app.services.storage_sql import SqlKeyValueStorage

        return SqlKeyValueStorage()

    raise ValueError(f"Unknown STOREFRONT_CART_STORAGE={backend!r}. Expected memory or db.")
