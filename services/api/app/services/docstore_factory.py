from __future__ import annotations

import os

from services.api.app.services.docstore_base import DocumentStore
from services.api.app.services.docstore_memory import InMemoryDocumentStore

_STORE: DocumentStore | None = None
_STORE_BACKEND: str | None = None


def get_document_store() -> DocumentStore:
    """Return the process-wide document store selected by STOREFRONT_DOCSTORE.

    The in-memory store is cached so data survives across requests; it is rebuilt
    whenever the configured backend changes (tests switch it via env vars).
    """

    global _STORE, _STORE_BACKEND

    backend = os.getenv("STOREFRONT_DOCSTORE", "memory").strip().lower()
    if _STORE is not None and _STORE_BACKEND == backend:
        return _STORE

    if backend == "memory":
        store: DocumentStore = InMemoryDocumentStore()
    elif backend in ("db", "sql"):
        from services.api.app.services.docstore_sql import SqlDocumentStore

        store = SqlDocumentStore()
    else:
        raise ValueError(f"Unknown STOREFRONT_DOCSTORE={backend!r}. Expected memory or db.")

    _STORE = store
    _STORE_BACKEND = backend
    return store


def reset_document_store() -> None:
    global _STORE, _STORE_BACKEND
    _STORE = None
    _STORE_BACKEND = None
