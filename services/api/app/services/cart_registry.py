from __future__ import annotations

import os
import threading

from services.api.app.services.cart_store import CartStore
from services.api.app.services.reporting import ErrorReporter
from services.api.app.services.storage_base import KeyValueStorage
from services.api.app.services.storage_factory import get_key_value_storage


class CartRegistry:
    """One hydrated ``CartStore`` per session, held for the life of the process."""

    def __init__(
        self, storage: KeyValueStorage, *, error_reporter: ErrorReporter | None = None
    ) -> None:
        self.storage = storage
        self._reporter = error_reporter
        self._carts: dict[str, CartStore] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str) -> CartStore:
        with self._lock:
            cart = self._carts.get(session_id)
            if cart is None:
                cart = CartStore(
                    self.storage, session_id=session_id, error_reporter=self._reporter
                )
                cart.hydrate()
                self._carts[session_id] = cart
            return cart

    def close(self, session_id: str) -> None:
        with self._lock:
            self._carts.pop(session_id, None)

    def sessions(self) -> list[str]:
        with self._lock:
            return sorted(self._carts)


_REGISTRY: CartRegistry | None = None
_REGISTRY_BACKEND: str | None = None


def get_cart_registry() -> CartRegistry:
    global _REGISTRY, _REGISTRY_BACKEND

    backend = os.getenv("STOREFRONT_CART_STORAGE", "memory").strip().lower()
    if _REGISTRY is not None and _REGISTRY_BACKEND == backend:
        return _REGISTRY

    _REGISTRY = CartRegistry(get_key_value_storage())
    _REGISTRY_BACKEND = backend
    return _REGISTRY


def reset_cart_registry() -> None:
    global _REGISTRY, _REGISTRY_BACKEND
    _REGISTRY = None
    _REGISTRY_BACKEND = None
