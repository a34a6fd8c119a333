from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from packages.shared.money import Number, to_decimal
from packages.shared.schemas.cart_v1 import CartItemCandidate, CartLineV1, CartTotalsV1
from pydantic import TypeAdapter, ValidationError
from services.api.app.services.reporting import ErrorReporter, LoggingErrorReporter
from services.api.app.services.storage_base import KeyValueStorage
from services.api.app.services.totals import calculate_totals, default_tax_rate

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "@cart_items"
TAX_RATE_STORAGE_KEY = "@cart_tax_rate"

_LINES_ADAPTER = TypeAdapter(list[CartLineV1])

CartListener = Callable[[list[CartLineV1]], None]


class CartError(Exception):
    """Base class for cart validation errors."""


class InvalidQuantityError(CartError):
    def __init__(self, quantity: int) -> None:
        super().__init__(f"Quantity must be at least 1, got {quantity}")
        self.quantity = quantity


class InvalidCartItemError(CartError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid cart item: {reason}")
        self.reason = reason


class LineNotFoundError(CartError):
    def __init__(self, line_id: str) -> None:
        super().__init__(f"Cart line not found: {line_id}")
        self.line_id = line_id


class InvalidTaxRateError(CartError):
    def __init__(self, rate: object) -> None:
        super().__init__(f"Tax rate must be a ratio between 0 and 1, got {rate!r}")
        self.rate = rate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartStore:
    """Cart lines for one session, written through to durable storage.

    Every mutation updates memory first and then overwrites the whole persisted snapshot.
    A failed write is reported and leaves the in-memory cart as the caller asked; the
    next mutation writes the full snapshot again.

    Mutations are serialized with a lock so two concurrent adds of the same product merge
    into one line.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        session_id: str | None = None,
        tax_rate: Number | None = None,
        error_reporter: ErrorReporter | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._storage = storage
        self._session_id = session_id
        self._reporter = error_reporter or LoggingErrorReporter()
        self._clock = clock or _utcnow
        self._new_id = id_factory or (lambda: uuid4().hex)

        self._tax_rate = default_tax_rate() if tax_rate is None else _validate_tax_rate(tax_rate)
        self._lines: list[CartLineV1] = []
        self._listeners: list[CartListener] = []
        self._lock = threading.RLock()

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def items_key(self) -> str:
        return _scoped(CART_STORAGE_KEY, self._session_id)

    @property
    def tax_rate_key(self) -> str:
        return _scoped(TAX_RATE_STORAGE_KEY, self._session_id)

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    @property
    def lines(self) -> list[CartLineV1]:
        with self._lock:
            return list(self._lines)

    @property
    def item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the mutation lock across several calls, e.g. snapshot-then-clear at checkout."""

        with self._lock:
            yield

    def hydrate(self) -> None:
        """Load the persisted snapshot, replacing the in-memory state.

        Unreadable or malformed snapshots are reported and treated as an empty cart.
        """

        with self._lock:
            lines: list[CartLineV1] = []
            try:
                raw = self._storage.get(self.items_key)
                if raw:
                    lines = _merge_duplicates(_LINES_ADAPTER.validate_json(raw))
            except ValidationError as e:
                self._reporter.report(e, context="cart.hydrate.parse", key=self.items_key)
            except Exception as e:
                self._reporter.report(e, context="cart.hydrate", key=self.items_key)

            try:
                raw_rate = self._storage.get(self.tax_rate_key)
                if raw_rate:
                    self._tax_rate = _validate_tax_rate(raw_rate)
            except Exception as e:
                self._reporter.report(e, context="cart.hydrate", key=self.tax_rate_key)

            self._lines = lines
            logger.info(
                "Hydrated cart session=%s lines=%d tax_rate=%s",
                self._session_id,
                len(lines),
                self._tax_rate,
            )

    def add_item(self, candidate: CartItemCandidate) -> CartLineV1:
        if candidate.quantity <= 0:
            raise InvalidQuantityError(candidate.quantity)
        if not candidate.product_id.strip():
            raise InvalidCartItemError("product_id is required")
        if not candidate.title.strip():
            raise InvalidCartItemError("title is required")
        if candidate.unit_price < 0:
            raise InvalidCartItemError("unit_price must be non-negative")

        with self._lock:
            for idx, line in enumerate(self._lines):
                if line.matches(candidate.product_id, candidate.variant_id):
                    updated = line.model_copy(update={"quantity": line.quantity + candidate.quantity})
                    self._lines[idx] = updated
                    break
            else:
                updated = CartLineV1(
                    id=self._new_id(),
                    product_id=candidate.product_id,
                    variant_id=candidate.variant_id,
                    title=candidate.title,
                    variant_label=candidate.variant_label,
                    sku=candidate.sku,
                    image_ref=candidate.image_ref,
                    unit_price=candidate.unit_price,
                    quantity=candidate.quantity,
                    created_at=self._clock(),
                )
                self._lines.append(updated)

            self._changed("cart.add_item")
            return updated

    def update_quantity(self, line_id: str, quantity: int) -> CartLineV1 | None:
        """Set a line's quantity. Zero or below removes the line and returns None."""

        with self._lock:
            idx = self._index_of(line_id)
            if idx is None:
                raise LineNotFoundError(line_id)

            if quantity <= 0:
                del self._lines[idx]
                self._changed("cart.update_quantity")
                return None

            updated = self._lines[idx].model_copy(update={"quantity": quantity})
            self._lines[idx] = updated
            self._changed("cart.update_quantity")
            return updated

    def remove_item(self, line_id: str) -> bool:
        """Remove a line. Unknown ids are ignored so double-taps are harmless."""

        with self._lock:
            idx = self._index_of(line_id)
            if idx is None:
                return False
            del self._lines[idx]
            self._changed("cart.remove_item")
            return True

    def clear(self) -> None:
        with self._lock:
            self._lines = []
            try:
                self._storage.remove(self.items_key)
            except Exception as e:
                self._reporter.report(e, context="cart.clear", key=self.items_key)
            self._notify()

    def get_line(self, line_id: str) -> CartLineV1 | None:
        with self._lock:
            idx = self._index_of(line_id)
            return self._lines[idx] if idx is not None else None

    def has_line(self, product_id: str, variant_id: str | None = None) -> bool:
        with self._lock:
            return any(line.matches(product_id, variant_id) for line in self._lines)

    def snapshot(self) -> list[CartLineV1]:
        with self._lock:
            return [line.model_copy(deep=True) for line in self._lines]

    def totals(self, *, shipping: Number = 0, discount: Number = 0) -> CartTotalsV1:
        with self._lock:
            return calculate_totals(self._lines, self._tax_rate, shipping, discount)

    def set_tax_rate(self, rate: Number) -> Decimal:
        with self._lock:
            self._tax_rate = _validate_tax_rate(rate)
            try:
                self._storage.set(self.tax_rate_key, str(self._tax_rate))
            except Exception as e:
                self._reporter.report(e, context="cart.set_tax_rate", key=self.tax_rate_key)
            self._notify()
            return self._tax_rate

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call ``listener`` with the new lines after each change. Returns an unsubscribe."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _index_of(self, line_id: str) -> int | None:
        for idx, line in enumerate(self._lines):
            if line.id == line_id:
                return idx
        return None

    def _changed(self, context: str) -> None:
        self._persist(context)
        self._notify()

    def _persist(self, context: str) -> None:
        payload = json.dumps([line.model_dump(mode="json") for line in self._lines])
        try:
            self._storage.set(self.items_key, payload)
        except Exception as e:
            self._reporter.report(e, context=context, key=self.items_key, lines=len(self._lines))

    def _notify(self) -> None:
        if not self._listeners:
            return
        lines = list(self._lines)
        for listener in list(self._listeners):
            try:
                listener(lines)
            except Exception as e:
                self._reporter.report(e, context="cart.listener")


def _scoped(key: str, session_id: str | None) -> str:
    return f"{key}:{session_id}" if session_id else key


def _validate_tax_rate(rate: Number) -> Decimal:
    try:
        value = to_decimal(rate)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidTaxRateError(rate) from e
    if not value.is_finite() or not (0 <= value <= 1):
        raise InvalidTaxRateError(rate)
    return value


def _merge_duplicates(lines: list[CartLineV1]) -> list[CartLineV1]:
    merged: list[CartLineV1] = []
    for line in lines:
        for idx, existing in enumerate(merged):
            if existing.matches(line.product_id, line.variant_id):
                merged[idx] = existing.model_copy(
                    update={"quantity": existing.quantity + line.quantity}
                )
                break
        else:
            merged.append(line)
    return merged
