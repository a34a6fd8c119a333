from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol


class DocumentStoreError(Exception):
    """Base class for document store failures."""


class DocumentStoreUnavailableError(DocumentStoreError):
    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Document store {operation} failed: {reason}")
        self.operation = operation
        self.reason = reason


class DanglingLinkError(DocumentStoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Link references missing document {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True, slots=True)
class Upsert:
    """Create the document or shallow-merge ``data`` into it."""

    collection: str
    id: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Delete:
    collection: str
    id: str


@dataclass(frozen=True, slots=True)
class Link:
    """Relate ``collection/id`` to ``relation/target_id``.

    The relation name doubles as the target collection name.
    """

    collection: str
    id: str
    relation: str
    target_id: str


TxOp = Upsert | Delete | Link


class DocumentStore(Protocol):
    """Opaque document database.

    ``transact`` applies a batch all-or-nothing: either every operation is visible
    afterwards or none is, and a failure raises ``DocumentStoreError``.
    """

    backend: str

    def query_once(
        self,
        collection: str,
        *,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        include: Sequence[str] = (),
    ) -> list[dict[str, Any]]: ...

    def transact(self, ops: Sequence[TxOp]) -> None: ...


def select_records(
    records: Iterable[dict[str, Any]],
    *,
    where: dict[str, Any] | None,
    order_by: str | None,
    descending: bool,
    limit: int | None,
    offset: int,
) -> list[dict[str, Any]]:
    where = where or {}
    out = [r for r in records if all(r.get(k) == v for k, v in where.items())]
    if order_by:
        out = sort_records(out, order_by, descending=descending)
    return page(out, limit=limit, offset=offset)


def sort_records(
    records: list[dict[str, Any]], order_by: str, *, descending: bool = False
) -> list[dict[str, Any]]:
    """Stable sort on one field. Missing values sort first ascending."""

    return sorted(records, key=lambda r: sort_key(r.get(order_by)), reverse=descending)


def page(records: list[dict[str, Any]], *, limit: int | None, offset: int) -> list[dict[str, Any]]:
    start = max(0, offset)
    if limit is None:
        return records[start:]
    return records[start : start + max(0, limit)]


def sort_key(value: Any) -> tuple[int, int, Any]:
    # ISO timestamps compare as instants, not as text.
    if value is None:
        return (0, 0, "")
    if isinstance(value, (int, float)):
        return (1, 0, value)
    if isinstance(value, str):
        ts = parse_timestamp(value)
        if ts is not None:
            return (1, 1, ts)
        return (1, 2, value)
    return (1, 3, str(value))


def parse_timestamp(value: str) -> datetime | None:
    if len(value) < 10 or value[4] != "-" or value[7] != "-":
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)
