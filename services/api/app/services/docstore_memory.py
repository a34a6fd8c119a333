from __future__ import annotations

import copy
import threading
from collections.abc import Sequence
from typing import Any

from services.api.app.services.docstore_base import (
    DanglingLinkError,
    Delete,
    DocumentStoreError,
    Link,
    TxOp,
    Upsert,
    select_records,
)


class InMemoryDocumentStore:
    """Process-local document store for tests and local dev.

    A batch is applied to copies of the collections and swapped in only when every
    operation succeeded.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, dict[str, Any]]] = {}
        self._links: set[tuple[str, str, str, str]] = set()
        self._lock = threading.Lock()

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
    ) -> list[dict[str, Any]]:
        with self._lock:
            docs = self._docs.get(collection, {})
            records = [{"id": doc_id, **copy.deepcopy(data)} for doc_id, data in docs.items()]
            out = select_records(
                records,
                where=where,
                order_by=order_by,
                descending=descending,
                limit=limit,
                offset=offset,
            )

            for record in out:
                for relation in include:
                    targets = self._docs.get(relation, {})
                    record[relation] = [
                        {"id": target_id, **copy.deepcopy(targets[target_id])}
                        for (c, i, r, target_id) in sorted(self._links)
                        if c == collection and i == record["id"] and r == relation
                        and target_id in targets
                    ]
            return out

    def transact(self, ops: Sequence[TxOp]) -> None:
        with self._lock:
            docs = copy.deepcopy(self._docs)
            links = set(self._links)

            for op in ops:
                if isinstance(op, Upsert):
                    current = docs.setdefault(op.collection, {}).get(op.id, {})
                    docs[op.collection][op.id] = {**current, **copy.deepcopy(op.data)}
                elif isinstance(op, Delete):
                    docs.get(op.collection, {}).pop(op.id, None)
                    links = {
                        link
                        for link in links
                        if (link[0], link[1]) != (op.collection, op.id)
                        and (link[2], link[3]) != (op.collection, op.id)
                    }
                elif isinstance(op, Link):
                    links.add((op.collection, op.id, op.relation, op.target_id))
                else:
                    raise DocumentStoreError(f"Unsupported operation: {op!r}")

            for collection, doc_id, relation, target_id in links:
                if doc_id not in docs.get(collection, {}):
                    raise DanglingLinkError(collection, doc_id)
                if target_id not in docs.get(relation, {}):
                    raise DanglingLinkError(relation, target_id)

            self._docs = docs
            self._links = links
