from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from services.api.app.db.database import db_session
from services.api.app.db.models import DocumentLink, DocumentRow, utcnow
from services.api.app.services.docstore_base import (
    DanglingLinkError,
    Delete,
    DocumentStoreError,
    DocumentStoreUnavailableError,
    Link,
    TxOp,
    Upsert,
    page,
    sort_records,
)
from sqlalchemy import ColumnElement, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


class SqlDocumentStore:
    """Document store on the relational database.

    Every ``transact`` batch runs in a single SQLAlchemy session and commits once, so the
    database transaction provides the all-or-nothing guarantee.
    """

    backend = "db"

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
        db = db_session()
        try:
            q = db.query(DocumentRow).filter(DocumentRow.collection == collection)
            for key, value in (where or {}).items():
                q = q.filter(_field_equals(key, value))

            if order_by:
                # Timestamps are JSON strings; order them as instants after filtering.
                records = sort_records(
                    [_record(row) for row in q.all()], order_by, descending=descending
                )
                out = page(records, limit=limit, offset=offset)
            else:
                q = q.order_by(DocumentRow.created_at.asc(), DocumentRow.id.asc())
                if offset > 0:
                    q = q.offset(offset)
                if limit is not None:
                    q = q.limit(max(0, limit))
                out = [_record(row) for row in q.all()]

            if include and out:
                ids = [r["id"] for r in out]
                for relation in include:
                    linked = _linked_documents(db, collection, ids, relation)
                    for record in out:
                        record[relation] = linked.get(record["id"], [])
            return out
        except SQLAlchemyError as e:
            raise DocumentStoreUnavailableError("query", str(e)) from e
        finally:
            db.close()

    def transact(self, ops: Sequence[TxOp]) -> None:
        db = db_session()
        try:
            for op in ops:
                _apply(db, op)
                db.flush()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DocumentStoreUnavailableError("transact", str(e)) from e
        except DocumentStoreError:
            db.rollback()
            raise
        finally:
            db.close()


def _apply(db: Session, op: TxOp) -> None:
    now = utcnow()

    if isinstance(op, Upsert):
        row = db.get(DocumentRow, (op.collection, op.id))
        if row is None:
            db.add(DocumentRow(collection=op.collection, id=op.id, data_json=dict(op.data)))
        else:
            # Reassign so the JSON column is marked dirty.
            row.data_json = {**(row.data_json or {}), **op.data}
            row.updated_at = now
        return

    if isinstance(op, Delete):
        row = db.get(DocumentRow, (op.collection, op.id))
        if row is not None:
            db.delete(row)
        db.query(DocumentLink).filter(
            or_(
                (DocumentLink.collection == op.collection) & (DocumentLink.id == op.id),
                (DocumentLink.relation == op.collection) & (DocumentLink.target_id == op.id),
            )
        ).delete(synchronize_session=False)
        return

    if isinstance(op, Link):
        if db.get(DocumentRow, (op.collection, op.id)) is None:
            raise DanglingLinkError(op.collection, op.id)
        if db.get(DocumentRow, (op.relation, op.target_id)) is None:
            raise DanglingLinkError(op.relation, op.target_id)
        key = (op.collection, op.id, op.relation, op.target_id)
        if db.get(DocumentLink, key) is None:
            db.add(
                DocumentLink(
                    collection=op.collection,
                    id=op.id,
                    relation=op.relation,
                    target_id=op.target_id,
                )
            )
        return

    raise DocumentStoreError(f"Unsupported operation: {op!r}")


def _linked_documents(
    db: Session, collection: str, ids: list[str], relation: str
) -> dict[str, list[dict[str, Any]]]:
    rows = (
        db.query(DocumentLink, DocumentRow)
        .join(
            DocumentRow,
            (DocumentRow.collection == DocumentLink.relation)
            & (DocumentRow.id == DocumentLink.target_id),
        )
        .filter(
            DocumentLink.collection == collection,
            DocumentLink.id.in_(ids),
            DocumentLink.relation == relation,
        )
        .order_by(DocumentLink.created_at.asc(), DocumentLink.target_id.asc())
        .all()
    )

    out: dict[str, list[dict[str, Any]]] = {}
    for link, doc in rows:
        out.setdefault(link.id, []).append({"id": doc.id, **dict(doc.data_json or {})})
    return out


def _record(row: DocumentRow) -> dict[str, Any]:
    return {"id": row.id, **dict(row.data_json or {})}


def _field_equals(key: str, value: Any) -> ColumnElement[bool]:
    if key == "id":
        return DocumentRow.id == value

    field = DocumentRow.data_json[key]
    if value is None:
        return field.as_string().is_(None)
    if isinstance(value, bool):
        return field.as_boolean() == value
    if isinstance(value, int):
        return field.as_integer() == value
    if isinstance(value, float):
        return field.as_float() == value
    return field.as_string() == str(value)
