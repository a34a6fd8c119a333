from __future__ import annotations

from services.api.app.db.database import db_session
from services.api.app.db.models import KeyValueEntry, utcnow
from services.api.app.services.storage_base import StorageUnavailableError
from sqlalchemy.exc import SQLAlchemyError


class SqlKeyValueStorage:
    """Key-value storage kept in the ``kv_entries`` table."""

    backend = "db"

    def get(self, key: str) -> str | None:
        db = db_session()
        try:
            row = db.get(KeyValueEntry, key)
            return row.value if row is not None else None
        except SQLAlchemyError as e:
            raise StorageUnavailableError(key, str(e)) from e
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = db_session()
        try:
            row = db.get(KeyValueEntry, key)
            if row is None:
                db.add(KeyValueEntry(key=key, value=value))
            else:
                row.value = value
                row.updated_at = utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageUnavailableError(key, str(e)) from e
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db = db_session()
        try:
            row = db.get(KeyValueEntry, key)
            if row is not None:
                db.delete(row)
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageUnavailableError(key, str(e)) from e
        finally:
            db.close()
