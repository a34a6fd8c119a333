from datetime import timezone
from pathlib import Path

import pytest
from sqlalchemy import inspect


def test_init_db_creates_tables(tmp_path: Path, monkeypatch) -> None:
    db_path = tmp_path / "storefront_test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")

    from services.api.app.db.database import get_engine
    from services.api.app.db.init_db import init_db

    init_db()

    inspector = inspect(get_engine())
    tables = set(inspector.get_table_names())

    assert {"kv_entries", "documents", "document_links"} <= tables


def test_init_db_respects_auto_create_flag(tmp_path: Path, monkeypatch) -> None:
    db_path = tmp_path / "storefront_skip.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "false")

    from services.api.app.db.database import get_engine
    from services.api.app.db.init_db import init_db

    init_db()

    assert inspect(get_engine()).get_table_names() == []


@pytest.mark.parametrize("raw,expected", [("on", True), (" YES ", True), ("0", False), ("", False)])
def test_parse_bool(raw: str, expected: bool) -> None:
    from services.api.app.db.init_db import _parse_bool

    assert _parse_bool(raw) is expected


def test_row_timestamps_are_timezone_aware() -> None:
    from services.api.app.db.models import utcnow

    assert utcnow().tzinfo is timezone.utc
