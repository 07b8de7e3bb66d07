from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import text

import quickdu.db.session as db_session_module
from quickdu.core.config import get_settings
from quickdu.db.init_db import initialize_database
from quickdu.db.migrations import MIGRATIONS, apply_migrations


def _column_names(conn, table_name: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA table_info('{table_name}')")).mappings().all()
    return {str(row["name"]) for row in rows}


def _index_names(conn, table_name: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA index_list('{table_name}')")).mappings().all()
    return {str(row["name"]) for row in rows}


def _fresh_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("QUICKDU_HOME_ROOT", (tmp_path / "home").as_posix())
    monkeypatch.setenv("QUICKDU_STATE_ROOT", (tmp_path / "state").as_posix())
    get_settings.cache_clear()
    db_session_module.reset_engine()
    return db_session_module.get_engine()


def test_initialize_database_creates_baseline_schema(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _fresh_engine(tmp_path, monkeypatch)
    initialize_database()

    with engine.connect() as conn:
        for table_name in ("directory_usages", "job_usages"):
            assert "position" in _column_names(conn, table_name)
            assert f"ix_{table_name}_position" in _index_names(conn, table_name)
        assert {"last_run_start", "last_run_end"} <= _column_names(conn, "usage_runs")
        versions = [int(row[0]) for row in conn.execute(text("SELECT version FROM schema_migrations ORDER BY version"))]
        journal_mode = conn.execute(text("PRAGMA journal_mode")).scalar_one()

    assert versions == [step.version for step in MIGRATIONS]
    assert str(journal_mode).lower() == "wal"


def test_apply_migrations_is_idempotent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _fresh_engine(tmp_path, monkeypatch)
    assert apply_migrations(engine) == [step.version for step in MIGRATIONS]
    assert apply_migrations(engine) == []
