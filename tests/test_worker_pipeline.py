from __future__ import annotations

import stat
from pathlib import Path

import pytest

import quickdu.db.session as db_session_module
from quickdu.core.config import get_settings
from quickdu.db.init_db import initialize_database
from quickdu.usage.repository import UsageRepository
from quickdu.worker.pipeline import UsagePassError, run_usage_pass_once


def setup_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, *, create_home: bool = True) -> Path:
    home = tmp_path / "home"
    if create_home:
        (home / "jobs" / "alpha").mkdir(parents=True)
    temp = tmp_path / "tmp"
    temp.mkdir()

    du = tmp_path / "fake-du"
    du.write_text("#!/bin/sh\nprintf '64\\t.\\n'\n", encoding="utf-8")
    du.chmod(du.stat().st_mode | stat.S_IXUSR)

    monkeypatch.setenv("QUICKDU_HOME_ROOT", home.as_posix())
    monkeypatch.setenv("QUICKDU_STATE_ROOT", (tmp_path / "state").as_posix())
    monkeypatch.setenv("QUICKDU_TEMP_ROOT", temp.as_posix())
    monkeypatch.setenv("QUICKDU_DU_COMMAND", du.as_posix())
    monkeypatch.setenv("QUICKDU_DIRECTORY_PACING_SECONDS", "0")

    get_settings.cache_clear()
    db_session_module.reset_engine()
    initialize_database()
    return home


def test_run_usage_pass_once_measures_and_persists(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    setup_env(tmp_path, monkeypatch)

    snapshot = run_usage_pass_once(timeout_seconds=30)

    assert [item.display_name for item in snapshot.directories] == ["HOME", "HOME/jobs", "tmpdir"]
    assert all(item.size_kb == 64 for item in snapshot.directories)
    assert [(job.full_name, job.size_kb) for job in snapshot.jobs] == [("alpha", 64)]

    stored = UsageRepository(db_session_module.get_session_factory()).load()
    assert stored == snapshot


def test_run_usage_pass_once_reports_aborted_pass(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    setup_env(tmp_path, monkeypatch, create_home=False)

    with pytest.raises(UsagePassError):
        run_usage_pass_once(timeout_seconds=30)
