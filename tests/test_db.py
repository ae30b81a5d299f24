from __future__ import annotations

from sqlmodel import Session

from arsana.config import get_setting, upsert_setting
from arsana.db import (
    DEFAULT_DB_PATH,
    DEFAULT_SETTINGS,
    PROJECT_ROOT,
    get_db_path,
    get_engine,
    initialize_database,
    seed_defaults,
)


def test_default_db_path_sits_beside_alembic_ini(monkeypatch) -> None:
    monkeypatch.delenv("ARSANA_DB_PATH", raising=False)

    assert (PROJECT_ROOT / "alembic.ini").is_file()
    assert get_db_path() == DEFAULT_DB_PATH
    assert DEFAULT_DB_PATH.parent == PROJECT_ROOT / ".data"


def test_relative_db_path_resolves_against_cwd(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ARSANA_DB_PATH", "data/local.sqlite")

    assert get_db_path() == (tmp_path / "data" / "local.sqlite").resolve()


def test_reseeding_keeps_stored_settings(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ARSANA_DB_PATH", str(tmp_path / "seed.sqlite"))

    assert initialize_database() == tmp_path / "seed.sqlite"
    with Session(get_engine()) as session:
        upsert_setting(session, "sweep_time", "06:30")

    assert seed_defaults() == []
    with Session(get_engine()) as session:
        assert get_setting(session, "sweep_time") == "06:30"
        assert get_setting(session, "timezone") == DEFAULT_SETTINGS["timezone"]
