from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlmodel import Session, create_engine

from arsana.models import Settings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, str] = {
    "timezone": "Asia/Jakarta",
    "sweep_time": "08:00",
    "sweep_lease_sec": "3600",
    "upcoming_limit": "10",
}


# src/arsana/db.py -> repository root holding alembic.ini
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = PROJECT_ROOT / ".data" / "arsana.sqlite"


def get_db_path() -> Path:
    db_path_env = os.getenv("ARSANA_DB_PATH")
    if not db_path_env:
        return DEFAULT_DB_PATH

    candidate = Path(db_path_env).expanduser()
    if candidate.is_absolute():
        return candidate
    return (Path.cwd() / candidate).resolve()


def ensure_db_directory() -> Path:
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def get_database_url(*, ensure_directory: bool = False) -> str:
    db_path = ensure_db_directory() if ensure_directory else get_db_path()
    return f"sqlite:///{db_path}"


def get_engine(*, ensure_directory: bool = False):
    return create_engine(
        get_database_url(ensure_directory=ensure_directory),
        connect_args={"check_same_thread": False},
    )


def apply_migrations() -> None:
    ensure_db_directory()

    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", get_database_url(ensure_directory=True))
    command.upgrade(alembic_cfg, "head")


def seed_defaults() -> list[str]:
    """Insert missing default settings. Stored values are left alone."""
    engine = get_engine(ensure_directory=True)

    added: list[str] = []
    with Session(engine) as session:
        for key, value in DEFAULT_SETTINGS.items():
            if session.get(Settings, key) is None:
                session.add(Settings(key=key, value=value))
                added.append(key)
        session.commit()

    if added:
        logger.info("settings_seeded keys=%s", ",".join(added))
    return added


def initialize_database() -> Path:
    apply_migrations()
    seed_defaults()
    return get_db_path()
