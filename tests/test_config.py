from __future__ import annotations

from datetime import time

import pytest
from sqlmodel import Session, SQLModel, create_engine

from arsana.config import get_int_setting, get_setting, get_sweep_time, get_timezone, upsert_setting


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def test_defaults_apply_without_stored_rows(session: Session) -> None:
    assert get_setting(session, "timezone") == "Asia/Jakarta"
    assert get_timezone(session).key == "Asia/Jakarta"
    assert get_sweep_time(session) == time(8, 0)
    assert get_int_setting(session, "upcoming_limit") == 10


def test_upsert_setting_overrides_default(session: Session) -> None:
    upsert_setting(session, "sweep_time", "06:45")
    upsert_setting(session, "sweep_time", "07:15")

    assert get_sweep_time(session) == time(7, 15)


@pytest.mark.parametrize(
    ("key", "value", "message"),
    [
        ("unknown_key", "1", "Unknown setting key"),
        ("timezone", "Mars/Olympus", "Invalid timezone"),
        ("sweep_time", "8:00", "Invalid HH:MM"),
        ("sweep_lease_sec", "30", ">= 60"),
        ("upcoming_limit", "many", "must be an integer"),
    ],
)
def test_upsert_setting_rejects_invalid_values(session: Session, key: str, value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        upsert_setting(session, key, value)
