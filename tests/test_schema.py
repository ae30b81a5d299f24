from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
import pytest
import sqlalchemy as sa


PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _migrated_engine(tmp_path, monkeypatch):
    db_path = tmp_path / "schema.sqlite"
    monkeypatch.setenv("ARSANA_DB_PATH", str(db_path))

    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(cfg, "head")

    return sa.create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


def test_tables_present_with_expected_columns(tmp_path, monkeypatch) -> None:
    engine = _migrated_engine(tmp_path, monkeypatch)
    inspector = sa.inspect(engine)

    assert {
        "settings",
        "incoming_letters",
        "outgoing_letters",
        "calendar_events",
        "notifications",
        "scheduler_leases",
    }.issubset(set(inspector.get_table_names()))

    event_columns = {col["name"] for col in inspector.get_columns("calendar_events")}
    assert {
        "incoming_letter_id",
        "outgoing_letter_id",
        "notified_7_days",
        "notified_3_days",
        "notified_1_day",
    }.issubset(event_columns)

    incoming_columns = {col["name"] for col in inspector.get_columns("incoming_letters")}
    assert {"is_invitation", "event_date", "needs_follow_up", "follow_up_deadline", "overdue_notified_at"}.issubset(
        incoming_columns
    )

    lease_columns = {col["name"] for col in inspector.get_columns("scheduler_leases")}
    assert lease_columns == {"name", "owner", "acquired_at", "expires_at"}


def test_calendar_event_cannot_link_both_letter_kinds(tmp_path, monkeypatch) -> None:
    engine = _migrated_engine(tmp_path, monkeypatch)

    with engine.begin() as conn:
        conn.execute(
            sa.text(
                "INSERT INTO incoming_letters (letter_number, received_date, letter_nature, subject, sender, "
                "recipient, is_invitation, needs_follow_up, user_id, created_at, updated_at) "
                "VALUES ('A-1', '2026-03-02', 'BIASA', 's', 'x', 'y', 0, 0, 'u', 'now', 'now')"
            )
        )
        conn.execute(
            sa.text(
                "INSERT INTO outgoing_letters (letter_number, letter_date, created_date, letter_nature, subject, "
                "sender, recipient, is_invitation, user_id, created_at, updated_at) "
                "VALUES ('B-1', '2026-03-02', '2026-03-02', 'BIASA', 's', 'x', 'y', 0, 'u', 'now', 'now')"
            )
        )

    with pytest.raises(sa.exc.IntegrityError):
        with engine.begin() as conn:
            conn.execute(
                sa.text(
                    "INSERT INTO calendar_events (title, date, type, user_id, incoming_letter_id, "
                    "outgoing_letter_id, notified_7_days, notified_3_days, notified_1_day, created_at, updated_at) "
                    "VALUES ('t', '2026-03-10', 'MEETING', 'u', 1, 1, 0, 0, 0, 'now', 'now')"
                )
            )


def test_letter_number_is_unique(tmp_path, monkeypatch) -> None:
    engine = _migrated_engine(tmp_path, monkeypatch)
    insert = sa.text(
        "INSERT INTO incoming_letters (letter_number, received_date, letter_nature, subject, sender, "
        "recipient, is_invitation, needs_follow_up, user_id, created_at, updated_at) "
        "VALUES ('A-1', '2026-03-02', 'BIASA', 's', 'x', 'y', 0, 0, 'u', 'now', 'now')"
    )
    with engine.begin() as conn:
        conn.execute(insert)

    with pytest.raises(sa.exc.IntegrityError):
        with engine.begin() as conn:
            conn.execute(insert)
