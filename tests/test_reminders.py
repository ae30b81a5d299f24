from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from arsana.models import CalendarEvent, EventType, Notification, NotificationType
from arsana.reminders import (
    CalendarEventNotFoundError,
    clear_reminders,
    due_reminder_offsets,
    emit_reminders,
    refresh_reminders,
    reminder_message,
    reminder_title,
)

TODAY = date(2026, 3, 2)


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def _event(session: Session, *, event_date: date, title: str = "[Undangan] Rapat") -> CalendarEvent:
    event = CalendarEvent(title=title, date=event_date, type=EventType.MEETING, user_id="user-1")
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


def _reminders(session: Session, event_id: int) -> list[Notification]:
    return session.exec(
        select(Notification)
        .where(Notification.calendar_event_id == event_id)
        .order_by(Notification.id)
    ).all()


@pytest.mark.parametrize(
    ("days_ahead", "expected"),
    [
        (10, [7, 3, 1]),
        (7, [7, 3, 1]),
        (6, [3, 1]),
        (3, [3, 1]),
        (2, [1]),
        (1, [1]),
        (0, []),
        (-1, []),
    ],
)
def test_due_reminder_offsets_uses_at_least_rule(days_ahead: int, expected: list[int]) -> None:
    assert due_reminder_offsets(TODAY + timedelta(days=days_ahead), TODAY) == expected


def test_emit_reminders_ten_days_ahead_creates_three_warnings(session: Session) -> None:
    event_date = TODAY + timedelta(days=10)
    event = _event(session, event_date=event_date)

    created = emit_reminders(
        session,
        event_id=event.id,
        user_id="user-1",
        title=event.title,
        event_date=event_date,
        today=TODAY,
    )
    session.commit()

    rows = _reminders(session, event.id)
    assert len(created) == 3
    assert len(rows) == 3
    assert {row.type for row in rows} == {NotificationType.WARNING}
    assert {row.user_id for row in rows} == {"user-1"}
    assert [row.title for row in rows] == [
        "Pengingat: 7 hari lagi - [Undangan] Rapat",
        "Pengingat: 3 hari lagi - [Undangan] Rapat",
        "Pengingat: Besok - [Undangan] Rapat",
    ]
    assert rows[0].message == 'Kegiatan "[Undangan] Rapat" akan berlangsung dalam 7 hari (12/3/2026)'
    assert rows[2].message == 'Kegiatan "[Undangan] Rapat" akan berlangsung besok (12/3/2026)'


def test_emit_reminders_two_days_ahead_creates_only_one_day_reminder(session: Session) -> None:
    event_date = TODAY + timedelta(days=2)
    event = _event(session, event_date=event_date)

    emit_reminders(session, event_id=event.id, user_id="user-1", title=event.title, event_date=event_date, today=TODAY)
    session.commit()

    rows = _reminders(session, event.id)
    assert [row.title for row in rows] == ["Pengingat: Besok - [Undangan] Rapat"]


def test_emit_reminders_past_event_creates_nothing(session: Session) -> None:
    event_date = TODAY - timedelta(days=1)
    event = _event(session, event_date=event_date)

    created = emit_reminders(
        session,
        event_id=event.id,
        user_id="user-1",
        title=event.title,
        event_date=event_date,
        today=TODAY,
    )

    assert created == []
    assert _reminders(session, event.id) == []


def test_clear_reminders_is_idempotent_and_scoped_to_event(session: Session) -> None:
    first = _event(session, event_date=TODAY + timedelta(days=10))
    second = _event(session, event_date=TODAY + timedelta(days=10), title="Other")
    for event in (first, second):
        emit_reminders(session, event_id=event.id, user_id="user-1", title=event.title, event_date=event.date, today=TODAY)
    session.commit()

    assert clear_reminders(session, first.id) == 3
    assert clear_reminders(session, first.id) == 0
    session.commit()

    assert _reminders(session, first.id) == []
    assert len(_reminders(session, second.id)) == 3


def test_refresh_reminders_replaces_rows_and_resets_flags(session: Session) -> None:
    event = _event(session, event_date=TODAY + timedelta(days=10))
    emit_reminders(session, event_id=event.id, user_id="user-1", title=event.title, event_date=event.date, today=TODAY)
    event.notified_7_days = True
    event.notified_3_days = True
    event.notified_1_day = True
    session.add(event)
    session.commit()

    new_date = TODAY + timedelta(days=5)
    refresh_reminders(session, event_id=event.id, user_id="user-1", title=event.title, event_date=new_date, today=TODAY)
    session.commit()
    session.refresh(event)

    rows = _reminders(session, event.id)
    assert [row.title for row in rows] == [
        "Pengingat: 3 hari lagi - [Undangan] Rapat",
        "Pengingat: Besok - [Undangan] Rapat",
    ]
    assert "(7/3/2026)" in rows[0].message
    assert event.notified_7_days is False
    assert event.notified_3_days is False
    assert event.notified_1_day is False


def test_refresh_reminders_missing_event_raises(session: Session) -> None:
    with pytest.raises(CalendarEventNotFoundError):
        refresh_reminders(session, event_id=999, user_id="user-1", title="x", event_date=TODAY, today=TODAY)


def test_reminder_templates() -> None:
    assert reminder_title(7, "T") == "Pengingat: 7 hari lagi - T"
    assert reminder_title(1, "T") == "Pengingat: Besok - T"
    assert reminder_message(3, "T", date(2026, 1, 5)) == 'Kegiatan "T" akan berlangsung dalam 3 hari (5/1/2026)'
