from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from arsana.calendar_service import (
    CalendarEventLinkError,
    create_event,
    delete_event,
    get_event,
    list_events,
    update_event,
    upcoming_events,
)
from arsana.event_sync import LetterKind
from arsana.letter_service import create_letter
from arsana.models import EventType, Notification
from arsana.reminders import CalendarEventNotFoundError

TODAY = date(2026, 3, 2)


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def _invitation_event_id(session: Session) -> int:
    _, outcome = create_letter(
        session,
        kind=LetterKind.INCOMING,
        data={
            "letter_number": "UND-1",
            "received_date": TODAY,
            "subject": "Rapat",
            "sender": "Dinas",
            "recipient": "Kabid",
            "is_invitation": True,
            "event_date": TODAY + timedelta(days=10),
        },
        user_id="user-1",
        today=TODAY,
    )
    return outcome.event_id


def test_create_manual_event_writes_no_reminders(session: Session) -> None:
    event = create_event(
        session,
        title="  Apel Pagi ",
        event_date=TODAY + timedelta(days=7),
        user_id="user-1",
        event_type=EventType.APPOINTMENT,
        time="07:30",
    )

    assert event.title == "Apel Pagi"
    assert event.is_letter_derived is False
    assert event.type == EventType.APPOINTMENT
    assert session.exec(select(Notification)).all() == []


def test_create_event_rejects_blank_title(session: Session) -> None:
    with pytest.raises(ValueError):
        create_event(session, title="  ", event_date=TODAY, user_id="user-1")


def test_list_events_filters_by_range_and_type(session: Session) -> None:
    create_event(session, title="A", event_date=TODAY, user_id="u", event_type=EventType.DEADLINE)
    create_event(session, title="B", event_date=TODAY + timedelta(days=3), user_id="u")
    create_event(session, title="C", event_date=TODAY + timedelta(days=40), user_id="u")

    assert [e.title for e in list_events(session)] == ["A", "B", "C"]
    assert [e.title for e in list_events(session, start=TODAY + timedelta(days=1), end=TODAY + timedelta(days=30))] == [
        "B"
    ]
    assert [e.title for e in list_events(session, event_type=EventType.DEADLINE)] == ["A"]


def test_upcoming_events_orders_and_limits(session: Session) -> None:
    create_event(session, title="past", event_date=TODAY - timedelta(days=1), user_id="u")
    create_event(session, title="later", event_date=TODAY + timedelta(days=9), user_id="u")
    create_event(session, title="today", event_date=TODAY, user_id="u")
    create_event(session, title="soon", event_date=TODAY + timedelta(days=2), user_id="u")

    assert [e.title for e in upcoming_events(session, today=TODAY, limit=2)] == ["today", "soon"]
    with pytest.raises(ValueError):
        upcoming_events(session, today=TODAY, limit=0)


def test_update_manual_event(session: Session) -> None:
    event = create_event(session, title="Apel", event_date=TODAY, user_id="u")

    updated = update_event(session, event.id, {"title": "Apel Besar", "type": "MEETING", "location": "Lapangan"})

    assert updated.title == "Apel Besar"
    assert updated.type == EventType.MEETING
    assert updated.location == "Lapangan"


def test_update_event_rejects_link_edits_and_unknown_fields(session: Session) -> None:
    event = create_event(session, title="Apel", event_date=TODAY, user_id="u")

    with pytest.raises(CalendarEventLinkError):
        update_event(session, event.id, {"incoming_letter_id": 1})
    with pytest.raises(ValueError, match="Unknown"):
        update_event(session, event.id, {"notified_1_day": True})
    with pytest.raises(ValueError):
        update_event(session, event.id, {"date": "2026-03-05"})


def test_letter_derived_event_cannot_be_edited_or_deleted_directly(session: Session) -> None:
    event_id = _invitation_event_id(session)

    with pytest.raises(CalendarEventLinkError):
        update_event(session, event_id, {"title": "Renamed"})
    with pytest.raises(CalendarEventLinkError):
        delete_event(session, event_id)

    assert get_event(session, event_id).title == "[Undangan] Rapat"


def test_delete_manual_event_clears_its_notifications(session: Session) -> None:
    event = create_event(session, title="Apel", event_date=TODAY + timedelta(days=1), user_id="u")
    session.add(Notification(title="x", message="y", calendar_event_id=event.id, user_id="u"))
    session.commit()
    event_id = event.id

    assert delete_event(session, event_id) == 1
    assert session.exec(select(Notification)).all() == []
    with pytest.raises(CalendarEventNotFoundError):
        get_event(session, event_id)
