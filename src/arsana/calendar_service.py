from __future__ import annotations

from collections.abc import Mapping
from datetime import date
import logging

from sqlmodel import Session, select

from arsana.models import CalendarEvent, EventType
from arsana.reminders import CalendarEventNotFoundError, clear_reminders
from arsana.timeutil import utc_now_iso

logger = logging.getLogger(__name__)

EVENT_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "date", "time", "location", "type"}
)
_LINK_FIELDS: frozenset[str] = frozenset({"incoming_letter_id", "outgoing_letter_id"})


class CalendarEventLinkError(ValueError):
    """Raised when a calendar edit would touch a letter-derived event or its link."""


def get_event(session: Session, event_id: int) -> CalendarEvent:
    event = session.get(CalendarEvent, event_id)
    if event is None:
        raise CalendarEventNotFoundError(f"Calendar event {event_id} not found.")
    return event


def list_events(
    session: Session,
    *,
    start: date | None = None,
    end: date | None = None,
    event_type: EventType | None = None,
) -> list[CalendarEvent]:
    statement = select(CalendarEvent)
    if start is not None:
        statement = statement.where(CalendarEvent.date >= start)
    if end is not None:
        statement = statement.where(CalendarEvent.date <= end)
    if event_type is not None:
        statement = statement.where(CalendarEvent.type == event_type)
    return session.exec(statement.order_by(CalendarEvent.date, CalendarEvent.id)).all()


def upcoming_events(session: Session, *, today: date, limit: int = 10) -> list[CalendarEvent]:
    if limit < 1:
        raise ValueError("Upcoming events limit must be >= 1.")
    return session.exec(
        select(CalendarEvent)
        .where(CalendarEvent.date >= today)
        .order_by(CalendarEvent.date, CalendarEvent.id)
        .limit(limit)
    ).all()


def create_event(
    session: Session,
    *,
    title: str,
    event_date: date,
    user_id: str,
    event_type: EventType = EventType.OTHER,
    description: str | None = None,
    time: str | None = None,
    location: str | None = None,
) -> CalendarEvent:
    """Create a calendar event that is not derived from a letter.

    No reminders are written here; the daily sweep picks the event up as it
    crosses each reminder window.
    """
    if not title.strip():
        raise ValueError("Event title must not be empty.")

    now_iso = utc_now_iso()
    event = CalendarEvent(
        title=title.strip(),
        description=description,
        date=event_date,
        time=time,
        location=location,
        type=event_type,
        user_id=user_id,
        created_at=now_iso,
        updated_at=now_iso,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    logger.info("calendar_event_created event_id=%s date=%s", event.id, event_date.isoformat())
    return event


def update_event(session: Session, event_id: int, patch: Mapping[str, object]) -> CalendarEvent:
    event = get_event(session, event_id)
    if _LINK_FIELDS & set(patch):
        raise CalendarEventLinkError("Letter links of a calendar event cannot be edited directly.")
    if event.is_letter_derived:
        raise CalendarEventLinkError(
            f"Calendar event {event_id} is derived from a letter; edit the letter instead."
        )
    unknown = set(patch) - EVENT_EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown calendar event field(s): {', '.join(sorted(unknown))}.")
    if "title" in patch and not str(patch["title"] or "").strip():
        raise ValueError("Event title must not be empty.")
    if "date" in patch and not isinstance(patch["date"], date):
        raise ValueError("Event date must be a date.")

    for key, value in patch.items():
        if key == "type":
            value = EventType(value)
        setattr(event, key, value)
    event.updated_at = utc_now_iso()
    session.add(event)
    session.commit()
    session.refresh(event)
    logger.info("calendar_event_updated event_id=%s fields=%s", event_id, ",".join(sorted(patch)))
    return event


def delete_event(session: Session, event_id: int) -> int:
    """Delete a manual event and its notifications. Returns notifications removed."""
    event = get_event(session, event_id)
    if event.is_letter_derived:
        raise CalendarEventLinkError(
            f"Calendar event {event_id} is derived from a letter; delete or edit the letter instead."
        )
    try:
        cleared = clear_reminders(session, event_id)
        session.delete(event)
        session.commit()
    except Exception:
        session.rollback()
        logger.error("calendar_event_delete_failed event_id=%s", event_id)
        raise

    logger.info("calendar_event_deleted event_id=%s notifications_cleared=%s", event_id, cleared)
    return cleared
