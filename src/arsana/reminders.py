"""Reminder notifications for calendar events (H-7, H-3, H-1).

The functions here never commit. They run inside the caller's transaction so
that a failing batch rolls back the letter or event write that triggered it.
"""
from __future__ import annotations

from datetime import date
import logging

from sqlmodel import Session, select

from arsana.models import CalendarEvent, Notification, NotificationType
from arsana.timeutil import format_date_id, utc_now_iso

logger = logging.getLogger(__name__)

REMINDER_OFFSETS: tuple[int, ...] = (7, 3, 1)

# offset -> CalendarEvent flag column set once the sweep has sent that reminder
REMINDER_FLAGS: dict[int, str] = {
    7: "notified_7_days",
    3: "notified_3_days",
    1: "notified_1_day",
}


class CalendarEventNotFoundError(ValueError):
    """Raised when a calendar event referenced by id no longer exists."""


def reminder_title(offset: int, event_title: str) -> str:
    if offset == 1:
        return f"Pengingat: Besok - {event_title}"
    return f"Pengingat: {offset} hari lagi - {event_title}"


def reminder_message(offset: int, event_title: str, event_date: date) -> str:
    when = "besok" if offset == 1 else f"dalam {offset} hari"
    return f'Kegiatan "{event_title}" akan berlangsung {when} ({format_date_id(event_date)})'


def build_reminder(
    offset: int,
    *,
    event_id: int,
    user_id: str,
    title: str,
    event_date: date,
) -> Notification:
    return Notification(
        title=reminder_title(offset, title),
        message=reminder_message(offset, title, event_date),
        type=NotificationType.WARNING,
        user_id=user_id,
        calendar_event_id=event_id,
        is_read=False,
        created_at=utc_now_iso(),
    )


def due_reminder_offsets(event_date: date, today: date) -> list[int]:
    """Offsets whose reminder is due when an event is first scheduled.

    An offset is due while the event is at least that many days away, so an
    event created far ahead gets all three reminders at once.
    """
    days_until = (event_date - today).days
    return [offset for offset in REMINDER_OFFSETS if days_until >= offset]


def emit_reminders(
    session: Session,
    *,
    event_id: int,
    user_id: str,
    title: str,
    event_date: date,
    today: date,
) -> list[Notification]:
    offsets = due_reminder_offsets(event_date, today)
    if not offsets:
        return []

    notifications = [
        build_reminder(offset, event_id=event_id, user_id=user_id, title=title, event_date=event_date)
        for offset in offsets
    ]
    session.add_all(notifications)
    try:
        session.flush()
    except Exception:
        logger.error(
            "reminders_emit_failed event_id=%s event_date=%s count=%s",
            event_id,
            event_date.isoformat(),
            len(notifications),
        )
        raise

    logger.info(
        "reminders_emitted event_id=%s offsets=%s",
        event_id,
        ",".join(str(offset) for offset in offsets),
    )
    return notifications


def clear_reminders(session: Session, event_id: int) -> int:
    rows = session.exec(
        select(Notification).where(Notification.calendar_event_id == event_id)
    ).all()
    for row in rows:
        session.delete(row)
    session.flush()
    logger.info("reminders_cleared event_id=%s deleted=%s", event_id, len(rows))
    return len(rows)


def refresh_reminders(
    session: Session,
    *,
    event_id: int,
    user_id: str,
    title: str,
    event_date: date,
    today: date,
) -> list[Notification]:
    event = session.get(CalendarEvent, event_id)
    if event is None:
        raise CalendarEventNotFoundError(f"Calendar event {event_id} not found.")

    clear_reminders(session, event_id)

    event.notified_7_days = False
    event.notified_3_days = False
    event.notified_1_day = False
    session.add(event)

    return emit_reminders(
        session,
        event_id=event_id,
        user_id=user_id,
        title=title,
        event_date=event_date,
        today=today,
    )
