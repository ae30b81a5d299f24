"""Daily catch-up sweep for reminders and overdue follow-ups.

Unlike ``reminders.due_reminder_offsets`` (event at least N days away), the
sweep matches events exactly N days away and relies on the per-event
``notified_*`` flags to stay idempotent within a day.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging

from sqlmodel import Session, select

from arsana.models import CalendarEvent, IncomingLetter, Notification, NotificationType
from arsana.reminders import REMINDER_FLAGS, REMINDER_OFFSETS, build_reminder
from arsana.timeutil import dt_to_db, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    reminders_sent: int
    overdue_sent: int
    failures: int


def reminder_window(today: date, offset: int) -> date:
    """The calendar day an event must fall on to get the ``offset``-day reminder today."""
    return today + timedelta(days=offset)


def overdue_title(letter_number: str) -> str:
    return f"Tindak Lanjut Terlambat: {letter_number}"


def overdue_message(subject: str) -> str:
    return f'Surat "{subject}" memerlukan tindak lanjut yang sudah melewati batas waktu'


def check_upcoming_events(session: Session, *, today: date) -> tuple[int, int]:
    """Send the exact-day reminders. Returns (sent, failures)."""
    sent = 0
    failures = 0
    for offset in REMINDER_OFFSETS:
        flag = REMINDER_FLAGS[offset]
        target_day = reminder_window(today, offset)
        event_ids = session.exec(
            select(CalendarEvent.id)
            .where(CalendarEvent.date == target_day)
            .where(getattr(CalendarEvent, flag) == False)  # noqa: E712
            .order_by(CalendarEvent.id)
        ).all()

        for event_id in event_ids:
            try:
                event = session.get(CalendarEvent, event_id)
                session.add(
                    build_reminder(
                        offset,
                        event_id=event.id,
                        user_id=event.user_id,
                        title=event.title,
                        event_date=event.date,
                    )
                )
                setattr(event, flag, True)
                session.add(event)
                session.commit()
            except Exception:
                session.rollback()
                failures += 1
                logger.exception(
                    "sweep_event_reminder_failed event_id=%s offset=%s", event_id, offset
                )
                continue

            sent += 1
            logger.info("sweep_event_reminder_sent event_id=%s offset=%s", event_id, offset)

    return sent, failures


def check_overdue_follow_ups(session: Session, *, today: date, now: datetime) -> tuple[int, int]:
    """Notify owners of incoming letters whose follow-up deadline has passed."""
    sent = 0
    failures = 0
    letter_ids = session.exec(
        select(IncomingLetter.id)
        .where(IncomingLetter.needs_follow_up == True)  # noqa: E712
        .where(IncomingLetter.follow_up_deadline < today)
        .where(IncomingLetter.overdue_notified_at.is_(None))  # type: ignore[union-attr]
        .order_by(IncomingLetter.id)
    ).all()

    for letter_id in letter_ids:
        try:
            letter = session.get(IncomingLetter, letter_id)
            session.add(
                Notification(
                    title=overdue_title(letter.letter_number),
                    message=overdue_message(letter.subject),
                    type=NotificationType.ERROR,
                    user_id=letter.user_id,
                    created_at=utc_now_iso(),
                )
            )
            letter.overdue_notified_at = dt_to_db(now)
            session.add(letter)
            session.commit()
        except Exception:
            session.rollback()
            failures += 1
            logger.exception("sweep_overdue_failed letter_id=%s", letter_id)
            continue

        sent += 1
        logger.info("sweep_overdue_sent letter_id=%s", letter_id)

    return sent, failures


def run_daily_sweep(session: Session, *, today: date, now: datetime) -> SweepResult:
    logger.info("sweep_started today=%s", today.isoformat())
    reminders_sent, reminder_failures = check_upcoming_events(session, today=today)
    overdue_sent, overdue_failures = check_overdue_follow_ups(session, today=today, now=now)
    result = SweepResult(
        reminders_sent=reminders_sent,
        overdue_sent=overdue_sent,
        failures=reminder_failures + overdue_failures,
    )
    logger.info(
        "sweep_completed today=%s reminders_sent=%s overdue_sent=%s failures=%s",
        today.isoformat(),
        result.reminders_sent,
        result.overdue_sent,
        result.failures,
    )
    return result
