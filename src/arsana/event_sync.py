"""Keep a letter's invitation fields, its calendar event and the event's
reminders consistent.

The decision (``decide_sync_action``) and the patch merge
(``merge_letter_update``) are pure. ``sync_letter_event`` applies the
decision inside the caller's transaction and never commits.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date
from enum import StrEnum
import logging

from sqlmodel import Session, select

from arsana.models import CalendarEvent, EventType, IncomingLetter, OutgoingLetter
from arsana.reminders import clear_reminders, emit_reminders, refresh_reminders
from arsana.timeutil import utc_now_iso

logger = logging.getLogger(__name__)


class LetterKind(StrEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


LETTER_MODELS: dict[LetterKind, type[IncomingLetter] | type[OutgoingLetter]] = {
    LetterKind.INCOMING: IncomingLetter,
    LetterKind.OUTGOING: OutgoingLetter,
}

INVITATION_TITLE_PREFIX: dict[LetterKind, str] = {
    LetterKind.INCOMING: "[Undangan] ",
    LetterKind.OUTGOING: "[Undangan] ",
}


class LetterNotFoundError(ValueError):
    """Raised when a letter referenced by id does not exist."""


class SyncAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "noop"


@dataclass(frozen=True)
class LetterEventState:
    """The letter fields that drive its calendar event."""

    is_invitation: bool
    event_date: date | None
    subject: str
    user_id: str
    event_time: str | None = None
    event_location: str | None = None
    event_notes: str | None = None

    @classmethod
    def from_letter(cls, letter: IncomingLetter | OutgoingLetter) -> LetterEventState:
        return cls(
            is_invitation=bool(letter.is_invitation),
            event_date=letter.event_date,
            subject=letter.subject,
            user_id=letter.user_id,
            event_time=letter.event_time,
            event_location=letter.event_location,
            event_notes=letter.event_notes,
        )


EVENT_STATE_FIELDS: tuple[str, ...] = (
    "is_invitation",
    "event_date",
    "subject",
    "user_id",
    "event_time",
    "event_location",
    "event_notes",
)


@dataclass(frozen=True)
class SyncOutcome:
    action: SyncAction
    event_id: int | None = None
    reminders_emitted: int = 0
    reminders_cleared: int = 0
    duplicates_removed: int = 0


def merge_letter_update(existing: LetterEventState, patch: Mapping[str, object]) -> LetterEventState:
    """Overlay the patch on the stored state.

    Keys absent from the patch keep their stored value; a key present with
    ``None`` clears the field. Keys unrelated to the event are ignored.
    """
    changes = {key: patch[key] for key in EVENT_STATE_FIELDS if key in patch}
    if "is_invitation" in changes:
        changes["is_invitation"] = bool(changes["is_invitation"])
    return replace(existing, **changes)


def decide_sync_action(
    *,
    was_invitation: bool,
    is_invitation: bool,
    has_event_date: bool,
    has_existing_event: bool,
) -> SyncAction:
    # Became an invitation with a date: create, or adopt an event that is already there.
    if not was_invitation and is_invitation and has_event_date:
        return SyncAction.UPDATE if has_existing_event else SyncAction.CREATE

    # Not an invitation: no event may remain.
    if not is_invitation:
        return SyncAction.DELETE if has_existing_event else SyncAction.NOOP

    # Still an invitation with a date.
    if has_event_date:
        return SyncAction.UPDATE if has_existing_event else SyncAction.CREATE

    # Invitation without a usable date.
    return SyncAction.DELETE if has_existing_event else SyncAction.NOOP


def invitation_title(kind: LetterKind, subject: str) -> str:
    return f"{INVITATION_TITLE_PREFIX[kind]}{subject}"


def letter_link_column(kind: LetterKind):
    if kind == LetterKind.INCOMING:
        return CalendarEvent.incoming_letter_id
    return CalendarEvent.outgoing_letter_id


def find_letter_events(session: Session, *, kind: LetterKind, letter_id: int) -> list[CalendarEvent]:
    return session.exec(
        select(CalendarEvent)
        .where(letter_link_column(kind) == letter_id)
        .order_by(CalendarEvent.id)
    ).all()


def _delete_event(session: Session, event: CalendarEvent) -> int:
    cleared = clear_reminders(session, event.id)
    session.delete(event)
    session.flush()
    return cleared


def _canonical_event(
    session: Session,
    *,
    kind: LetterKind,
    letter_id: int,
) -> tuple[CalendarEvent | None, int]:
    events = find_letter_events(session, kind=kind, letter_id=letter_id)
    if len(events) <= 1:
        return (events[0] if events else None), 0

    canonical, extras = events[0], events[1:]
    logger.warning(
        "letter_event_duplicates_found kind=%s letter_id=%s canonical_id=%s extra_ids=%s",
        kind.value,
        letter_id,
        canonical.id,
        ",".join(str(event.id) for event in extras),
    )
    for event in extras:
        _delete_event(session, event)
    return canonical, len(extras)


def sync_letter_event(
    session: Session,
    *,
    kind: LetterKind,
    letter_id: int,
    was_invitation: bool,
    state: LetterEventState,
    today: date,
) -> SyncOutcome:
    """Reconcile the letter's calendar event with its final invitation state."""
    if session.get(LETTER_MODELS[kind], letter_id) is None:
        raise LetterNotFoundError(f"{kind.value.capitalize()} letter {letter_id} not found.")

    existing, duplicates_removed = _canonical_event(session, kind=kind, letter_id=letter_id)
    action = decide_sync_action(
        was_invitation=was_invitation,
        is_invitation=state.is_invitation,
        has_event_date=state.event_date is not None,
        has_existing_event=existing is not None,
    )
    title = invitation_title(kind, state.subject)

    if action == SyncAction.CREATE:
        event = CalendarEvent(
            title=title,
            description=state.event_notes,
            date=state.event_date,
            time=state.event_time,
            location=state.event_location,
            type=EventType.MEETING,
            user_id=state.user_id,
        )
        if kind == LetterKind.INCOMING:
            event.incoming_letter_id = letter_id
        else:
            event.outgoing_letter_id = letter_id
        session.add(event)
        session.flush()

        emitted = emit_reminders(
            session,
            event_id=event.id,
            user_id=state.user_id,
            title=title,
            event_date=state.event_date,
            today=today,
        )
        logger.info(
            "letter_event_created kind=%s letter_id=%s event_id=%s reminders=%s",
            kind.value,
            letter_id,
            event.id,
            len(emitted),
        )
        return SyncOutcome(
            action=action,
            event_id=event.id,
            reminders_emitted=len(emitted),
            duplicates_removed=duplicates_removed,
        )

    if action == SyncAction.UPDATE:
        date_changed = existing.date != state.event_date
        existing.title = title
        existing.description = state.event_notes
        existing.date = state.event_date
        existing.time = state.event_time
        existing.location = state.event_location
        existing.user_id = state.user_id
        existing.updated_at = utc_now_iso()
        session.add(existing)
        session.flush()

        emitted = 0
        if date_changed:
            emitted = len(
                refresh_reminders(
                    session,
                    event_id=existing.id,
                    user_id=state.user_id,
                    title=title,
                    event_date=state.event_date,
                    today=today,
                )
            )
        logger.info(
            "letter_event_updated kind=%s letter_id=%s event_id=%s date_changed=%s",
            kind.value,
            letter_id,
            existing.id,
            date_changed,
        )
        return SyncOutcome(
            action=action,
            event_id=existing.id,
            reminders_emitted=emitted,
            duplicates_removed=duplicates_removed,
        )

    if action == SyncAction.DELETE:
        event_id = existing.id
        cleared = _delete_event(session, existing)
        logger.info(
            "letter_event_deleted kind=%s letter_id=%s event_id=%s reminders_cleared=%s",
            kind.value,
            letter_id,
            event_id,
            cleared,
        )
        return SyncOutcome(
            action=action,
            event_id=event_id,
            reminders_cleared=cleared,
            duplicates_removed=duplicates_removed,
        )

    return SyncOutcome(action=action, duplicates_removed=duplicates_removed)


def purge_letter_events(session: Session, *, kind: LetterKind, letter_id: int) -> int:
    """Delete every event referencing the letter together with its reminders."""
    events = find_letter_events(session, kind=kind, letter_id=letter_id)
    for event in events:
        _delete_event(session, event)
    if events:
        logger.info(
            "letter_events_purged kind=%s letter_id=%s count=%s",
            kind.value,
            letter_id,
            len(events),
        )
    return len(events)
