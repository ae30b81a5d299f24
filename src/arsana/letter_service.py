from __future__ import annotations

from collections.abc import Mapping
from datetime import date
import logging

import sqlalchemy as sa
from sqlmodel import Session, select

from arsana.event_sync import (
    LETTER_MODELS,
    LetterEventState,
    LetterKind,
    LetterNotFoundError,
    SyncOutcome,
    merge_letter_update,
    purge_letter_events,
    sync_letter_event,
)
from arsana.models import (
    DispositionTarget,
    IncomingLetter,
    LetterNature,
    Notification,
    NotificationType,
    OutgoingLetter,
)
from arsana.timeutil import utc_now_iso

logger = logging.getLogger(__name__)

Letter = IncomingLetter | OutgoingLetter


class LetterConflictError(ValueError):
    """Raised when a letter number is already taken."""


class LetterValidationError(ValueError):
    """Raised when letter input fails validation."""


_COMMON_FIELDS: frozenset[str] = frozenset(
    {
        "letter_number",
        "letter_date",
        "letter_nature",
        "subject",
        "sender",
        "recipient",
        "processor",
        "note",
        "is_invitation",
        "event_date",
        "event_time",
        "event_location",
        "event_notes",
    }
)

EDITABLE_FIELDS: dict[LetterKind, frozenset[str]] = {
    LetterKind.INCOMING: _COMMON_FIELDS
    | {"received_date", "disposition_target", "needs_follow_up", "follow_up_deadline"},
    LetterKind.OUTGOING: _COMMON_FIELDS | {"created_date", "execution_date"},
}

REQUIRED_FIELDS: dict[LetterKind, tuple[str, ...]] = {
    LetterKind.INCOMING: ("letter_number", "received_date", "subject", "sender", "recipient"),
    LetterKind.OUTGOING: (
        "letter_number",
        "letter_date",
        "created_date",
        "subject",
        "sender",
        "recipient",
    ),
}

_TEXT_REQUIRED: frozenset[str] = frozenset({"letter_number", "subject", "sender", "recipient"})
_DATE_FIELDS: frozenset[str] = frozenset(
    {
        "letter_date",
        "received_date",
        "created_date",
        "execution_date",
        "event_date",
        "follow_up_deadline",
    }
)
_BOOL_FIELDS: frozenset[str] = frozenset({"is_invitation", "needs_follow_up"})

_NEW_LETTER_NOTICE: dict[LetterKind, tuple[str, str]] = {
    LetterKind.INCOMING: ("Surat Masuk Baru", "Surat masuk baru"),
    LetterKind.OUTGOING: ("Surat Keluar Baru", "Surat keluar baru"),
}


def _label(kind: LetterKind) -> str:
    return f"{kind.value.capitalize()} letter"


def _normalize_fields(kind: LetterKind, data: Mapping[str, object]) -> dict[str, object]:
    unknown = set(data) - EDITABLE_FIELDS[kind]
    if unknown:
        raise LetterValidationError(
            f"Unknown {kind.value} letter field(s): {', '.join(sorted(unknown))}."
        )

    normalized: dict[str, object] = {}
    for key, value in data.items():
        if key in _TEXT_REQUIRED:
            if not isinstance(value, str) or not value.strip():
                raise LetterValidationError(f"Field {key} must not be empty.")
            value = value.strip()
        elif key in _DATE_FIELDS:
            if value is not None and not isinstance(value, date):
                raise LetterValidationError(f"Field {key} must be a date.")
        elif key in _BOOL_FIELDS:
            value = bool(value)
        elif key == "letter_nature":
            value = _coerce_enum(LetterNature, key, value, nullable=False)
        elif key == "disposition_target":
            value = _coerce_enum(DispositionTarget, key, value, nullable=True)
        elif isinstance(value, str):
            value = value.strip() or None
        normalized[key] = value
    return normalized


def _coerce_enum(enum_cls, key: str, value: object, *, nullable: bool):
    if value is None:
        if nullable:
            return None
        raise LetterValidationError(f"Field {key} must not be empty.")
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise LetterValidationError(f"Invalid {key} '{value}'. Expected one of: {allowed}.") from exc


def _ensure_number_available(
    session: Session,
    *,
    kind: LetterKind,
    letter_number: str,
    exclude_id: int | None = None,
) -> None:
    model = LETTER_MODELS[kind]
    statement = select(model).where(model.letter_number == letter_number)
    if exclude_id is not None:
        statement = statement.where(model.id != exclude_id)
    if session.exec(statement).first() is not None:
        raise LetterConflictError(f"Letter number already exists: {letter_number}")


def get_letter(session: Session, *, kind: LetterKind, letter_id: int) -> Letter:
    letter = session.get(LETTER_MODELS[kind], letter_id)
    if letter is None:
        raise LetterNotFoundError(f"{_label(kind)} {letter_id} not found.")
    return letter


def list_letters(
    session: Session,
    *,
    kind: LetterKind,
    search: str | None = None,
    invitations_only: bool = False,
    nature: LetterNature | str | None = None,
    disposition_target: DispositionTarget | str | None = None,
    needs_follow_up: bool | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Letter]:
    """List letters newest first.

    The date range applies to ``received_date`` for incoming letters and
    ``letter_date`` for outgoing ones; both bounds are inclusive.
    Disposition and follow-up filters exist only on incoming letters.
    """
    model = LETTER_MODELS[kind]
    if kind is LetterKind.OUTGOING and (disposition_target is not None or needs_follow_up is not None):
        raise LetterValidationError("Disposition and follow-up filters apply to incoming letters only.")
    if start_date is not None and end_date is not None and start_date > end_date:
        raise LetterValidationError("Start date must not be after end date.")

    statement = select(model)
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            sa.or_(
                model.letter_number.ilike(pattern),  # type: ignore[union-attr]
                model.subject.ilike(pattern),  # type: ignore[union-attr]
                model.sender.ilike(pattern),  # type: ignore[union-attr]
                model.recipient.ilike(pattern),  # type: ignore[union-attr]
                model.processor.ilike(pattern),  # type: ignore[union-attr]
            )
        )
    if invitations_only:
        statement = statement.where(model.is_invitation == True)  # noqa: E712
    if nature is not None:
        statement = statement.where(
            model.letter_nature == _coerce_enum(LetterNature, "letter_nature", nature, nullable=False)
        )
    if disposition_target is not None:
        target = _coerce_enum(DispositionTarget, "disposition_target", disposition_target, nullable=False)
        statement = statement.where(IncomingLetter.disposition_target == target)
    if needs_follow_up is not None:
        statement = statement.where(IncomingLetter.needs_follow_up == needs_follow_up)

    date_column = (
        IncomingLetter.received_date if kind is LetterKind.INCOMING else OutgoingLetter.letter_date
    )
    if start_date is not None:
        statement = statement.where(date_column >= start_date)
    if end_date is not None:
        statement = statement.where(date_column <= end_date)

    statement = statement.order_by(model.created_at.desc(), model.id.desc()).offset(offset).limit(limit)
    return session.exec(statement).all()


def create_letter(
    session: Session,
    *,
    kind: LetterKind,
    data: Mapping[str, object],
    user_id: str,
    today: date,
) -> tuple[Letter, SyncOutcome]:
    if not user_id.strip():
        raise LetterValidationError("Letter owner must not be empty.")

    fields = _normalize_fields(kind, data)
    missing = [key for key in REQUIRED_FIELDS[kind] if fields.get(key) is None]
    if missing:
        raise LetterValidationError(f"Missing required field(s): {', '.join(missing)}.")
    if fields.get("is_invitation") and fields.get("event_date") is None:
        raise LetterValidationError("Event date is required when the letter is an invitation.")

    _ensure_number_available(session, kind=kind, letter_number=fields["letter_number"])

    now_iso = utc_now_iso()
    letter = LETTER_MODELS[kind](**fields, user_id=user_id.strip(), created_at=now_iso, updated_at=now_iso)
    try:
        session.add(letter)
        session.flush()

        outcome = sync_letter_event(
            session,
            kind=kind,
            letter_id=letter.id,
            was_invitation=False,
            state=LetterEventState.from_letter(letter),
            today=today,
        )

        title, prefix = _NEW_LETTER_NOTICE[kind]
        session.add(
            Notification(
                title=title,
                message=f"{prefix}: {letter.letter_number} - {letter.subject}",
                type=NotificationType.INFO,
                user_id=None,
                created_at=now_iso,
            )
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.error("letter_create_failed kind=%s letter_number=%s", kind.value, fields["letter_number"])
        raise

    session.refresh(letter)
    logger.info(
        "letter_created kind=%s letter_id=%s sync_action=%s",
        kind.value,
        letter.id,
        outcome.action.value,
    )
    return letter, outcome


def update_letter(
    session: Session,
    *,
    kind: LetterKind,
    letter_id: int,
    patch: Mapping[str, object],
    today: date,
) -> tuple[Letter, SyncOutcome]:
    letter = get_letter(session, kind=kind, letter_id=letter_id)
    fields = _normalize_fields(kind, patch)

    for key in REQUIRED_FIELDS[kind]:
        if key in fields and fields[key] is None:
            raise LetterValidationError(f"Field {key} must not be empty.")

    previous = LetterEventState.from_letter(letter)
    final = merge_letter_update(previous, fields)
    if fields.get("is_invitation") is True and final.event_date is None:
        raise LetterValidationError("Event date is required when the letter is an invitation.")

    new_number = fields.get("letter_number")
    if new_number is not None and new_number != letter.letter_number:
        _ensure_number_available(session, kind=kind, letter_number=new_number, exclude_id=letter.id)

    try:
        for key, value in fields.items():
            setattr(letter, key, value)
        letter.updated_at = utc_now_iso()
        session.add(letter)
        session.flush()

        outcome = sync_letter_event(
            session,
            kind=kind,
            letter_id=letter.id,
            was_invitation=previous.is_invitation,
            state=final,
            today=today,
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.error("letter_update_failed kind=%s letter_id=%s", kind.value, letter_id)
        raise

    session.refresh(letter)
    logger.info(
        "letter_updated kind=%s letter_id=%s fields=%s sync_action=%s",
        kind.value,
        letter_id,
        ",".join(sorted(fields)),
        outcome.action.value,
    )
    return letter, outcome


def delete_letter(session: Session, *, kind: LetterKind, letter_id: int) -> int:
    """Delete the letter, its calendar events and their reminders. Returns events removed."""
    letter = get_letter(session, kind=kind, letter_id=letter_id)
    try:
        removed = purge_letter_events(session, kind=kind, letter_id=letter_id)
        session.delete(letter)
        session.commit()
    except Exception:
        session.rollback()
        logger.error("letter_delete_failed kind=%s letter_id=%s", kind.value, letter_id)
        raise

    logger.info("letter_deleted kind=%s letter_id=%s events_removed=%s", kind.value, letter_id, removed)
    return removed
