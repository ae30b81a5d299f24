from __future__ import annotations

from datetime import date, datetime, timezone
from enum import StrEnum

from sqlalchemy import CheckConstraint, Column, Enum as SQLEnum, Index
from sqlmodel import Field, SQLModel


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LetterNature(StrEnum):
    BIASA = "BIASA"
    TERBATAS = "TERBATAS"
    RAHASIA = "RAHASIA"
    SANGAT_RAHASIA = "SANGAT_RAHASIA"
    PENTING = "PENTING"


class DispositionTarget(StrEnum):
    UMPEG = "UMPEG"
    PERENCANAAN = "PERENCANAAN"
    KAUR_KEUANGAN = "KAUR_KEUANGAN"
    KABID = "KABID"
    BIDANG1 = "BIDANG1"
    BIDANG2 = "BIDANG2"
    BIDANG3 = "BIDANG3"
    BIDANG4 = "BIDANG4"
    BIDANG5 = "BIDANG5"


class EventType(StrEnum):
    MEETING = "MEETING"
    APPOINTMENT = "APPOINTMENT"
    DEADLINE = "DEADLINE"
    OTHER = "OTHER"


class NotificationType(StrEnum):
    INFO = "INFO"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class Settings(SQLModel, table=True):
    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str


class IncomingLetter(SQLModel, table=True):
    __tablename__ = "incoming_letters"
    __table_args__ = (
        Index("ix_incoming_letters_follow_up", "needs_follow_up", "follow_up_deadline"),
    )

    id: int | None = Field(default=None, primary_key=True)
    letter_number: str = Field(index=True, unique=True)
    letter_date: date | None = None
    received_date: date
    letter_nature: LetterNature = Field(
        default=LetterNature.BIASA,
        sa_column=Column(
            SQLEnum(LetterNature, name="letter_nature", native_enum=False, create_constraint=True),
            nullable=False,
        ),
    )
    subject: str
    sender: str
    recipient: str
    processor: str | None = None
    note: str | None = None
    disposition_target: DispositionTarget | None = Field(
        default=None,
        sa_column=Column(
            SQLEnum(
                DispositionTarget,
                name="disposition_target",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=True,
        ),
    )
    is_invitation: bool = Field(default=False)
    event_date: date | None = None
    event_time: str | None = None
    event_location: str | None = None
    event_notes: str | None = None
    needs_follow_up: bool = Field(default=False)
    follow_up_deadline: date | None = None
    overdue_notified_at: str | None = None
    user_id: str = Field(index=True)
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)


class OutgoingLetter(SQLModel, table=True):
    __tablename__ = "outgoing_letters"

    id: int | None = Field(default=None, primary_key=True)
    letter_number: str = Field(index=True, unique=True)
    letter_date: date
    created_date: date
    letter_nature: LetterNature = Field(
        default=LetterNature.BIASA,
        sa_column=Column(
            SQLEnum(LetterNature, name="letter_nature", native_enum=False, create_constraint=True),
            nullable=False,
        ),
    )
    subject: str
    sender: str
    recipient: str
    processor: str | None = None
    note: str | None = None
    execution_date: date | None = None
    is_invitation: bool = Field(default=False)
    event_date: date | None = None
    event_time: str | None = None
    event_location: str | None = None
    event_notes: str | None = None
    user_id: str = Field(index=True)
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)


class CalendarEvent(SQLModel, table=True):
    __tablename__ = "calendar_events"
    __table_args__ = (
        CheckConstraint(
            "incoming_letter_id IS NULL OR outgoing_letter_id IS NULL",
            name="ck_calendar_events_single_letter_link",
        ),
        Index("ix_calendar_events_date", "date"),
    )

    id: int | None = Field(default=None, primary_key=True)
    title: str
    description: str | None = None
    date: date
    time: str | None = None
    location: str | None = None
    type: EventType = Field(
        default=EventType.OTHER,
        sa_column=Column(
            SQLEnum(EventType, name="event_type", native_enum=False, create_constraint=True),
            nullable=False,
        ),
    )
    user_id: str = Field(index=True)
    incoming_letter_id: int | None = Field(default=None, foreign_key="incoming_letters.id", index=True)
    outgoing_letter_id: int | None = Field(default=None, foreign_key="outgoing_letters.id", index=True)
    notified_7_days: bool = Field(default=False)
    notified_3_days: bool = Field(default=False)
    notified_1_day: bool = Field(default=False)
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)

    @property
    def is_letter_derived(self) -> bool:
        return self.incoming_letter_id is not None or self.outgoing_letter_id is not None


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_is_read", "user_id", "is_read"),
    )

    id: int | None = Field(default=None, primary_key=True)
    title: str
    message: str
    type: NotificationType = Field(
        default=NotificationType.INFO,
        sa_column=Column(
            SQLEnum(
                NotificationType,
                name="notification_type",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
        ),
    )
    user_id: str | None = None
    calendar_event_id: int | None = Field(default=None, foreign_key="calendar_events.id", index=True)
    is_read: bool = Field(default=False)
    created_at: str = Field(default_factory=_utc_now_iso)


class SchedulerLease(SQLModel, table=True):
    __tablename__ = "scheduler_leases"

    name: str = Field(primary_key=True)
    owner: str
    acquired_at: str
    expires_at: str
