from __future__ import annotations

from datetime import date, datetime
import logging

import typer
from rich import print
from sqlmodel import Session

from arsana.calendar_service import (
    create_event,
    delete_event,
    list_events,
    upcoming_events,
    update_event,
)
from arsana.config import get_int_setting, get_sweep_time, get_timezone, list_settings, upsert_setting
from arsana.db import get_engine, initialize_database
from arsana.event_sync import LetterKind, SyncOutcome
from arsana.letter_service import (
    LetterNotFoundError,
    create_letter,
    delete_letter,
    get_letter,
    list_letters,
    update_letter,
)
from arsana.models import CalendarEvent, EventType, Notification
from arsana.notification_service import (
    NotificationNotFoundError,
    delete_all_read,
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)
from arsana.reminders import CalendarEventNotFoundError
from arsana.scheduler import (
    SWEEP_LEASE_NAME,
    DailyScheduler,
    default_owner,
    release_lease,
    run_scheduled_sweep,
)
from arsana.sweep import run_daily_sweep
from arsana.timeutil import parse_date_ymd, parse_time_hhmm, today_in

app = typer.Typer(
    name="arsana",
    help="Arsana letter tracking CLI.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Manage tracker settings.")
incoming_app = typer.Typer(help="Manage incoming letters.")
outgoing_app = typer.Typer(help="Manage outgoing letters.")
calendar_app = typer.Typer(help="Calendar events (letter invitations and manual events).")
notification_app = typer.Typer(help="Read and manage notifications.")
sweep_app = typer.Typer(help="Daily reminder sweep.")
scheduler_app = typer.Typer(help="Long-running daily scheduler.")
app.add_typer(config_app, name="config")
app.add_typer(incoming_app, name="incoming")
app.add_typer(outgoing_app, name="outgoing")
app.add_typer(calendar_app, name="calendar")
app.add_typer(notification_app, name="notification")
app.add_typer(sweep_app, name="sweep")
app.add_typer(scheduler_app, name="scheduler")

_NOT_FOUND_ERRORS = (LetterNotFoundError, CalendarEventNotFoundError, NotificationNotFoundError)


def _parse_date(value: str, field_name: str) -> date:
    try:
        return parse_date_ymd(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid --{field_name} format. Expected YYYY-MM-DD.") from exc


def _parse_optional_date(value: str | None, field_name: str) -> date | None:
    if value is None:
        return None
    return _parse_date(value, field_name)


def _check_time(value: str | None, field_name: str) -> str | None:
    if value is None:
        return None
    try:
        parse_time_hhmm(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid --{field_name} format. Expected HH:MM.") from exc
    return value


def _parse_event_type(value: str) -> EventType:
    try:
        return EventType(value.upper())
    except ValueError as exc:
        raise typer.BadParameter("Invalid --type. Expected MEETING, APPOINTMENT, DEADLINE or OTHER.") from exc


def _today(session: Session) -> date:
    return today_in(get_timezone(session))


def _not_found(exc: Exception) -> typer.Exit:
    print(f"[red]Not found:[/red] {exc}")
    return typer.Exit(code=1)


def _format_letter(letter) -> str:
    event = letter.event_date.isoformat() if letter.event_date else "-"
    return (
        f'id={letter.id} number="{letter.letter_number}" subject="{letter.subject}" '
        f"invitation={'yes' if letter.is_invitation else 'no'} event_date={event} owner={letter.user_id}"
    )


def _format_sync(outcome: SyncOutcome) -> str:
    return (
        f"event_sync={outcome.action.value} event_id={outcome.event_id or '-'} "
        f"reminders_emitted={outcome.reminders_emitted} reminders_cleared={outcome.reminders_cleared}"
    )


def _format_event(event: CalendarEvent) -> str:
    if event.incoming_letter_id is not None:
        source = f"incoming:{event.incoming_letter_id}"
    elif event.outgoing_letter_id is not None:
        source = f"outgoing:{event.outgoing_letter_id}"
    else:
        source = "manual"
    return (
        f'id={event.id} date={event.date.isoformat()} time={event.time or "-"} '
        f'type={event.type.value} title="{event.title}" source={source}'
    )


def _format_notification(notification: Notification) -> str:
    marker = " " if notification.is_read else "*"
    return (
        f"{marker} id={notification.id} type={notification.type.value} "
        f'title="{notification.title}" message="{notification.message}"'
    )


def _event_fields(
    *,
    invitation: bool | None,
    event_date: str | None,
    clear_event_date: bool,
    event_time: str | None,
    event_location: str | None,
    event_notes: str | None,
) -> dict[str, object]:
    if clear_event_date and event_date is not None:
        raise typer.BadParameter("Use either --event-date or --clear-event-date, not both.")

    fields: dict[str, object] = {}
    if invitation is not None:
        fields["is_invitation"] = invitation
    if event_date is not None:
        fields["event_date"] = _parse_date(event_date, "event-date")
    if clear_event_date:
        fields["event_date"] = None
    if event_time is not None:
        fields["event_time"] = _check_time(event_time, "event-time")
    if event_location is not None:
        fields["event_location"] = event_location
    if event_notes is not None:
        fields["event_notes"] = event_notes
    return fields


def _create(kind: LetterKind, data: dict[str, object], user_id: str) -> None:
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            letter, outcome = create_letter(
                session,
                kind=kind,
                data=data,
                user_id=user_id,
                today=_today(session),
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(_format_letter(letter))
        typer.echo(_format_sync(outcome))


def _update(kind: LetterKind, letter_id: int, patch: dict[str, object]) -> None:
    if not patch:
        raise typer.BadParameter("Nothing to update: provide at least one field option.")

    with Session(get_engine(ensure_directory=True)) as session:
        try:
            letter, outcome = update_letter(
                session,
                kind=kind,
                letter_id=letter_id,
                patch=patch,
                today=_today(session),
            )
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(_format_letter(letter))
        typer.echo(_format_sync(outcome))


def _delete(kind: LetterKind, letter_id: int) -> None:
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            removed = delete_letter(session, kind=kind, letter_id=letter_id)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
    print(f"[green]Deleted {kind.value} letter {letter_id}.[/green] events_removed={removed}")


def _list(kind: LetterKind, *, limit: int, start: str | None, end: str | None, **filters) -> None:
    start_date = _parse_optional_date(start, "start")
    end_date = _parse_optional_date(end, "end")
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            letters = list_letters(
                session,
                kind=kind,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
                **filters,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        if not letters:
            typer.echo(f"No {kind.value} letters.")
            return
        for letter in letters:
            typer.echo(_format_letter(letter))


def _show(kind: LetterKind, letter_id: int) -> None:
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            letter = get_letter(session, kind=kind, letter_id=letter_id)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc

        typer.echo(_format_letter(letter))
        typer.echo(f'sender="{letter.sender}" recipient="{letter.recipient}" nature={letter.letter_nature.value}')
        if letter.is_invitation:
            typer.echo(
                f'event_time={letter.event_time or "-"} event_location="{letter.event_location or "-"}"'
            )
        if kind == LetterKind.INCOMING and letter.needs_follow_up:
            deadline = letter.follow_up_deadline.isoformat() if letter.follow_up_deadline else "-"
            typer.echo(f"follow_up_deadline={deadline} overdue_notified_at={letter.overdue_notified_at or '-'}")


@app.callback()
def root() -> None:
    """Arsana letter tracking CLI entrypoint."""


@app.command()
def init() -> None:
    """Initialize DB, run migrations, and seed defaults."""
    db_path = initialize_database()
    print(f"[green]Initialized database:[/green] {db_path}")


# --- Config commands ---


@config_app.command("show")
def config_show() -> None:
    """Print all settings as key=value, sorted by key."""
    with Session(get_engine(ensure_directory=True)) as session:
        settings = list_settings(session)

    for setting in settings:
        typer.echo(f"{setting.key}={setting.value}")


@config_app.command("set")
def config_set(key: str, value: str) -> None:
    """Validate and upsert a setting."""
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            setting = upsert_setting(session, key=key, value=value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc

    typer.echo(f"{setting.key}={setting.value}")


# --- Incoming letter commands ---


@incoming_app.command("add")
def incoming_add(
    number: str = typer.Option(..., "--number", help="Letter number (unique)."),
    received: str = typer.Option(..., "--received", help="Received date YYYY-MM-DD."),
    subject: str = typer.Option(..., "--subject", help="Letter subject."),
    sender: str = typer.Option(..., "--sender", help="Sender."),
    recipient: str = typer.Option(..., "--recipient", help="Recipient."),
    user: str = typer.Option(..., "--user", help="Owner user id."),
    letter_date: str | None = typer.Option(None, "--letter-date", help="Letter date YYYY-MM-DD."),
    nature: str | None = typer.Option(None, "--nature", help="BIASA, TERBATAS, RAHASIA, SANGAT_RAHASIA, PENTING."),
    processor: str | None = typer.Option(None, "--processor", help="Processor."),
    note: str | None = typer.Option(None, "--note", help="Free-form note."),
    disposition: str | None = typer.Option(None, "--disposition", help="Disposition target."),
    invitation: bool = typer.Option(False, "--invitation/--no-invitation", help="Letter is an invitation."),
    event_date: str | None = typer.Option(None, "--event-date", help="Event date YYYY-MM-DD."),
    event_time: str | None = typer.Option(None, "--event-time", help="Event time HH:MM."),
    event_location: str | None = typer.Option(None, "--event-location", help="Event location."),
    event_notes: str | None = typer.Option(None, "--event-notes", help="Event notes."),
    follow_up: str | None = typer.Option(None, "--follow-up", help="Follow-up deadline YYYY-MM-DD."),
) -> None:
    """Record an incoming letter; invitations get a calendar event and reminders."""
    data: dict[str, object] = {
        "letter_number": number,
        "received_date": _parse_date(received, "received"),
        "subject": subject,
        "sender": sender,
        "recipient": recipient,
        "letter_date": _parse_optional_date(letter_date, "letter-date"),
        "processor": processor,
        "note": note,
        "disposition_target": disposition,
        "needs_follow_up": follow_up is not None,
        "follow_up_deadline": _parse_optional_date(follow_up, "follow-up"),
    }
    if nature is not None:
        data["letter_nature"] = nature
    data.update(
        _event_fields(
            invitation=invitation,
            event_date=event_date,
            clear_event_date=False,
            event_time=event_time,
            event_location=event_location,
            event_notes=event_notes,
        )
    )
    _create(LetterKind.INCOMING, data, user)


@incoming_app.command("update")
def incoming_update(
    letter_id: int = typer.Argument(..., help="Incoming letter id."),
    number: str | None = typer.Option(None, "--number", help="Letter number."),
    received: str | None = typer.Option(None, "--received", help="Received date YYYY-MM-DD."),
    subject: str | None = typer.Option(None, "--subject", help="Letter subject."),
    sender: str | None = typer.Option(None, "--sender", help="Sender."),
    recipient: str | None = typer.Option(None, "--recipient", help="Recipient."),
    note: str | None = typer.Option(None, "--note", help="Free-form note."),
    disposition: str | None = typer.Option(None, "--disposition", help="Disposition target."),
    invitation: bool | None = typer.Option(None, "--invitation/--no-invitation", help="Invitation flag."),
    event_date: str | None = typer.Option(None, "--event-date", help="Event date YYYY-MM-DD."),
    clear_event_date: bool = typer.Option(False, "--clear-event-date", help="Remove the event date."),
    event_time: str | None = typer.Option(None, "--event-time", help="Event time HH:MM."),
    event_location: str | None = typer.Option(None, "--event-location", help="Event location."),
    event_notes: str | None = typer.Option(None, "--event-notes", help="Event notes."),
    follow_up: str | None = typer.Option(None, "--follow-up", help="Follow-up deadline YYYY-MM-DD."),
    no_follow_up: bool = typer.Option(False, "--no-follow-up", help="Clear the follow-up requirement."),
) -> None:
    """Update an incoming letter; fields not given keep their stored value."""
    if follow_up is not None and no_follow_up:
        raise typer.BadParameter("Use either --follow-up or --no-follow-up, not both.")

    patch: dict[str, object] = {}
    for key, value in (
        ("letter_number", number),
        ("subject", subject),
        ("sender", sender),
        ("recipient", recipient),
        ("note", note),
        ("disposition_target", disposition),
    ):
        if value is not None:
            patch[key] = value
    if received is not None:
        patch["received_date"] = _parse_date(received, "received")
    if follow_up is not None:
        patch["needs_follow_up"] = True
        patch["follow_up_deadline"] = _parse_date(follow_up, "follow-up")
    if no_follow_up:
        patch["needs_follow_up"] = False
        patch["follow_up_deadline"] = None
    patch.update(
        _event_fields(
            invitation=invitation,
            event_date=event_date,
            clear_event_date=clear_event_date,
            event_time=event_time,
            event_location=event_location,
            event_notes=event_notes,
        )
    )
    _update(LetterKind.INCOMING, letter_id, patch)


@incoming_app.command("delete")
def incoming_delete(letter_id: int = typer.Argument(..., help="Incoming letter id.")) -> None:
    """Delete an incoming letter with its calendar event and reminders."""
    _delete(LetterKind.INCOMING, letter_id)


@incoming_app.command("list")
def incoming_list(
    search: str | None = typer.Option(
        None, "--search", help="Match number, subject, sender, recipient or processor."
    ),
    invitations: bool = typer.Option(False, "--invitations", help="Only invitation letters."),
    nature: str | None = typer.Option(None, "--nature", help="BIASA, TERBATAS, RAHASIA, SANGAT_RAHASIA, PENTING."),
    disposition: str | None = typer.Option(None, "--disposition", help="Disposition target."),
    follow_up: bool | None = typer.Option(
        None, "--follow-up/--no-follow-up", help="Only letters that do (or do not) need follow-up."
    ),
    start: str | None = typer.Option(None, "--start", help="Received on or after YYYY-MM-DD."),
    end: str | None = typer.Option(None, "--end", help="Received on or before YYYY-MM-DD."),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum rows."),
) -> None:
    """List incoming letters, newest first."""
    _list(
        LetterKind.INCOMING,
        limit=limit,
        start=start,
        end=end,
        search=search,
        invitations_only=invitations,
        nature=nature,
        disposition_target=disposition,
        needs_follow_up=follow_up,
    )


@incoming_app.command("show")
def incoming_show(letter_id: int = typer.Argument(..., help="Incoming letter id.")) -> None:
    """Show one incoming letter."""
    _show(LetterKind.INCOMING, letter_id)


# --- Outgoing letter commands ---


@outgoing_app.command("add")
def outgoing_add(
    number: str = typer.Option(..., "--number", help="Letter number (unique)."),
    letter_date: str = typer.Option(..., "--letter-date", help="Letter date YYYY-MM-DD."),
    created: str = typer.Option(..., "--created", help="Created date YYYY-MM-DD."),
    subject: str = typer.Option(..., "--subject", help="Letter subject."),
    sender: str = typer.Option(..., "--sender", help="Sender."),
    recipient: str = typer.Option(..., "--recipient", help="Recipient."),
    user: str = typer.Option(..., "--user", help="Owner user id."),
    nature: str | None = typer.Option(None, "--nature", help="BIASA, TERBATAS, RAHASIA, SANGAT_RAHASIA, PENTING."),
    processor: str | None = typer.Option(None, "--processor", help="Processor."),
    note: str | None = typer.Option(None, "--note", help="Free-form note."),
    execution: str | None = typer.Option(None, "--execution-date", help="Execution date YYYY-MM-DD."),
    invitation: bool = typer.Option(False, "--invitation/--no-invitation", help="Letter is an invitation."),
    event_date: str | None = typer.Option(None, "--event-date", help="Event date YYYY-MM-DD."),
    event_time: str | None = typer.Option(None, "--event-time", help="Event time HH:MM."),
    event_location: str | None = typer.Option(None, "--event-location", help="Event location."),
    event_notes: str | None = typer.Option(None, "--event-notes", help="Event notes."),
) -> None:
    """Record an outgoing letter; invitations get a calendar event and reminders."""
    data: dict[str, object] = {
        "letter_number": number,
        "letter_date": _parse_date(letter_date, "letter-date"),
        "created_date": _parse_date(created, "created"),
        "subject": subject,
        "sender": sender,
        "recipient": recipient,
        "processor": processor,
        "note": note,
        "execution_date": _parse_optional_date(execution, "execution-date"),
    }
    if nature is not None:
        data["letter_nature"] = nature
    data.update(
        _event_fields(
            invitation=invitation,
            event_date=event_date,
            clear_event_date=False,
            event_time=event_time,
            event_location=event_location,
            event_notes=event_notes,
        )
    )
    _create(LetterKind.OUTGOING, data, user)


@outgoing_app.command("update")
def outgoing_update(
    letter_id: int = typer.Argument(..., help="Outgoing letter id."),
    number: str | None = typer.Option(None, "--number", help="Letter number."),
    subject: str | None = typer.Option(None, "--subject", help="Letter subject."),
    sender: str | None = typer.Option(None, "--sender", help="Sender."),
    recipient: str | None = typer.Option(None, "--recipient", help="Recipient."),
    note: str | None = typer.Option(None, "--note", help="Free-form note."),
    invitation: bool | None = typer.Option(None, "--invitation/--no-invitation", help="Invitation flag."),
    event_date: str | None = typer.Option(None, "--event-date", help="Event date YYYY-MM-DD."),
    clear_event_date: bool = typer.Option(False, "--clear-event-date", help="Remove the event date."),
    event_time: str | None = typer.Option(None, "--event-time", help="Event time HH:MM."),
    event_location: str | None = typer.Option(None, "--event-location", help="Event location."),
    event_notes: str | None = typer.Option(None, "--event-notes", help="Event notes."),
) -> None:
    """Update an outgoing letter; fields not given keep their stored value."""
    patch: dict[str, object] = {}
    for key, value in (
        ("letter_number", number),
        ("subject", subject),
        ("sender", sender),
        ("recipient", recipient),
        ("note", note),
    ):
        if value is not None:
            patch[key] = value
    patch.update(
        _event_fields(
            invitation=invitation,
            event_date=event_date,
            clear_event_date=clear_event_date,
            event_time=event_time,
            event_location=event_location,
            event_notes=event_notes,
        )
    )
    _update(LetterKind.OUTGOING, letter_id, patch)


@outgoing_app.command("delete")
def outgoing_delete(letter_id: int = typer.Argument(..., help="Outgoing letter id.")) -> None:
    """Delete an outgoing letter with its calendar event and reminders."""
    _delete(LetterKind.OUTGOING, letter_id)


@outgoing_app.command("list")
def outgoing_list(
    search: str | None = typer.Option(
        None, "--search", help="Match number, subject, sender, recipient or processor."
    ),
    invitations: bool = typer.Option(False, "--invitations", help="Only invitation letters."),
    nature: str | None = typer.Option(None, "--nature", help="BIASA, TERBATAS, RAHASIA, SANGAT_RAHASIA, PENTING."),
    start: str | None = typer.Option(None, "--start", help="Letter date on or after YYYY-MM-DD."),
    end: str | None = typer.Option(None, "--end", help="Letter date on or before YYYY-MM-DD."),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum rows."),
) -> None:
    """List outgoing letters, newest first."""
    _list(
        LetterKind.OUTGOING,
        limit=limit,
        start=start,
        end=end,
        search=search,
        invitations_only=invitations,
        nature=nature,
    )


@outgoing_app.command("show")
def outgoing_show(letter_id: int = typer.Argument(..., help="Outgoing letter id.")) -> None:
    """Show one outgoing letter."""
    _show(LetterKind.OUTGOING, letter_id)


# --- Calendar commands ---


@calendar_app.command("list")
def calendar_list(
    start: str | None = typer.Option(None, "--start", help="From date YYYY-MM-DD (inclusive)."),
    end: str | None = typer.Option(None, "--end", help="To date YYYY-MM-DD (inclusive)."),
    event_type: str | None = typer.Option(None, "--type", help="MEETING, APPOINTMENT, DEADLINE, OTHER."),
) -> None:
    """List calendar events ordered by date."""
    start_date = _parse_optional_date(start, "start")
    end_date = _parse_optional_date(end, "end")
    parsed_type = _parse_event_type(event_type) if event_type else None

    with Session(get_engine(ensure_directory=True)) as session:
        events = list_events(session, start=start_date, end=end_date, event_type=parsed_type)
        if not events:
            typer.echo("No events.")
            return
        for event in events:
            typer.echo(_format_event(event))


@calendar_app.command("upcoming")
def calendar_upcoming(
    limit: int | None = typer.Option(None, "--limit", min=1, help="Maximum events (default: upcoming_limit setting)."),
) -> None:
    """List events from today onwards."""
    with Session(get_engine(ensure_directory=True)) as session:
        resolved_limit = limit if limit is not None else get_int_setting(session, "upcoming_limit")
        events = upcoming_events(session, today=_today(session), limit=resolved_limit)
        if not events:
            typer.echo("No upcoming events.")
            return
        for event in events:
            typer.echo(_format_event(event))


@calendar_app.command("add")
def calendar_add(
    title: str = typer.Option(..., "--title", help="Event title."),
    date_value: str = typer.Option(..., "--date", help="Event date YYYY-MM-DD."),
    user: str = typer.Option(..., "--user", help="Owner user id."),
    event_type: str = typer.Option("OTHER", "--type", help="MEETING, APPOINTMENT, DEADLINE, OTHER."),
    time_value: str | None = typer.Option(None, "--time", help="Event time HH:MM."),
    location: str | None = typer.Option(None, "--location", help="Event location."),
    description: str | None = typer.Option(None, "--description", help="Event description."),
) -> None:
    """Add a manual calendar event (not linked to a letter)."""
    event_date = _parse_date(date_value, "date")
    parsed_type = _parse_event_type(event_type)

    with Session(get_engine(ensure_directory=True)) as session:
        try:
            event = create_event(
                session,
                title=title,
                event_date=event_date,
                user_id=user,
                event_type=parsed_type,
                description=description,
                time=_check_time(time_value, "time"),
                location=location,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(_format_event(event))


@calendar_app.command("update")
def calendar_update(
    event_id: int = typer.Argument(..., help="Calendar event id."),
    title: str | None = typer.Option(None, "--title", help="New title."),
    date_value: str | None = typer.Option(None, "--date", help="New date YYYY-MM-DD."),
    event_type: str | None = typer.Option(None, "--type", help="MEETING, APPOINTMENT, DEADLINE, OTHER."),
    time_value: str | None = typer.Option(None, "--time", help="New time HH:MM."),
    location: str | None = typer.Option(None, "--location", help="New location."),
    description: str | None = typer.Option(None, "--description", help="New description."),
) -> None:
    """Edit a manual calendar event. Letter-derived events follow their letter."""
    patch: dict[str, object] = {}
    if title is not None:
        patch["title"] = title
    if date_value is not None:
        patch["date"] = _parse_date(date_value, "date")
    if event_type is not None:
        patch["type"] = _parse_event_type(event_type)
    if time_value is not None:
        patch["time"] = _check_time(time_value, "time")
    if location is not None:
        patch["location"] = location
    if description is not None:
        patch["description"] = description
    if not patch:
        raise typer.BadParameter("Nothing to update: provide at least one field option.")

    with Session(get_engine(ensure_directory=True)) as session:
        try:
            event = update_event(session, event_id, patch)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(_format_event(event))


@calendar_app.command("delete")
def calendar_delete(event_id: int = typer.Argument(..., help="Calendar event id.")) -> None:
    """Delete a manual calendar event and its notifications."""
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            cleared = delete_event(session, event_id)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    print(f"[green]Deleted calendar event {event_id}.[/green] notifications_cleared={cleared}")


# --- Notification commands ---


@notification_app.command("list")
def notification_list(
    user: str | None = typer.Option(None, "--user", help="Show this user's and broadcast notifications."),
    unread: bool = typer.Option(False, "--unread", help="Only unread notifications."),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum rows."),
) -> None:
    """List notifications, newest first (unread marked with *)."""
    with Session(get_engine(ensure_directory=True)) as session:
        rows = list_notifications(session, user_id=user, unread_only=unread, limit=limit)
        count = unread_count(session, user_id=user)
        if not rows:
            typer.echo("No notifications.")
        for row in rows:
            typer.echo(_format_notification(row))
    typer.echo(f"unread={count}")


@notification_app.command("read")
def notification_read(notification_id: int = typer.Argument(..., help="Notification id.")) -> None:
    """Mark one notification as read."""
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            row = mark_read(session, notification_id)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
        typer.echo(_format_notification(row))


@notification_app.command("read-all")
def notification_read_all(
    user: str | None = typer.Option(None, "--user", help="Limit to this user's and broadcast notifications."),
) -> None:
    """Mark all visible notifications as read."""
    with Session(get_engine(ensure_directory=True)) as session:
        count = mark_all_read(session, user_id=user)
    typer.echo(f"{count} notifications marked as read")


@notification_app.command("delete")
def notification_delete(notification_id: int = typer.Argument(..., help="Notification id.")) -> None:
    """Delete one notification."""
    with Session(get_engine(ensure_directory=True)) as session:
        try:
            delete_notification(session, notification_id)
        except _NOT_FOUND_ERRORS as exc:
            raise _not_found(exc) from exc
    typer.echo(f"Deleted notification {notification_id}")


@notification_app.command("purge-read")
def notification_purge_read(
    user: str | None = typer.Option(None, "--user", help="Limit to this user's and broadcast notifications."),
) -> None:
    """Delete all read notifications."""
    with Session(get_engine(ensure_directory=True)) as session:
        count = delete_all_read(session, user_id=user)
    typer.echo(f"{count} notifications deleted")


# --- Sweep and scheduler commands ---


@sweep_app.command("run")
def sweep_run(
    date_value: str | None = typer.Option(None, "--date", help="Run as if today were YYYY-MM-DD."),
) -> None:
    """Run the reminder and overdue follow-up sweep once, without the scheduler lease."""
    with Session(get_engine(ensure_directory=True)) as session:
        tz = get_timezone(session)
        now = datetime.now(tz)
        today = _parse_date(date_value, "date") if date_value else today_in(tz)
        result = run_daily_sweep(session, today=today, now=now)

    print(
        "[green]Sweep complete.[/green] "
        f"date={today.isoformat()} reminders_sent={result.reminders_sent} "
        f"overdue_sent={result.overdue_sent} failures={result.failures}"
    )
    if result.failures:
        raise typer.Exit(code=2)


@scheduler_app.command("run")
def scheduler_run(
    run_now: bool = typer.Option(False, "--run-now", help="Also run the sweep immediately on start."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """Run the daily sweep at the configured sweep_time until interrupted."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    engine = get_engine(ensure_directory=True)
    owner = default_owner()
    with Session(engine) as session:
        tz = get_timezone(session)
        at_time = get_sweep_time(session)

    scheduler = DailyScheduler(
        job=lambda: run_scheduled_sweep(engine, owner=owner),
        at_time=at_time,
        clock=lambda: datetime.now(tz),
    )
    print(f"[bold]Scheduler started[/bold] owner={owner} sweep_time={at_time.strftime('%H:%M')} ({tz.key})")
    if run_now:
        scheduler.run_once()

    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
        with Session(engine) as session:
            release_lease(session, name=SWEEP_LEASE_NAME, owner=owner)
    print("[yellow]Scheduler stopped.[/yellow]")


def main() -> None:
    app()
