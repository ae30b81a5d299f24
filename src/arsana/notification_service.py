from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlmodel import Session, func, select

from arsana.models import Notification

logger = logging.getLogger(__name__)


class NotificationNotFoundError(ValueError):
    """Raised when a notification referenced by id does not exist."""


def _visible_to(user_id: str | None):
    # Broadcast rows (user_id IS NULL) are visible to everyone.
    if user_id is None:
        return sa.true()
    return sa.or_(Notification.user_id == user_id, Notification.user_id.is_(None))  # type: ignore[union-attr]


def list_notifications(
    session: Session,
    *,
    user_id: str | None = None,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    statement = select(Notification).where(_visible_to(user_id))
    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712
    statement = statement.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return session.exec(statement).all()


def unread_count(session: Session, *, user_id: str | None = None) -> int:
    return session.exec(
        select(func.count())
        .select_from(Notification)
        .where(_visible_to(user_id))
        .where(Notification.is_read == False)  # noqa: E712
    ).one()


def get_notification(session: Session, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None:
        raise NotificationNotFoundError(f"Notification {notification_id} not found.")
    return notification


def mark_read(session: Session, notification_id: int) -> Notification:
    notification = get_notification(session, notification_id)
    notification.is_read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def mark_all_read(session: Session, *, user_id: str | None = None) -> int:
    rows = session.exec(
        select(Notification)
        .where(_visible_to(user_id))
        .where(Notification.is_read == False)  # noqa: E712
    ).all()
    for row in rows:
        row.is_read = True
        session.add(row)
    session.commit()
    logger.info("notifications_marked_read user_id=%s count=%s", user_id or "-", len(rows))
    return len(rows)


def delete_notification(session: Session, notification_id: int) -> None:
    notification = get_notification(session, notification_id)
    session.delete(notification)
    session.commit()


def delete_all_read(session: Session, *, user_id: str | None = None) -> int:
    rows = session.exec(
        select(Notification)
        .where(_visible_to(user_id))
        .where(Notification.is_read == True)  # noqa: E712
    ).all()
    for row in rows:
        session.delete(row)
    session.commit()
    logger.info("notifications_read_deleted user_id=%s count=%s", user_id or "-", len(rows))
    return len(rows)
