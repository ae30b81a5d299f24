from __future__ import annotations

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from arsana.models import Notification, NotificationType
from arsana.notification_service import (
    NotificationNotFoundError,
    delete_all_read,
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def _seed(session: Session) -> dict[str, Notification]:
    rows = {
        "mine": Notification(title="mine", message="m", user_id="user-1", created_at="2026-03-02T01:00:00+00:00"),
        "theirs": Notification(title="theirs", message="m", user_id="user-2", created_at="2026-03-02T02:00:00+00:00"),
        "broadcast": Notification(
            title="broadcast",
            message="m",
            type=NotificationType.INFO,
            user_id=None,
            created_at="2026-03-02T03:00:00+00:00",
        ),
    }
    session.add_all(rows.values())
    session.commit()
    for row in rows.values():
        session.refresh(row)
    return rows


def test_list_includes_own_and_broadcast_newest_first(session: Session) -> None:
    _seed(session)

    assert [n.title for n in list_notifications(session, user_id="user-1")] == ["broadcast", "mine"]
    assert [n.title for n in list_notifications(session)] == ["broadcast", "theirs", "mine"]
    assert unread_count(session, user_id="user-2") == 2


def test_mark_read_and_unread_only(session: Session) -> None:
    rows = _seed(session)

    mark_read(session, rows["mine"].id)

    assert [n.title for n in list_notifications(session, user_id="user-1", unread_only=True)] == ["broadcast"]
    assert unread_count(session, user_id="user-1") == 1


def test_mark_all_read_scoped_to_user(session: Session) -> None:
    _seed(session)

    assert mark_all_read(session, user_id="user-1") == 2
    assert unread_count(session, user_id="user-2") == 1
    assert mark_all_read(session, user_id="user-1") == 0


def test_delete_all_read_keeps_unread(session: Session) -> None:
    rows = _seed(session)
    mark_read(session, rows["theirs"].id)

    assert delete_all_read(session) == 1
    assert [n.title for n in session.exec(select(Notification).order_by(Notification.id)).all()] == [
        "mine",
        "broadcast",
    ]


def test_missing_notification_raises(session: Session) -> None:
    rows = _seed(session)
    delete_notification(session, rows["mine"].id)

    with pytest.raises(NotificationNotFoundError):
        mark_read(session, 999)
    with pytest.raises(NotificationNotFoundError):
        delete_notification(session, rows["mine"].id)
