"""Notification inbox ordering, ownership, and read-marking."""
from datetime import datetime

from extensions import db
from models import Notification


def _notify(user, message, created_at):
    notification = Notification(user_id=user.id, type="status_changed", message=message, created_at=created_at)
    db.session.add(notification)
    db.session.commit()
    return notification


def test_inbox_is_newest_first(services, citizen):
    _notify(citizen, "first", datetime(2026, 1, 1))
    _notify(citizen, "third", datetime(2026, 3, 1))
    _notify(citizen, "second", datetime(2026, 2, 1))

    assert [n.message for n in services.notifications.list_for(citizen.id)] == ["third", "second", "first"]


def test_mark_read_is_idempotent(services, citizen):
    notification = _notify(citizen, "hello", datetime(2026, 1, 1))

    assert services.notifications.mark_read(citizen.id, notification.id) == 1
    assert services.notifications.mark_read(citizen.id, notification.id) == 1
    assert db.session.get(Notification, notification.id).is_read is True
    assert services.notifications.unread_count(citizen.id) == 0


def test_mark_read_on_someone_elses_notification_is_a_no_op(services, citizen, other_citizen):
    notification = _notify(citizen, "private", datetime(2026, 1, 1))

    assert services.notifications.mark_read(other_citizen.id, notification.id) == 0
    assert services.notifications.mark_read(other_citizen.id, 987654) == 0
    assert db.session.get(Notification, notification.id).is_read is False


def test_unread_only_listing(services, citizen):
    seen = _notify(citizen, "seen", datetime(2026, 1, 1))
    _notify(citizen, "fresh", datetime(2026, 1, 2))
    services.notifications.mark_read(citizen.id, seen.id)

    assert [n.message for n in services.notifications.list_for(citizen.id, unread_only=True)] == ["fresh"]

