"""Per-user inbox of complaint lifecycle events.

Emitting is best-effort: the insert runs inside a SAVEPOINT so a failure
rolls back only the notification, is logged, and leaves the caller's
transaction intact.
"""
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import Notification
from utils.complaint_store import unit_of_work


class NotificationSink:
    def __init__(self, session) -> None:
        self.session = session

    def _build(self, user_id: int, complaint_id: Optional[int], type_: str, message: str) -> Notification:
        return Notification(
            user_id=user_id,
            complaint_id=complaint_id,
            type=type_,
            message=message[:500],
            is_read=False,
        )

    def emit(
        self,
        user_id: int,
        complaint_id: Optional[int],
        type_: str,
        message: str,
    ) -> Optional[Notification]:
        try:
            with self.session.begin_nested():
                notification = self._build(user_id, complaint_id, type_, message)
                self.session.add(notification)
        except SQLAlchemyError:
            current_app.logger.warning(
                "Notification emit failed",
                exc_info=True,
                extra={"user_id": user_id, "complaint_id": complaint_id, "type": type_},
            )
            return None
        return notification

    def list_for(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        query = self.session.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def unread_count(self, user_id: int) -> int:
        return (
            self.session.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_read(self, user_id: int, notification_id: int) -> int:
        """Mark one of the user's notifications read; returns rows affected (0 if not theirs)."""
        with unit_of_work(self.session, "mark_read"):
            affected = (
                self.session.query(Notification)
                .filter(Notification.id == notification_id, Notification.user_id == user_id)
                .update({Notification.is_read: True}, synchronize_session=False)
            )
        return affected
