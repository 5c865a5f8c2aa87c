"""Complaint data access and the shared unit-of-work boundary."""
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from models import Complaint
from utils.errors import StorageError


@contextmanager
def unit_of_work(session, action: str) -> Iterator:
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.exception("Database error during %s", action)
        raise StorageError() from exc
    except Exception:
        session.rollback()
        raise


class ComplaintStore:
    """Complaint persistence. Policy and scoping live in the callers."""

    def __init__(self, session) -> None:
        self.session = session

    def unit_of_work(self, action: str):
        return unit_of_work(self.session, action)

    def add(self, complaint: Complaint) -> Complaint:
        self.session.add(complaint)
        self.session.flush()
        return complaint

    def flush(self) -> None:
        self.session.flush()

    def refresh(self, complaint: Complaint) -> Complaint:
        self.session.refresh(complaint)
        return complaint

    def get(self, complaint_id: int, with_owner: bool = False) -> Optional[Complaint]:
        query = self.session.query(Complaint)
        if with_owner:
            query = query.options(joinedload(Complaint.owner))
        return query.filter(Complaint.id == complaint_id).first()

    def filtered(
        self,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        with_owner: bool = False,
    ):
        query = self.session.query(Complaint)
        if with_owner:
            query = query.options(joinedload(Complaint.owner))
        if user_id is not None:
            query = query.filter(Complaint.user_id == user_id)
        if status:
            query = query.filter(Complaint.status == status)
        if category:
            query = query.filter(Complaint.category == category)
        return query.order_by(Complaint.created_at.desc(), Complaint.id.desc())

    def count_by(self, column, *criteria) -> List[tuple]:
        query = self.session.query(column, func.count(Complaint.id))
        if criteria:
            query = query.filter(*criteria)
        return query.group_by(column).order_by(column).all()

    def timestamps(self, column, *criteria) -> List[datetime]:
        query = self.session.query(column)
        if criteria:
            query = query.filter(*criteria)
        return [row[0] for row in query.all() if row[0] is not None]

    def latest(self, order_column, limit: int, *criteria) -> List[Complaint]:
        query = self.session.query(Complaint)
        if criteria:
            query = query.filter(*criteria)
        return query.order_by(order_column.desc(), Complaint.id.desc()).limit(limit).all()
