"""Complaint lifecycle engine: the only writer of complaint status.

Every write runs as one unit of work in the order complaint row, status
history, notification. History shares the transaction with the complaint
update; notifications are best-effort (see NotificationSink).
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from flask import current_app

from models import (
    COMPLAINT_STATUSES,
    DEFAULT_COMPLAINT_STATUS,
    NOTIFICATION_STATUS_CHANGED,
    NOTIFICATION_SUBMITTED,
    Complaint,
    utcnow,
)
from utils.complaint_store import ComplaintStore
from utils.decorators import require_role
from utils.errors import AuthenticationError, NotFoundError, ValidationError
from utils.history_ledger import HistoryLedger
from utils.notification_sink import NotificationSink
from utils.security import clean_text

MAX_CATEGORY_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 5000
MAX_LOCATION_LENGTH = 255
MAX_ASSIGNEE_LENGTH = 150
MAX_REMARKS_LENGTH = 2000

# Accepted request keys mapped onto column names.
TRANSITION_FIELDS = {
    "status": "status",
    "assignedTo": "assigned_to",
    "assigned_to": "assigned_to",
    "adminRemarks": "admin_remarks",
    "admin_remarks": "admin_remarks",
}


def normalize_status(value: Any) -> str:
    """Map a requested status onto its canonical spelling, case-insensitively."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Status must be one of: " + ", ".join(COMPLAINT_STATUSES))
    wanted = " ".join(value.split()).lower()
    for status in COMPLAINT_STATUSES:
        if status.lower() == wanted:
            return status
    raise ValidationError("Status must be one of: " + ", ".join(COMPLAINT_STATUSES))


def _coordinate(value: Any, name: str, bound: float) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number") from None
    if number != number or not -bound <= number <= bound:
        raise ValidationError(f"{name} must be between {-bound:g} and {bound:g}")
    return number


def _text(data: Mapping, key: str, max_length: int, required: bool = False) -> Optional[str]:
    try:
        value = clean_text(data.get(key), max_length=max_length)
    except ValueError as exc:
        raise ValidationError(f"{key}: {exc}") from None
    if required and not value:
        raise ValidationError(f"{key} is required")
    return value


def clean_submission(data: Mapping) -> Dict[str, Any]:
    """Validate citizen input and return column values for a new complaint."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be an object")
    return {
        "category": _text(data, "category", MAX_CATEGORY_LENGTH, required=True),
        "description": _text(data, "description", MAX_DESCRIPTION_LENGTH, required=True),
        "image_path": data.get("imagePath") or None,
        "latitude": _coordinate(data.get("latitude"), "latitude", 90),
        "longitude": _coordinate(data.get("longitude"), "longitude", 180),
        "location_text": _text(data, "locationText", MAX_LOCATION_LENGTH),
    }


def clean_transition(data: Mapping) -> Dict[str, Any]:
    """Return only the fields the caller supplied; null means "leave as is"."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be an object")
    changes: Dict[str, Any] = {}
    for key, column in TRANSITION_FIELDS.items():
        if key not in data or data[key] is None:
            continue
        if column == "status":
            changes["status"] = normalize_status(data[key])
        else:
            limit = MAX_ASSIGNEE_LENGTH if column == "assigned_to" else MAX_REMARKS_LENGTH
            try:
                changes[column] = clean_text(data[key], max_length=limit)
            except ValueError as exc:
                raise ValidationError(f"{key}: {exc}") from None
    return changes


def status_message(complaint: Complaint) -> str:
    return f'Your complaint #{complaint.id} ({complaint.category}) is now "{complaint.status}".'


class LifecycleEngine:
    def __init__(self, store: ComplaintStore, ledger: HistoryLedger, sink: NotificationSink) -> None:
        self.store = store
        self.ledger = ledger
        self.sink = sink

    def submit(self, principal, data: Mapping) -> Complaint:
        if principal is None:
            raise AuthenticationError()
        fields = clean_submission(data)
        with self.store.unit_of_work("submit"):
            complaint = self.store.add(
                Complaint(user_id=principal.id, status=DEFAULT_COMPLAINT_STATUS, **fields)
            )
            self.sink.emit(
                principal.id,
                complaint.id,
                NOTIFICATION_SUBMITTED,
                f"Your complaint #{complaint.id} ({complaint.category}) has been submitted.",
            )
        current_app.logger.info(
            "Complaint submitted",
            extra={"complaint_id": complaint.id, "user_id": principal.id, "category": complaint.category},
        )
        return complaint

    def transition(self, principal, complaint_id: int, data: Mapping) -> Complaint:
        require_role(principal, "admin")
        changes = clean_transition(data)

        with self.store.unit_of_work("transition"):
            complaint = self.store.get(complaint_id)
            if complaint is None:
                raise NotFoundError("Complaint not found")

            old_status = complaint.status
            new_status = changes.pop("status", old_status)
            status_changed = new_status != old_status
            touched = status_changed
            for column, value in changes.items():
                if getattr(complaint, column) != value:
                    setattr(complaint, column, value)
                    touched = True

            if touched:
                complaint.status = new_status
                complaint.updated_at = max(utcnow(), complaint.created_at)
                self.store.flush()

            if status_changed:
                self.ledger.append(complaint.id, old_status, new_status, principal.identity)
                self.sink.emit(
                    complaint.user_id, complaint.id, NOTIFICATION_STATUS_CHANGED, status_message(complaint)
                )

        current_app.logger.info(
            "Complaint transition applied" if touched else "Complaint transition was a no-op",
            extra={
                "complaint_id": complaint_id,
                "admin_id": principal.id,
                "old_status": old_status,
                "new_status": new_status,
                "status_changed": status_changed,
            },
        )
        return self.store.refresh(complaint)
