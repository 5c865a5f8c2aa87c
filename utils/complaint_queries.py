"""Role-scoped complaint reads and statistical rollups."""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from models import RESOLVED_STATUS, Complaint, ComplaintStatusHistory
from utils.complaint_store import ComplaintStore
from utils.decorators import require_role
from utils.errors import AuthenticationError, NotFoundError, ValidationError
from utils.history_ledger import HistoryLedger
from utils.lifecycle import normalize_status
from utils.security import clean_text


def month_key(value: datetime) -> str:
    return value.strftime("%Y-%m")


def _by_month(values: Iterable[datetime]) -> List[Dict]:
    counts = Counter(month_key(v) for v in values)
    return [{"month": month, "count": counts[month]} for month in sorted(counts)]


def _rows(label: str, pairs: Iterable[tuple]) -> List[Dict]:
    return [{label: key, "count": int(count)} for key, count in pairs]


class ComplaintQueries:
    def __init__(self, store: ComplaintStore, ledger: HistoryLedger, recent_resolved_limit: int = 12) -> None:
        self.store = store
        self.ledger = ledger
        self.recent_resolved_limit = recent_resolved_limit

    @staticmethod
    def _owner_scope(principal) -> Optional[int]:
        if principal is None:
            raise AuthenticationError()
        return None if principal.is_admin else principal.id

    def list(self, principal, filters: Optional[Mapping] = None) -> List[Complaint]:
        filters = filters or {}
        status = filters.get("status")
        status = normalize_status(status) if status else None
        try:
            category = clean_text(filters.get("category"), max_length=100)
        except ValueError as exc:
            raise ValidationError(f"category: {exc}") from None
        return self.store.filtered(
            user_id=self._owner_scope(principal),
            status=status,
            category=category,
            with_owner=principal.is_admin,
        ).all()

    def get_one(self, principal, complaint_id: int) -> Complaint:
        owner_scope = self._owner_scope(principal)
        complaint = self.store.get(complaint_id, with_owner=principal.is_admin)
        # Missing and not-owned are reported the same way.
        if complaint is None or (owner_scope is not None and complaint.user_id != owner_scope):
            raise NotFoundError("Complaint not found")
        return complaint

    def history(self, principal, complaint_id: int) -> List[ComplaintStatusHistory]:
        complaint = self.get_one(principal, complaint_id)
        return self.ledger.list_for(complaint.id)

    def stats(self, principal) -> Dict[str, List[Dict]]:
        require_role(principal, "admin")
        return {
            "byStatus": _rows("status", self.store.count_by(Complaint.status)),
            "byCategory": _rows("category", self.store.count_by(Complaint.category)),
            "byMonth": _by_month(self.store.timestamps(Complaint.created_at)),
        }

    def public_overview(self) -> Dict[str, List[Dict]]:
        resolved = Complaint.status == RESOLVED_STATUS
        recent = self.store.latest(Complaint.updated_at, self.recent_resolved_limit, resolved)
        return {
            "byStatus": _rows("status", self.store.count_by(Complaint.status)),
            "byMonthTotal": _by_month(self.store.timestamps(Complaint.created_at)),
            "byMonthResolved": _by_month(self.store.timestamps(Complaint.updated_at, resolved)),
            "recentResolved": [c.public_payload() for c in recent],
        }
