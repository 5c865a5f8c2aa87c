"""Append-only audit trail of complaint status changes."""
from typing import List, Optional

from flask import current_app

from models import ComplaintStatusHistory


class HistoryLedger:
    def __init__(self, session) -> None:
        self.session = session

    def append(
        self,
        complaint_id: int,
        old_status: Optional[str],
        new_status: str,
        changed_by: Optional[str],
    ) -> ComplaintStatusHistory:
        entry = ComplaintStatusHistory(
            complaint_id=complaint_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
        )
        self.session.add(entry)
        self.session.flush()
        current_app.logger.info(
            "Status history appended",
            extra={"complaint_id": complaint_id, "old_status": old_status, "new_status": new_status},
        )
        return entry

    def list_for(self, complaint_id: int) -> List[ComplaintStatusHistory]:
        return (
            self.session.query(ComplaintStatusHistory)
            .filter(ComplaintStatusHistory.complaint_id == complaint_id)
            .order_by(ComplaintStatusHistory.changed_at.asc(), ComplaintStatusHistory.id.asc())
            .all()
        )
