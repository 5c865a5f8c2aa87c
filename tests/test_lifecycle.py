"""Lifecycle engine: submission, transitions, history and notification side effects."""
import pytest
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import COMPLAINT_STATUSES, Complaint, ComplaintStatusHistory, Notification
from utils.errors import AuthenticationError, AuthorizationError, NotFoundError, StorageError, ValidationError
from utils.history_ledger import HistoryLedger
from utils.notification_sink import NotificationSink


def _history(complaint_id):
    return ComplaintStatusHistory.query.filter_by(complaint_id=complaint_id).all()


def _inbox(user_id, type_=None):
    query = Notification.query.filter_by(user_id=user_id)
    if type_:
        query = query.filter_by(type=type_)
    return query.all()


class TestSubmit:
    def test_submit_creates_pending_complaint_and_notifies_owner(self, services, citizen, principal_for):
        complaint = services.lifecycle.submit(
            principal_for(citizen), {"category": "Roads", "description": "Pothole"}
        )

        assert complaint.id is not None
        assert complaint.status == "Pending"
        assert complaint.user_id == citizen.id
        assert complaint.updated_at >= complaint.created_at
        inbox = _inbox(citizen.id, "complaint_submitted")
        assert len(inbox) == 1
        assert inbox[0].complaint_id == complaint.id
        assert inbox[0].is_read is False

    def test_submit_keeps_optional_location_fields(self, services, citizen, principal_for):
        complaint = services.lifecycle.submit(
            principal_for(citizen),
            {
                "category": "Streetlights",
                "description": "Lamp out on 5th street",
                "latitude": "12.97",
                "longitude": 77.59,
                "locationText": "  5th Street, Ward 12 ",
                "imagePath": "/uploads/abc.png",
            },
        )

        assert complaint.latitude == pytest.approx(12.97)
        assert complaint.longitude == pytest.approx(77.59)
        assert complaint.location_text == "5th Street, Ward 12"
        assert complaint.image_path == "/uploads/abc.png"

    @pytest.mark.parametrize(
        "payload",
        [
            {"description": "Pothole"},
            {"category": "Roads"},
            {"category": "   ", "description": "Pothole"},
            {"category": "Roads", "description": ""},
        ],
    )
    def test_submit_requires_category_and_description(self, services, citizen, principal_for, payload):
        with pytest.raises(ValidationError):
            services.lifecycle.submit(principal_for(citizen), payload)
        assert Complaint.query.count() == 0
        assert _inbox(citizen.id) == []

    @pytest.mark.parametrize("lat,lng", [(91, 0), (0, -181), ("north", 0), (True, 0)])
    def test_submit_rejects_bad_coordinates(self, services, citizen, principal_for, lat, lng):
        with pytest.raises(ValidationError):
            services.lifecycle.submit(
                principal_for(citizen),
                {"category": "Roads", "description": "Pothole", "latitude": lat, "longitude": lng},
            )

    def test_submit_requires_a_principal(self, services):
        with pytest.raises(AuthenticationError):
            services.lifecycle.submit(None, {"category": "Roads", "description": "Pothole"})


class TestTransition:
    @pytest.fixture()
    def complaint(self, services, citizen, principal_for):
        return services.lifecycle.submit(
            principal_for(citizen), {"category": "Roads", "description": "Pothole"}
        )

    def test_status_change_writes_one_history_entry_and_one_notification(
        self, services, complaint, admin, citizen, principal_for
    ):
        updated = services.lifecycle.transition(principal_for(admin), complaint.id, {"status": "Resolved"})

        assert updated.status == "Resolved"
        history = _history(complaint.id)
        assert len(history) == 1
        assert (history[0].old_status, history[0].new_status) == ("Pending", "Resolved")
        assert history[0].changed_by == admin.email
        changed = _inbox(citizen.id, "status_changed")
        assert len(changed) == 1
        assert "Resolved" in changed[0].message
        assert _inbox(admin.id) == []

    def test_unchanged_status_skips_history_and_notification_but_updates_fields(
        self, services, complaint, admin, citizen, principal_for
    ):
        before = complaint.updated_at
        updated = services.lifecycle.transition(
            principal_for(admin),
            complaint.id,
            {"status": "Pending", "assignedTo": "Ward 12 crew", "adminRemarks": "Crew scheduled"},
        )

        assert updated.status == "Pending"
        assert updated.assigned_to == "Ward 12 crew"
        assert updated.admin_remarks == "Crew scheduled"
        assert updated.updated_at >= before
        assert _history(complaint.id) == []
        assert _inbox(citizen.id, "status_changed") == []

    def test_omitted_fields_keep_their_values(self, services, complaint, admin, principal_for):
        admin_principal = principal_for(admin)
        services.lifecycle.transition(admin_principal, complaint.id, {"assignedTo": "Crew A", "adminRemarks": "Noted"})
        updated = services.lifecycle.transition(admin_principal, complaint.id, {"status": "In Progress"})

        assert updated.status == "In Progress"
        assert updated.assigned_to == "Crew A"
        assert updated.admin_remarks == "Noted"

    def test_empty_string_clears_assignment(self, services, complaint, admin, principal_for):
        admin_principal = principal_for(admin)
        services.lifecycle.transition(admin_principal, complaint.id, {"assignedTo": "Crew A"})
        updated = services.lifecycle.transition(admin_principal, complaint.id, {"assignedTo": ""})

        assert updated.assigned_to is None

    def test_resolved_complaint_can_be_reopened(self, services, complaint, admin, principal_for):
        admin_principal = principal_for(admin)
        services.lifecycle.transition(admin_principal, complaint.id, {"status": "Resolved"})
        reopened = services.lifecycle.transition(admin_principal, complaint.id, {"status": "Pending"})

        assert reopened.status == "Pending"
        assert [(h.old_status, h.new_status) for h in services.ledger.list_for(complaint.id)] == [
            ("Pending", "Resolved"),
            ("Resolved", "Pending"),
        ]

    def test_status_is_matched_case_insensitively(self, services, complaint, admin, principal_for):
        updated = services.lifecycle.transition(principal_for(admin), complaint.id, {"status": "in progress"})
        assert updated.status == "In Progress"

    @pytest.mark.parametrize("status", ["Closed", "", 3, "Resolved!"])
    def test_unknown_status_is_rejected_before_any_write(
        self, services, complaint, admin, citizen, principal_for, status
    ):
        with pytest.raises(ValidationError):
            services.lifecycle.transition(principal_for(admin), complaint.id, {"status": status})
        assert db.session.get(Complaint, complaint.id).status == "Pending"
        assert _history(complaint.id) == []

    def test_non_admin_is_refused(self, services, complaint, citizen, principal_for):
        with pytest.raises(AuthorizationError):
            services.lifecycle.transition(principal_for(citizen), complaint.id, {"status": "Resolved"})
        assert db.session.get(Complaint, complaint.id).status == "Pending"

    def test_missing_complaint(self, services, admin, principal_for):
        with pytest.raises(NotFoundError):
            services.lifecycle.transition(principal_for(admin), 9999, {"status": "Resolved"})

    def test_notification_failure_does_not_fail_transition(
        self, services, complaint, admin, citizen, principal_for, monkeypatch
    ):
        def broken_build(self, *args, **kwargs):
            raise SQLAlchemyError("inbox unavailable")

        monkeypatch.setattr(NotificationSink, "_build", broken_build)

        updated = services.lifecycle.transition(principal_for(admin), complaint.id, {"status": "In Progress"})

        assert updated.status == "In Progress"
        assert len(_history(complaint.id)) == 1
        assert _inbox(citizen.id, "status_changed") == []

    def test_failed_notification_insert_rolls_back_only_its_savepoint(
        self, services, complaint, admin, citizen, principal_for, monkeypatch
    ):
        def invalid_build(self, user_id, complaint_id, type_, message):
            return Notification(user_id=user_id, complaint_id=complaint_id, type=None, message=message)

        monkeypatch.setattr(NotificationSink, "_build", invalid_build)

        updated = services.lifecycle.transition(principal_for(admin), complaint.id, {"status": "Resolved"})

        assert updated.status == "Resolved"
        assert len(_history(complaint.id)) == 1
        assert _inbox(citizen.id, "status_changed") == []

    def test_history_failure_rolls_back_the_status_change(
        self, services, complaint, admin, citizen, principal_for, monkeypatch
    ):
        def broken_append(self, *args, **kwargs):
            raise SQLAlchemyError("history unavailable")

        monkeypatch.setattr(HistoryLedger, "append", broken_append)

        with pytest.raises(StorageError):
            services.lifecycle.transition(principal_for(admin), complaint.id, {"status": "Resolved"})

        assert db.session.get(Complaint, complaint.id).status == "Pending"
        assert _history(complaint.id) == []
        assert _inbox(citizen.id, "status_changed") == []

    def test_owner_cannot_be_reassigned(self, services, complaint, admin, citizen, other_citizen, principal_for):
        updated = services.lifecycle.transition(
            principal_for(admin),
            complaint.id,
            {"status": "In Progress", "userId": other_citizen.id, "user_id": other_citizen.id},
        )

        assert updated.status == "In Progress"
        assert updated.user_id == citizen.id

    def test_status_stays_in_allowed_set_across_transitions(self, services, complaint, admin, principal_for):
        admin_principal = principal_for(admin)
        for status in ["In Progress", "Resolved", "Pending", "bogus", "Resolved", "In Progress"]:
            try:
                services.lifecycle.transition(admin_principal, complaint.id, {"status": status})
            except ValidationError:
                pass
            assert db.session.get(Complaint, complaint.id).status in COMPLAINT_STATUSES
