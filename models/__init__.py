"""Core data models for accounts, complaints, status history, and notifications."""
from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def utcnow() -> datetime:
	"""Naive UTC timestamp, matching how the columns are stored."""
	return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | None) -> str | None:
	return value.isoformat() if value else None


USER_ROLES: tuple[str, ...] = (
	"user",
	"admin",
)

COMPLAINT_STATUSES: tuple[str, ...] = (
	"Pending",
	"In Progress",
	"Resolved",
)

DEFAULT_COMPLAINT_STATUS = "Pending"
RESOLVED_STATUS = "Resolved"

NOTIFICATION_SUBMITTED = "complaint_submitted"
NOTIFICATION_STATUS_CHANGED = "status_changed"


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.Integer, primary_key=True)
	name = db.Column(db.String(150), nullable=False)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	role = db.Column(db.String(20), nullable=False, default="user", index=True)
	created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint("role IN ('user','admin')", name="ck_user_role_valid"),
	)

	complaints = db.relationship("Complaint", back_populates="owner", lazy="dynamic")
	notifications = db.relationship("Notification", back_populates="recipient", lazy="dynamic")

	def set_password(self, password: str) -> None:
		self.password_hash = generate_password_hash(
			password, method=current_app.config.get("PASSWORD_HASH_METHOD", "pbkdf2:sha256"), salt_length=16
		)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	@property
	def is_admin(self) -> bool:
		return self.role == "admin"

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": self.role,
			"createdAt": isoformat(self.created_at),
		}


class Complaint(db.Model):
	__tablename__ = "complaints"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
	category = db.Column(db.String(100), nullable=False, index=True)
	description = db.Column(db.Text, nullable=False)
	image_path = db.Column(db.String(500), nullable=True)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)
	location_text = db.Column(db.String(255), nullable=True)
	status = db.Column(db.String(20), nullable=False, default=DEFAULT_COMPLAINT_STATUS, index=True)
	assigned_to = db.Column(db.String(150), nullable=True)
	admin_remarks = db.Column(db.Text, nullable=True)
	created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
	updated_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(
			"status IN ('Pending','In Progress','Resolved')",
			name="ck_complaint_status_valid",
		),
		db.Index("ix_complaints_user_status", "user_id", "status"),
	)

	owner = db.relationship("User", back_populates="complaints")
	status_history = db.relationship(
		"ComplaintStatusHistory",
		back_populates="complaint",
		order_by="ComplaintStatusHistory.changed_at",
	)

	def to_dict(self, include_owner: bool = False) -> dict:
		payload = {
			"id": self.id,
			"userId": self.user_id,
			"category": self.category,
			"description": self.description,
			"imagePath": self.image_path,
			"latitude": self.latitude,
			"longitude": self.longitude,
			"locationText": self.location_text,
			"status": self.status,
			"assignedTo": self.assigned_to,
			"adminRemarks": self.admin_remarks,
			"createdAt": isoformat(self.created_at),
			"updatedAt": isoformat(self.updated_at),
		}
		if include_owner:
			payload["ownerName"] = self.owner.name if self.owner else None
			payload["ownerEmail"] = self.owner.email if self.owner else None
		return payload

	def public_payload(self) -> dict:
		"""Resolved-complaint view safe for unauthenticated readers."""
		return {
			"id": self.id,
			"category": self.category,
			"description": self.description,
			"locationText": self.location_text,
			"imagePath": self.image_path,
			"latitude": self.latitude,
			"longitude": self.longitude,
			"resolvedAt": isoformat(self.updated_at),
		}


class ComplaintStatusHistory(db.Model):
	__tablename__ = "complaint_status_history"

	id = db.Column(db.Integer, primary_key=True)
	complaint_id = db.Column(db.Integer, db.ForeignKey("complaints.id"), nullable=False, index=True)
	old_status = db.Column(db.String(20), nullable=True)
	new_status = db.Column(db.String(20), nullable=False, index=True)
	changed_by = db.Column(db.String(255), nullable=True)
	changed_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(
			"new_status IN ('Pending','In Progress','Resolved')",
			name="ck_complaint_status_history_valid",
		),
	)

	complaint = db.relationship("Complaint", back_populates="status_history")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"complaintId": self.complaint_id,
			"oldStatus": self.old_status,
			"newStatus": self.new_status,
			"changedBy": self.changed_by,
			"changedAt": isoformat(self.changed_at),
		}


class Notification(db.Model):
	__tablename__ = "notifications"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
	complaint_id = db.Column(db.Integer, db.ForeignKey("complaints.id"), nullable=True, index=True)
	type = db.Column(db.String(50), nullable=False, index=True)
	message = db.Column(db.String(500), nullable=False)
	is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
	created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.Index("ix_notifications_user_read", "user_id", "is_read"),
	)

	recipient = db.relationship("User", back_populates="notifications")
	complaint = db.relationship("Complaint")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"userId": self.user_id,
			"complaintId": self.complaint_id,
			"type": self.type,
			"message": self.message,
			"isRead": bool(self.is_read),
			"createdAt": isoformat(self.created_at),
		}
