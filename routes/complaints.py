"""Complaint submission, role-scoped reads, and admin transitions."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from utils.decorators import roles_required
from utils.errors import NotFoundError, ValidationError
from utils.image_utils import discard_complaint_image, store_complaint_image
from utils.lifecycle import clean_submission
from utils.principal import Principal
from utils.services import get_services

complaints_bp = Blueprint("complaints", __name__, url_prefix="/api/complaints")


def _principal() -> Principal:
    return Principal.from_user(current_user)


def _parse_id(value, error_cls=NotFoundError) -> int:
    try:
        parsed = int(str(value))
    except (TypeError, ValueError):
        parsed = 0
    if parsed <= 0:
        raise error_cls("Invalid complaint id" if error_cls is ValidationError else "Complaint not found")
    return parsed


def _submission_payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        data = dict(data)
    else:
        data = request.form.to_dict()
    # Image references only ever come from the upload store.
    data.pop("imagePath", None)
    return data


@complaints_bp.route("", methods=["POST"])
@login_required
def submit_complaint():
    principal = _principal()
    payload = _submission_payload()
    clean_submission(payload)

    try:
        payload["imagePath"] = store_complaint_image(request.files.get("image"))
    except ValueError as exc:
        current_app.logger.warning("Complaint image rejected", extra={"error": str(exc)})
        raise ValidationError(str(exc)) from None

    try:
        complaint = get_services().lifecycle.submit(principal, payload)
    except Exception:
        discard_complaint_image(payload["imagePath"])
        raise
    return jsonify(complaint.to_dict()), 201


@complaints_bp.route("", methods=["GET"])
@login_required
def list_complaints():
    principal = _principal()
    filters = {
        "status": request.args.get("status") or None,
        "category": request.args.get("category") or None,
    }
    complaints = get_services().queries.list(principal, filters)
    return jsonify([c.to_dict(include_owner=principal.is_admin) for c in complaints])


@complaints_bp.route("/<complaint_id>", methods=["GET"])
@login_required
def get_complaint(complaint_id):
    principal = _principal()
    complaint = get_services().queries.get_one(principal, _parse_id(complaint_id))
    return jsonify(complaint.to_dict(include_owner=principal.is_admin))


@complaints_bp.route("/<complaint_id>/history", methods=["GET"])
@login_required
def complaint_history(complaint_id):
    entries = get_services().queries.history(_principal(), _parse_id(complaint_id))
    return jsonify([entry.to_dict() for entry in entries])


@complaints_bp.route("/<complaint_id>", methods=["PATCH"])
@roles_required("admin")
def transition_complaint(complaint_id):
    principal = _principal()
    target_id = _parse_id(complaint_id, ValidationError)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    complaint = get_services().lifecycle.transition(principal, target_id, data)
    return jsonify(complaint.to_dict(include_owner=True))
