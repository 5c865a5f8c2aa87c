"""Per-user notification inbox."""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from utils.errors import ValidationError
from utils.services import get_services

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@login_required
def list_notifications():
    unread_only = (request.args.get("unread") or "").lower() in {"1", "true", "yes"}
    sink = get_services().notifications
    items = sink.list_for(current_user.id, unread_only=unread_only)
    return jsonify(
        {
            "items": [n.to_dict() for n in items],
            "unreadCount": sink.unread_count(current_user.id),
        }
    )


@notifications_bp.route("/<notification_id>/read", methods=["POST", "PATCH"])
@login_required
def mark_notification_read(notification_id):
    try:
        target_id = int(notification_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid notification id") from None
    # Not found and not owned look identical to the caller.
    get_services().notifications.mark_read(current_user.id, target_id)
    return jsonify({"id": target_id, "isRead": True})
