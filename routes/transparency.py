"""Admin statistics and the public transparency overview."""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user

from utils.decorators import roles_required
from utils.principal import Principal
from utils.services import get_services

transparency_bp = Blueprint("transparency", __name__, url_prefix="/api")


@transparency_bp.route("/admin/stats", methods=["GET"])
@roles_required("admin")
def admin_stats():
    stats = get_services().queries.stats(Principal.from_user(current_user))
    return jsonify(stats)


@transparency_bp.route("/public/overview", methods=["GET"])
def public_overview():
    overview = get_services().queries.public_overview()
    current_app.logger.info(
        "public_overview_compiled",
        extra={"recent_resolved": [c["id"] for c in overview["recentResolved"]]},
    )
    return jsonify(overview)
