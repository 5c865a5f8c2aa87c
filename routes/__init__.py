"""Blueprint registration, health check, and uploaded evidence."""
from flask import Blueprint, current_app, jsonify, send_from_directory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils.errors import StorageError
from .auth import auth_bp
from .complaints import complaints_bp
from .notifications import notifications_bp
from .transparency import transparency_bp

main_bp = Blueprint("main", __name__)


@main_bp.route("/api/health", methods=["GET"])
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Health check failed")
        raise StorageError() from exc
    return jsonify({"status": "ok"})


@main_bp.route("/uploads/<path:filename>", methods=["GET"])
def uploaded_file(filename):
    # send_from_directory rejects paths escaping the upload folder with 404.
    return send_from_directory(current_app.config["COMPLAINT_UPLOAD_FOLDER"], filename)


__all__ = ["main_bp", "auth_bp", "complaints_bp", "notifications_bp", "transparency_bp"]
