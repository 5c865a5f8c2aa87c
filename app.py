"""Flask application factory for the municipal complaint portal API."""
import os
import uuid
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from extensions import db, jwt, login_manager, migrate
from utils.errors import PortalError, StorageError
from utils.logger import init_logging
from utils.principal import init_principal_resolver
from utils.security import apply_security_headers, normalize_email
from utils.services import init_services


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PortalError)
    def portal_error(error: PortalError):
        log = app.logger.error if error.status >= 500 else app.logger.info
        log(
            "%s %s",
            error.status,
            error.code,
            extra={"path": request.path, "method": request.method, "detail": error.message},
        )
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        app.logger.warning(
            "%s %s",
            error.code,
            error.name,
            extra={"path": request.path, "method": request.method},
        )
        code = (error.name or "error").lower().replace(" ", "_")
        return jsonify({"error": {"code": code, "message": error.name}}), error.code

    @app.errorhandler(SQLAlchemyError)
    def storage_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.exception("Database error", extra={"path": request.path, "method": request.method})
        return jsonify(StorageError().to_dict()), StorageError.status

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        db.session.rollback()
        app.logger.exception("500 Internal Server Error")
        return jsonify({"error": {"code": "internal_error", "message": "Internal server error"}}), 500


def ensure_default_admin(app: Flask) -> None:
    """Ensure a default admin can log in without registering."""
    from models import User  # Local import to avoid circular dependency

    admin_email = normalize_email(app.config.get("DEFAULT_ADMIN_EMAIL"))
    admin_password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not admin_email or not admin_password:
        return

    admin_user = User.query.filter_by(email=admin_email).first()
    if admin_user:
        if admin_user.role != "admin":
            admin_user.role = "admin"
            db.session.commit()
        return

    admin_user = User(
        name=app.config.get("DEFAULT_ADMIN_NAME") or "System Administrator",
        email=admin_email,
        role="admin",
    )
    admin_user.set_password(admin_password)
    db.session.add(admin_user)
    db.session.commit()
    app.logger.info("Default admin created", extra={"email": admin_email})


def ensure_database_directory(database_uri: str) -> None:
    url = make_url(database_uri)
    if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)


def register_cli(app: Flask) -> None:
    @app.cli.command("set-role")
    @click.argument("email")
    @click.argument("role", type=click.Choice(["user", "admin"]))
    def set_role(email, role):
        """Change a user's role (user/admin)."""
        from models import User

        user = User.query.filter_by(email=(email or "").strip().lower()).first()
        if not user:
            raise click.ClickException(f"No user with email {email}")
        user.role = role
        db.session.commit()
        app.logger.info("Role changed from CLI", extra={"user_id": user.id, "role": role})
        click.echo(f"{user.email} is now {role}")


def create_app(config_name: Optional[str] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = config_map.get(config_key, ProductionConfig)
    app.config.from_object(config_class())

    ensure_database_directory(app.config["SQLALCHEMY_DATABASE_URI"])
    if not app.testing:
        # Optional instance-specific overrides
        app.config.from_pyfile("config.py", silent=True)
        os.makedirs(app.instance_path, exist_ok=True)
        os.makedirs(app.config["COMPLAINT_UPLOAD_FOLDER"], exist_ok=True)

    # Initialize logging early
    logger = init_logging(app)
    app.logger = logger

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    login_manager.init_app(app)
    init_principal_resolver(login_manager)

    # Services share the request-scoped session; nothing else writes complaints.
    init_services(app, db.session)

    from routes import auth_bp, complaints_bp, main_bp, notifications_bp, transparency_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(complaints_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(transparency_bp)

    register_error_handlers(app)
    register_cli(app)

    @app.before_request
    def _before_request() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.after_request
    def _after_request(response):
        response.headers.setdefault("X-Request-ID", g.get("request_id", ""))
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        db.create_all()
        ensure_default_admin(app)

    return app


if __name__ == "__main__":
    # WSGI servers: gunicorn "app:create_app()"
    port = int(os.getenv("PORT", 4000))
    create_app().run(host="0.0.0.0", port=port, use_reloader=False)
