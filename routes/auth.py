"""Registration, login, and role administration endpoints."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import USER_ROLES, User
from utils.complaint_store import unit_of_work
from utils.decorators import roles_required
from utils.errors import AuthenticationError, NotFoundError, StorageError, ValidationError
from utils.principal import issue_token
from utils.security import clean_text, normalize_email, password_meets_policy

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _auth_response(user: User, status: int = 200):
    return jsonify({"token": issue_token(user), "user": user.to_dict()}), status


@auth_bp.route("/register", methods=["POST"])
def register():
    data = _json_body()
    try:
        name = clean_text(data.get("name"), max_length=150)
    except ValueError as exc:
        raise ValidationError(f"name: {exc}") from None
    email = normalize_email(data.get("email"))
    password = data.get("password")
    if not name:
        raise ValidationError("name is required")
    if not email:
        raise ValidationError("A valid email is required")
    password_ok, reason = password_meets_policy(password, int(current_app.config.get("PASSWORD_MIN_LENGTH", 8)))
    if not password_ok:
        raise ValidationError(reason)

    if User.query.filter_by(email=email).first():
        raise ValidationError("Email already registered")

    try:
        with unit_of_work(db.session, "register"):
            user = User(name=name, email=email, role="user")
            user.set_password(password)
            db.session.add(user)
    except StorageError as exc:
        # Lost a race with a concurrent registration of the same email.
        if isinstance(exc.__cause__, IntegrityError):
            raise ValidationError("Email already registered") from None
        raise

    current_app.logger.info("User registered", extra={"user_id": user.id})
    return _auth_response(user, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data = _json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password")
    user = User.query.filter_by(email=email).first() if email else None
    if not user or not isinstance(password, str) or not user.check_password(password):
        current_app.logger.info("Login failed", extra={"email": email})
        raise AuthenticationError("Invalid credentials")
    current_app.logger.info("Login succeeded", extra={"user_id": user.id})
    return _auth_response(user)


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.route("/users/<user_id>/role", methods=["PATCH"])
@roles_required("admin")
def change_role(user_id):
    try:
        target_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid user id") from None
    role = (_json_body().get("role") or "")
    role = role.strip().lower() if isinstance(role, str) else ""
    if role not in USER_ROLES:
        raise ValidationError("Role must be one of: " + ", ".join(USER_ROLES))

    with unit_of_work(db.session, "change_role"):
        user = db.session.get(User, target_id)
        if user is None:
            raise NotFoundError("User not found")
        previous = user.role
        user.role = role

    current_app.logger.info(
        "User role changed",
        extra={"user_id": target_id, "old_role": previous, "new_role": role, "admin_id": current_user.id},
    )
    return jsonify(user.to_dict())
