"""Bearer-token identity resolution on top of Flask-Login and Flask-JWT-Extended."""
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from extensions import db
from utils.errors import AuthenticationError


@dataclass(frozen=True)
class Principal:
    id: int
    role: str
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def identity(self) -> str:
        """Identity string recorded in the audit trail."""
        return self.email or f"{self.role}:{self.id}"

    @classmethod
    def from_user(cls, user) -> "Principal":
        if user is None or not getattr(user, "is_authenticated", False):
            raise AuthenticationError()
        return cls(id=user.id, role=user.role, email=user.email)


def issue_token(user) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role},
    )


def _bearer_token(request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def load_user_from_request(request):
    from models import User  # Local import to avoid circular dependency

    token = _bearer_token(request)
    if not token:
        return None
    try:
        claims = decode_token(token)
    except (JWTExtendedException, PyJWTError) as exc:
        current_app.logger.info("Rejected bearer token", extra={"error": str(exc)})
        return None
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
    # Role is read from the row, not the token, so admin role changes apply immediately.
    return db.session.get(User, user_id)


def init_principal_resolver(login_manager) -> None:
    from models import User

    @login_manager.user_loader
    def load_user(user_id):
        if not user_id:
            return None
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    login_manager.request_loader(load_user_from_request)

    @login_manager.unauthorized_handler
    def unauthorized():
        raise AuthenticationError()
