"""Authorization helpers for role-based access control."""
from functools import wraps

from flask import current_app, request
from flask_login import current_user, login_required

from utils.errors import AuthorizationError


def require_role(principal, *roles: str) -> None:
    """Raise AuthorizationError unless the principal holds one of the roles."""
    allowed = {r.lower() for r in roles}
    role_name = (getattr(principal, "role", None) or "").lower()
    if role_name in allowed:
        return
    current_app.logger.warning(
        "Unauthorized role access attempt",
        extra={
            "user_id": getattr(principal, "id", None),
            "role": role_name or None,
            "required": sorted(allowed),
        },
    )
    raise AuthorizationError()


def roles_required(*roles):
    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapped(*args, **kwargs):
            current_app.logger.debug("Role gate", extra={"path": request.path, "roles": roles})
            require_role(current_user, *roles)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator
