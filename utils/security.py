"""Security helpers for headers, input cleaning, and credential policy."""
import re
from typing import Any, Optional

from flask import request

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_text(value: Any, max_length: Optional[int] = None) -> Optional[str]:
    """Strip control characters and surrounding whitespace; empty input becomes None."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError("must be text")
    text = _CONTROL_CHARS.sub("", str(value)).strip()
    if max_length is not None and len(text) > max_length:
        raise ValueError(f"must be at most {max_length} characters")
    return text or None


def normalize_email(value: Any) -> Optional[str]:
    try:
        email = clean_text(value, max_length=255)
    except ValueError:
        return None
    if not email or not _EMAIL_PATTERN.match(email):
        return None
    return email.lower()


def apply_security_headers(response, force_https: bool = False):
    """Apply security headers suitable for a JSON API."""
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; img-src 'self'; frame-ancestors 'none'")
    if force_https or request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
    return response


def password_meets_policy(password: Any, min_length: int = 8) -> tuple[bool, str | None]:
    if not isinstance(password, str) or not password:
        return False, "Password is required."
    if len(password) < min_length:
        return False, f"Password must be at least {min_length} characters long."
    if password.strip() != password:
        return False, "Password must not start or end with whitespace."
    return True, None
