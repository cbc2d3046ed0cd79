"""
Session token management.

A session token is an HS256 JWT carrying ``{"user": {"id", "role"}, "expires"}``.
It travels in the ``session`` cookie (browser) or an ``Authorization: Bearer``
header (API clients).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from oceo.config import get_settings


def create_session_token(user_id: int, role: str, *, now: datetime | None = None) -> tuple[str, datetime]:
    """
    Create a signed session token.

    Args:
        user_id: The user's database ID.
        role: The user's role at issue time.
        now: Issue time (defaults to the current UTC time).

    Returns:
        (encoded token, expiry datetime).
    """
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    expires = issued_at + timedelta(hours=settings.session_expire_hours)
    payload: dict[str, Any] = {
        "user": {"id": user_id, "role": role},
        "expires": expires.isoformat(),
        "iat": issued_at,
        "exp": expires,
    }
    token = jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)
    return token, expires


def verify_session_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or malformed.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
        )
    except jwt.ExpiredSignatureError:
        msg = "Session has expired"
        raise jwt.InvalidTokenError(msg) from None

    user = payload.get("user")
    if not isinstance(user, dict) or not isinstance(user.get("id"), int):
        msg = "Malformed session payload"
        raise jwt.InvalidTokenError(msg)
    return payload
