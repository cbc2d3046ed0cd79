"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.jwt import verify_session_token
from oceo.auth.service import ADMIN_ROLES, get_user_by_id
from oceo.config import get_settings
from oceo.database import get_session
from oceo.db.models import User

_bearer_optional = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Session cookie first, then Authorization: Bearer."""
    cookie = request.cookies.get(get_settings().session_cookie_name)
    if cookie:
        return cookie
    if credentials is not None:
        return credentials.credentials
    return None


async def _resolve_user(db: AsyncSession, token: str) -> User:
    try:
        payload = verify_session_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, payload["user"]["id"])
    if user is None or user.deleted_at is not None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_optional),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the signed-in user from the session cookie or bearer token.

    Raises 401 when the token is missing, invalid, or the account is gone.
    """
    token = _extract_token(request, credentials)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return await _resolve_user(db, token)


async def get_current_user_optional(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_optional),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Same as get_current_user but returns None instead of raising."""
    token = _extract_token(request, credentials)
    if token is None:
        return None
    try:
        return await _resolve_user(db, token)
    except HTTPException:
        return None


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Only owners and admins may pass."""
    if user.role not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Forbidden")
    return user
