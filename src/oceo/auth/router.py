"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user
from oceo.auth.jwt import create_session_token
from oceo.auth.password import PasswordStrengthError
from oceo.auth.schemas import SessionResponse, SignInRequest, SignUpRequest, UserResponse
from oceo.auth.service import DuplicateEmailError, authenticate_user, register_user
from oceo.config import get_settings
from oceo.database import get_session
from oceo.db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def user_response(user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        is_active=user.deleted_at is None,
        created_at=user.created_at,
        updated_at=user.updated_at,
        deleted_at=user.deleted_at,
    )


def set_session_cookie(response: Response, token: str, expires: datetime) -> None:
    """Attach the session cookie (HttpOnly, SameSite=Lax)."""
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        expires=expires,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def _issue_session(response: Response, user: User) -> SessionResponse:
    token, expires = create_session_token(user.id, user.role)
    set_session_cookie(response, token, expires)
    return SessionResponse(token=token, expires=expires, user=user_response(user))


@router.post("/sign-up", response_model=SessionResponse, status_code=201)
async def sign_up(
    body: SignUpRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    """Create a member account and start a session."""
    try:
        user = await register_user(db, body.email, body.password, name=body.name)
    except (PasswordStrengthError, DuplicateEmailError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _issue_session(response, user)


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    body: SignInRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    """Check credentials and start a session."""
    user = await authenticate_user(db, body.email, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    await db.commit()
    logger.info("user_signed_in", user_id=user.id)
    return _issue_session(response, user)


@router.post("/sign-out")
async def sign_out(response: Response) -> dict[str, str]:
    """Clear the session cookie."""
    response.delete_cookie(get_settings().session_cookie_name, path="/")
    return {"status": "signed_out"}


@router.get("/session", response_model=UserResponse)
async def current_session(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the user behind the current session."""
    return user_response(user)
