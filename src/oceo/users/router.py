"""User management router: all /api/v1/users/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user, require_admin
from oceo.auth.password import PasswordStrengthError, hash_password, validate_password_strength
from oceo.auth.router import user_response
from oceo.auth.schemas import UserResponse
from oceo.auth.service import get_user_by_id, register_user
from oceo.database import get_session
from oceo.db.base import utcnow
from oceo.db.models import User
from oceo.users.schemas import ProfileUpdateRequest, UserCreateRequest, UserUpdateRequest
from oceo.users.service import list_users, soft_delete_user, update_user

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own profile."""
    return user_response(user)


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update own name and/or password."""
    if body.name is not None:
        user.name = body.name
    if body.password is not None:
        try:
            validate_password_strength(body.password)
        except PasswordStrengthError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        user.password_hash = hash_password(body.password)
    user.updated_at = utcnow()
    await db.commit()
    return user_response(user)


# ---------------------------------------------------------------------------
# Administration (owner / admin)
# ---------------------------------------------------------------------------


@router.get("", response_model=list[UserResponse])
async def list_all_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    """List every user, including deactivated accounts."""
    return [user_response(u) for u in await list_users(db)]


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Create a user with an explicit role."""
    try:
        user = await register_user(db, body.email, body.password, name=body.name, role=body.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return user_response(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_existing_user(
    user_id: int,
    body: UserUpdateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update name, email, role, password or active flag."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        await update_user(db, user, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return user_response(user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Soft delete a user."""
    user = await get_user_by_id(db, user_id)
    if user is None or user.deleted_at is not None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        await soft_delete_user(db, user, admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"status": "user_deleted"}
