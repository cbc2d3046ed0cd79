"""User administration: role changes, soft deletion, owner protection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from oceo.auth.password import hash_password, validate_password_strength
from oceo.auth.service import (
    VALID_ROLES,
    DuplicateEmailError,
    count_active_owners,
    get_user_by_email,
)
from oceo.db.base import utcnow
from oceo.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from oceo.users.schemas import UserUpdateRequest

logger = structlog.get_logger()


class LastOwnerError(ValueError):
    """Raised when an operation would leave the site without an owner."""


async def list_users(db: AsyncSession) -> list[User]:
    """All users, newest first, including soft-deleted ones."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def _is_only_owner(db: AsyncSession, user: User) -> bool:
    return user.role == "owner" and user.deleted_at is None and await count_active_owners(db) <= 1


async def update_user(db: AsyncSession, user: User, body: UserUpdateRequest) -> User:
    """
    Apply an admin update.

    Raises:
        ValueError: Unknown role.
        LastOwnerError: Demoting or deactivating the only owner.
        DuplicateEmailError: Email already used by someone else.
    """
    if body.role is not None and body.role not in VALID_ROLES:
        msg = f"Invalid role. Must be one of: {', '.join(VALID_ROLES)}"
        raise ValueError(msg)

    if body.role is not None and body.role != "owner" and await _is_only_owner(db, user):
        msg = "Cannot demote the only owner"
        raise LastOwnerError(msg)

    if body.is_active is False and await _is_only_owner(db, user):
        msg = "Cannot deactivate the only owner"
        raise LastOwnerError(msg)

    if body.email is not None and body.email.lower() != user.email.lower():
        existing = await get_user_by_email(db, body.email)
        if existing is not None and existing.id != user.id:
            msg = "Email already in use"
            raise DuplicateEmailError(msg)
        user.email = body.email.lower().strip()

    if body.name is not None:
        user.name = body.name
    if body.role is not None:
        user.role = body.role
    if body.password is not None:
        validate_password_strength(body.password)
        user.password_hash = hash_password(body.password)
    if body.is_active is not None:
        user.deleted_at = None if body.is_active else utcnow()

    user.updated_at = utcnow()
    await db.flush()
    logger.info("user_updated", user_id=user.id, role=user.role, active=user.deleted_at is None)
    return user


async def soft_delete_user(db: AsyncSession, user: User, acting_user: User) -> None:
    """
    Soft delete a user.

    Raises:
        ValueError: Deleting yourself.
        LastOwnerError: Deleting the only owner.
    """
    if user.id == acting_user.id:
        msg = "Cannot delete your own account"
        raise ValueError(msg)
    if await _is_only_owner(db, user):
        msg = "Cannot delete the only owner"
        raise LastOwnerError(msg)

    now = utcnow()
    user.deleted_at = now
    user.updated_at = now
    await db.flush()
    logger.info("user_deleted", user_id=user.id, by=acting_user.id)
