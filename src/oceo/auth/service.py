"""
Authentication business logic.

Handles user lookup, sign-up and credential checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from oceo.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from oceo.db.base import utcnow
from oceo.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

VALID_ROLES = ("member", "admin", "owner")
ADMIN_ROLES = frozenset({"owner", "admin"})


class DuplicateEmailError(ValueError):
    """Raised when an email address is already registered."""


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID (including soft-deleted users)."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Sign-up / sign-in
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str | None = None,
    role: str = "member",
) -> User:
    """
    Create a new user.

    Raises:
        PasswordStrengthError: If the password is too weak.
        DuplicateEmailError: If the email is already registered.
        ValueError: If the role is unknown.
    """
    if role not in VALID_ROLES:
        msg = f"Invalid role. Must be one of: {', '.join(VALID_ROLES)}"
        raise ValueError(msg)
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise DuplicateEmailError(msg)

    user = User(
        email=email.lower().strip(),
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, role=role)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user if the credentials match an active account, else None."""
    user = await get_user_by_email(db, email)
    if user is None or user.deleted_at is not None:
        return None
    if not verify_password(password, user.password_hash):
        logger.info("sign_in_failed", user_id=user.id)
        return None

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        user.updated_at = utcnow()
    return user


async def count_active_owners(db: AsyncSession) -> int:
    """Number of owners that are not soft-deleted."""
    result = await db.execute(
        select(func.count(User.id)).where(User.role == "owner", User.deleted_at.is_(None))
    )
    return result.scalar() or 0
