"""Points ledger, learner profiles and the leaderboard."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.base import utcnow
from oceo.db.models import PointsTransaction, User, UserProfile

logger = structlog.get_logger()


async def get_profile(db: AsyncSession, user_id: int) -> UserProfile | None:
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, user_id: int) -> UserProfile:
    """Get or create the denormalized points/streak row for a user."""
    profile = await get_profile(db, user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id)
        db.add(profile)
        await db.flush()
    return profile


async def award_points(
    db: AsyncSession,
    user_id: int,
    amount: int,
    reason: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> UserProfile:
    """Grant points to a user.

    1. Insert into points_transactions
    2. Add the amount to user_profiles.points

    A negative amount deducts.
    """
    db.add(
        PointsTransaction(
            user_id=user_id,
            amount=amount,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )
    )
    profile = await get_or_create_profile(db, user_id)
    profile.points += amount
    profile.updated_at = utcnow()
    await db.flush()

    logger.info("points_awarded", user_id=user_id, amount=amount, reason=reason, total=profile.points)
    return profile


async def get_points_history(db: AsyncSession, user_id: int, limit: int = 50) -> list[PointsTransaction]:
    result = await db.execute(
        select(PointsTransaction)
        .where(PointsTransaction.user_id == user_id)
        .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_rank(db: AsyncSession, user_id: int) -> int | None:
    """1 + number of profiles with strictly more points. None without a profile."""
    profile = await get_profile(db, user_id)
    if profile is None:
        return None
    result = await db.execute(select(func.count(UserProfile.id)).where(UserProfile.points > profile.points))
    return (result.scalar() or 0) + 1


async def get_leaderboard(db: AsyncSession, limit: int = 20) -> list[dict[str, Any]]:
    """Profiles ordered by points, highest first, with 1-based rank and user name."""
    result = await db.execute(
        select(UserProfile, User.name)
        .join(User, UserProfile.user_id == User.id)
        .where(User.deleted_at.is_(None))
        .order_by(UserProfile.points.desc(), UserProfile.user_id)
        .limit(limit)
    )
    return [
        {
            "rank": i,
            "user_id": row.UserProfile.user_id,
            "name": row.name,
            "points": row.UserProfile.points,
            "streak": row.UserProfile.streak,
        }
        for i, row in enumerate(result, start=1)
    ]
