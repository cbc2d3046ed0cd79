"""Daily activity streaks."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.base import utcnow
from oceo.gamification.points_service import get_or_create_profile

logger = structlog.get_logger()


def next_streak(current: int, last_activity: datetime | None, now: datetime) -> int:
    """Streak after activity at ``now``, compared by UTC calendar day.

    Same day: unchanged. Next day: +1. Any longer gap (or no prior activity): 1.
    """
    if last_activity is None:
        return 1
    days = (now.date() - last_activity.date()).days
    if days <= 0:
        return max(current, 1)
    if days == 1:
        return current + 1
    return 1


async def update_streak(db: AsyncSession, user_id: int, now: datetime | None = None) -> int:
    """Record activity for a user and return the new streak length."""
    if now is None:
        now = utcnow()
    profile = await get_or_create_profile(db, user_id)

    new_streak = next_streak(profile.streak, profile.last_activity_at, now)
    if new_streak != profile.streak:
        logger.info("streak_updated", user_id=user_id, old=profile.streak, new=new_streak)

    profile.streak = new_streak
    profile.last_activity_at = now
    profile.updated_at = now
    await db.flush()
    return new_streak
