"""Achievement definitions and award logic with duplicate prevention."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, select

from oceo.db.models import Achievement, CommunityPost, Enrollment, LessonCompletion, UserAchievement
from oceo.gamification.points_service import award_points, get_profile

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TRIGGER_TYPES = (
    "lessons_completed",
    "courses_completed",
    "posts_created",
    "streak_days",
    "points_earned",
)


async def list_achievements(db: AsyncSession, include_secret: bool = False) -> list[Achievement]:
    stmt = select(Achievement).order_by(Achievement.trigger_type, Achievement.trigger_value, Achievement.id)
    if not include_secret:
        stmt = stmt.where(Achievement.is_secret.is_(False))
    return list((await db.execute(stmt)).scalars().all())


async def get_achievement_by_slug(db: AsyncSession, slug: str) -> Achievement | None:
    result = await db.execute(select(Achievement).where(Achievement.slug == slug))
    return result.scalar_one_or_none()


async def create_achievement(db: AsyncSession, **fields: object) -> Achievement:
    """
    Raises:
        ValueError: Unknown trigger type or duplicate slug.
    """
    if fields.get("trigger_type") not in TRIGGER_TYPES:
        msg = f"Invalid trigger type. Must be one of: {', '.join(TRIGGER_TYPES)}"
        raise ValueError(msg)
    if await get_achievement_by_slug(db, str(fields["slug"])) is not None:
        msg = "An achievement with this slug already exists"
        raise ValueError(msg)
    achievement = Achievement(**fields)
    db.add(achievement)
    await db.flush()
    return achievement


async def delete_achievement(db: AsyncSession, achievement: Achievement) -> None:
    """Delete a definition and every award of it."""
    await db.execute(delete(UserAchievement).where(UserAchievement.achievement_id == achievement.id))
    await db.delete(achievement)
    await db.flush()


async def get_user_achievements(db: AsyncSession, user_id: int) -> list[tuple[UserAchievement, Achievement]]:
    """Earned achievements, most recent first."""
    result = await db.execute(
        select(UserAchievement, Achievement)
        .join(Achievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
    )
    return [(row.UserAchievement, row.Achievement) for row in result]


async def _earned_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id))
    return set(result.scalars().all())


async def get_user_stat(db: AsyncSession, user_id: int, trigger_type: str) -> int:
    """Current value of the statistic an achievement trigger compares against."""
    if trigger_type == "lessons_completed":
        result = await db.execute(
            select(func.count(LessonCompletion.id)).where(LessonCompletion.user_id == user_id)
        )
        return result.scalar() or 0
    if trigger_type == "courses_completed":
        result = await db.execute(
            select(func.count(Enrollment.id)).where(
                Enrollment.user_id == user_id,
                Enrollment.completed_at.is_not(None),
            )
        )
        return result.scalar() or 0
    if trigger_type == "posts_created":
        result = await db.execute(select(func.count(CommunityPost.id)).where(CommunityPost.user_id == user_id))
        return result.scalar() or 0
    if trigger_type in ("streak_days", "points_earned"):
        profile = await get_profile(db, user_id)
        if profile is None:
            return 0
        return profile.streak if trigger_type == "streak_days" else profile.points
    return 0


async def award_achievement(db: AsyncSession, user_id: int, achievement: Achievement) -> UserAchievement | None:
    """Award an achievement and its points.

    Returns the new row, or None if the user already had it.
    """
    if achievement.id in await _earned_ids(db, user_id):
        return None

    user_achievement = UserAchievement(user_id=user_id, achievement_id=achievement.id)
    db.add(user_achievement)
    await db.flush()

    if achievement.points_value > 0:
        await award_points(
            db,
            user_id,
            achievement.points_value,
            "achievement_earned",
            reference_type="achievement",
            reference_id=achievement.id,
        )
    logger.info("achievement_earned", user_id=user_id, slug=achievement.slug)
    return user_achievement


async def check_and_award_achievements(db: AsyncSession, user_id: int) -> list[Achievement]:
    """Award every unearned achievement whose trigger is satisfied.

    Awards grant points, which can satisfy a points_earned trigger already
    checked in the same pass, so passes repeat until one awards nothing.
    """
    earned = await _earned_ids(db, user_id)
    newly_earned: list[Achievement] = []
    pending = [a for a in await list_achievements(db, include_secret=True) if a.id not in earned]

    while pending:
        stats: dict[str, int] = {}
        awarded: list[Achievement] = []
        for achievement in pending:
            if achievement.trigger_type not in stats or achievement.trigger_type == "points_earned":
                stats[achievement.trigger_type] = await get_user_stat(db, user_id, achievement.trigger_type)
            if stats[achievement.trigger_type] >= achievement.trigger_value:
                if await award_achievement(db, user_id, achievement) is not None:
                    awarded.append(achievement)
        if not awarded:
            break
        newly_earned.extend(awarded)
        pending = [a for a in pending if a not in awarded]

    return newly_earned
