"""Default achievement seed data: the 11 Studio Systems achievements."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.models import Achievement

logger = structlog.get_logger()

DEFAULT_ACHIEVEMENTS: list[dict] = [
    # Lessons
    {
        "name": "First Steps",
        "slug": "first-steps",
        "description": "Complete your first lesson",
        "icon_url": "/achievements/first-steps.svg",
        "points_value": 25,
        "trigger_type": "lessons_completed",
        "trigger_value": 1,
    },
    {
        "name": "Quick Learner",
        "slug": "quick-learner",
        "description": "Complete 5 lessons",
        "icon_url": "/achievements/quick-learner.svg",
        "points_value": 50,
        "trigger_type": "lessons_completed",
        "trigger_value": 5,
    },
    {
        "name": "Knowledge Seeker",
        "slug": "knowledge-seeker",
        "description": "Complete 25 lessons",
        "icon_url": "/achievements/knowledge-seeker.svg",
        "points_value": 100,
        "trigger_type": "lessons_completed",
        "trigger_value": 25,
    },
    # Courses
    {
        "name": "Course Graduate",
        "slug": "course-graduate",
        "description": "Complete your first course",
        "icon_url": "/achievements/course-graduate.svg",
        "points_value": 100,
        "trigger_type": "courses_completed",
        "trigger_value": 1,
    },
    {
        "name": "Master Student",
        "slug": "master-student",
        "description": "Complete 3 courses",
        "icon_url": "/achievements/master-student.svg",
        "points_value": 250,
        "trigger_type": "courses_completed",
        "trigger_value": 3,
    },
    # Posts
    {
        "name": "Community Contributor",
        "slug": "community-contributor",
        "description": "Create your first post",
        "icon_url": "/achievements/community-contributor.svg",
        "points_value": 25,
        "trigger_type": "posts_created",
        "trigger_value": 1,
    },
    {
        "name": "Active Participant",
        "slug": "active-participant",
        "description": "Create 10 posts",
        "icon_url": "/achievements/active-participant.svg",
        "points_value": 75,
        "trigger_type": "posts_created",
        "trigger_value": 10,
    },
    # Streaks
    {
        "name": "Week Warrior",
        "slug": "week-warrior",
        "description": "Maintain a 7-day streak",
        "icon_url": "/achievements/week-warrior.svg",
        "points_value": 100,
        "trigger_type": "streak_days",
        "trigger_value": 7,
    },
    {
        "name": "Consistency Champion",
        "slug": "consistency-champion",
        "description": "Maintain a 30-day streak",
        "icon_url": "/achievements/consistency-champion.svg",
        "points_value": 500,
        "trigger_type": "streak_days",
        "trigger_value": 30,
    },
    # Points
    {
        "name": "Point Collector",
        "slug": "point-collector",
        "description": "Earn 500 points",
        "icon_url": "/achievements/point-collector.svg",
        "points_value": 50,
        "trigger_type": "points_earned",
        "trigger_value": 500,
    },
    {
        "name": "High Achiever",
        "slug": "high-achiever",
        "description": "Earn 1000 points",
        "icon_url": "/achievements/high-achiever.svg",
        "points_value": 100,
        "trigger_type": "points_earned",
        "trigger_value": 1000,
        "is_secret": True,
    },
]


async def seed_default_achievements(db: AsyncSession) -> int:
    """Insert any default achievement whose slug is missing. Returns the number inserted.

    Existing rows are left untouched so admin edits survive a re-seed.
    """
    result = await db.execute(select(Achievement.slug))
    existing = set(result.scalars().all())

    inserted = 0
    for data in DEFAULT_ACHIEVEMENTS:
        if data["slug"] in existing:
            continue
        db.add(Achievement(**data))
        inserted += 1

    await db.flush()
    logger.info("achievements_seeded", inserted=inserted, total=len(DEFAULT_ACHIEVEMENTS))
    return inserted
