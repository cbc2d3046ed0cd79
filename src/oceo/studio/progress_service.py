"""Learner-side course access, enrollment and lesson progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from oceo.db.base import utcnow
from oceo.db.models import (
    Achievement,
    Course,
    CourseModule,
    Enrollment,
    Lesson,
    LessonCompletion,
    PointsTransaction,
)
from oceo.gamification.achievement_service import check_and_award_achievements
from oceo.gamification.points_service import award_points, get_profile, get_user_rank
from oceo.gamification.streak_service import update_streak

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_LESSON_POINTS = 10
COURSE_COMPLETION_BONUS = 50


class AlreadyEnrolledError(ValueError):
    pass


class AlreadyCompletedError(ValueError):
    pass


class EnrollmentRequiredError(PermissionError):
    pass


@dataclass
class CompletionResult:
    points_awarded: int
    progress: int | None
    course_completed: bool
    achievements: list[Achievement] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_published_course(db: AsyncSession, slug: str) -> Course | None:
    result = await db.execute(select(Course).where(Course.slug == slug, Course.is_published.is_(True)))
    return result.scalar_one_or_none()


async def get_course_outline(db: AsyncSession, course_id: int) -> list[tuple[CourseModule, list[Lesson]]]:
    """Modules in display order, each with its lessons in display order."""
    modules = (
        await db.execute(
            select(CourseModule)
            .where(CourseModule.course_id == course_id)
            .order_by(CourseModule.display_order, CourseModule.id)
        )
    ).scalars().all()
    if not modules:
        return []
    lessons = (
        await db.execute(
            select(Lesson)
            .where(Lesson.module_id.in_([m.id for m in modules]))
            .order_by(Lesson.display_order, Lesson.id)
        )
    ).scalars().all()
    by_module: dict[int, list[Lesson]] = {m.id: [] for m in modules}
    for lesson in lessons:
        by_module[lesson.module_id].append(lesson)
    return [(m, by_module[m.id]) for m in modules]


async def get_course_lessons(db: AsyncSession, course_id: int) -> list[Lesson]:
    """Every lesson in the course, in reading order."""
    return [lesson for _module, lessons in await get_course_outline(db, course_id) for lesson in lessons]


async def get_enrollment(db: AsyncSession, user_id: int, course_id: int) -> Enrollment | None:
    result = await db.execute(
        select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def get_completed_lesson_ids(db: AsyncSession, user_id: int, lesson_ids: list[int] | None = None) -> set[int]:
    stmt = select(LessonCompletion.lesson_id).where(LessonCompletion.user_id == user_id)
    if lesson_ids is not None:
        if not lesson_ids:
            return set()
        stmt = stmt.where(LessonCompletion.lesson_id.in_(lesson_ids))
    return set((await db.execute(stmt)).scalars().all())


def progress_percent(completed: int, total: int) -> int:
    return round(completed / total * 100) if total else 0


# ---------------------------------------------------------------------------
# Catalogue views
# ---------------------------------------------------------------------------


async def list_catalogue(db: AsyncSession, user_id: int) -> list[dict[str, Any]]:
    """Published courses with lesson totals, duration and the user's progress."""
    courses = (
        await db.execute(
            select(Course)
            .where(Course.is_published.is_(True))
            .order_by(Course.display_order, Course.created_at.desc(), Course.id.desc())
        )
    ).scalars().all()
    enrolled = set(
        (await db.execute(select(Enrollment.course_id).where(Enrollment.user_id == user_id))).scalars().all()
    )
    completed_ids = await get_completed_lesson_ids(db, user_id)

    items = []
    for course in courses:
        lessons = await get_course_lessons(db, course.id)
        duration = sum(lesson.video_duration_minutes or 0 for lesson in lessons)
        is_enrolled = course.id in enrolled
        progress = None
        if is_enrolled and lessons:
            progress = progress_percent(sum(1 for lesson in lessons if lesson.id in completed_ids), len(lessons))
        items.append(
            {
                "id": course.id,
                "title": course.title,
                "slug": course.slug,
                "description": course.description,
                "thumbnail_url": course.cover_image_url,
                "difficulty": course.difficulty,
                "total_lessons": len(lessons),
                "estimated_duration": duration or course.estimated_minutes,
                "is_enrolled": is_enrolled,
                "progress": progress,
            }
        )
    return items


async def get_course_view(db: AsyncSession, course: Course, user_id: int) -> dict[str, Any]:
    """Course page: outline with completion flags, enrollment and the next lesson."""
    outline = await get_course_outline(db, course.id)
    enrollment = await get_enrollment(db, user_id, course.id)
    all_lessons = [lesson for _m, lessons in outline for lesson in lessons]
    completed_ids = await get_completed_lesson_ids(db, user_id, [lesson.id for lesson in all_lessons])

    modules = [
        {
            "id": module.id,
            "title": module.title,
            "description": module.description,
            "display_order": module.display_order,
            "lessons": [
                {
                    "id": lesson.id,
                    "title": lesson.title,
                    "slug": lesson.slug,
                    "description": lesson.description,
                    "duration_minutes": lesson.video_duration_minutes,
                    "display_order": lesson.display_order,
                    "is_completed": lesson.id in completed_ids,
                    "is_free": lesson.is_preview,
                }
                for lesson in lessons
            ],
        }
        for module, lessons in outline
    ]

    next_lesson = None
    for lesson in all_lessons:
        if lesson.id not in completed_ids and (enrollment is not None or lesson.is_preview):
            next_lesson = {"slug": lesson.slug, "title": lesson.title}
            break
    if next_lesson is None and all_lessons:
        next_lesson = {"slug": all_lessons[0].slug, "title": all_lessons[0].title}

    return {
        "id": course.id,
        "title": course.title,
        "slug": course.slug,
        "description": course.description,
        "thumbnail_url": course.cover_image_url,
        "difficulty": course.difficulty,
        "is_enrolled": enrollment is not None,
        "enrollment": enrollment,
        "progress": progress_percent(len(completed_ids), len(all_lessons)),
        "total_lessons": len(all_lessons),
        "completed_lessons": len(completed_ids),
        "modules": modules,
        "next_lesson": next_lesson,
    }


async def find_course_lesson(db: AsyncSession, course: Course, lesson_slug: str) -> tuple[Lesson | None, list[Lesson]]:
    """The lesson with this slug inside the course, plus every course lesson in order."""
    lessons = await get_course_lessons(db, course.id)
    lesson = next((item for item in lessons if item.slug == lesson_slug), None)
    return lesson, lessons


async def get_lesson_view(db: AsyncSession, course: Course, lesson_slug: str, user_id: int) -> dict[str, Any] | None:
    """
    Lesson page with navigation. Returns None if the lesson is not in the course.

    Raises:
        EnrollmentRequiredError: Not enrolled and the lesson is not a preview.
    """
    lesson, lessons = await find_course_lesson(db, course, lesson_slug)
    if lesson is None:
        return None
    if not lesson.is_preview and await get_enrollment(db, user_id, course.id) is None:
        msg = "You must enroll in this course to access this lesson"
        raise EnrollmentRequiredError(msg)

    completed_ids = await get_completed_lesson_ids(db, user_id, [item.id for item in lessons])
    index = lessons.index(lesson)
    prev_lesson = lessons[index - 1] if index > 0 else None
    next_lesson = lessons[index + 1] if index < len(lessons) - 1 else None

    return {
        "lesson": {
            "id": lesson.id,
            "title": lesson.title,
            "slug": lesson.slug,
            "description": lesson.description,
            "content": lesson.content,
            "video_url": lesson.video_url,
            "duration_minutes": lesson.video_duration_minutes,
            "is_completed": lesson.id in completed_ids,
            "points_reward": lesson.points_reward,
        },
        "course": {"id": course.id, "title": course.title, "slug": course.slug},
        "prev_lesson": {"slug": prev_lesson.slug, "title": prev_lesson.title} if prev_lesson else None,
        "next_lesson": {"slug": next_lesson.slug, "title": next_lesson.title} if next_lesson else None,
        "all_lessons": [
            {
                "id": item.id,
                "title": item.title,
                "slug": item.slug,
                "is_completed": item.id in completed_ids,
                "duration_minutes": item.video_duration_minutes,
            }
            for item in lessons
        ],
    }


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


async def enroll(db: AsyncSession, user_id: int, course: Course) -> Enrollment:
    """
    Raises:
        AlreadyEnrolledError: The user is already enrolled.
    """
    if await get_enrollment(db, user_id, course.id) is not None:
        msg = "Already enrolled"
        raise AlreadyEnrolledError(msg)
    enrollment = Enrollment(user_id=user_id, course_id=course.id)
    db.add(enrollment)
    await db.flush()
    logger.info("course_enrolled", user_id=user_id, course_id=course.id)
    return enrollment


async def unenroll(db: AsyncSession, user_id: int, course: Course) -> bool:
    """Remove the enrollment. Lesson completions are kept. Returns False if not enrolled."""
    enrollment = await get_enrollment(db, user_id, course.id)
    if enrollment is None:
        return False
    await db.delete(enrollment)
    await db.flush()
    logger.info("course_unenrolled", user_id=user_id, course_id=course.id)
    return True


# ---------------------------------------------------------------------------
# Lesson completion
# ---------------------------------------------------------------------------


async def _course_bonus_awarded(db: AsyncSession, user_id: int, course_id: int) -> bool:
    result = await db.execute(
        select(PointsTransaction.id)
        .where(
            PointsTransaction.user_id == user_id,
            PointsTransaction.reason == "course_complete",
            PointsTransaction.reference_id == course_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def recompute_course_progress(db: AsyncSession, enrollment: Enrollment) -> bool:
    """Refresh progress_percent/completed_at. Returns True if the course just became complete."""
    lessons = await get_course_lessons(db, enrollment.course_id)
    completed = await get_completed_lesson_ids(db, enrollment.user_id, [lesson.id for lesson in lessons])
    enrollment.progress_percent = progress_percent(len(completed), len(lessons))

    if enrollment.progress_percent < 100:
        enrollment.completed_at = None
        return False
    if enrollment.completed_at is not None:
        return False
    enrollment.completed_at = utcnow()
    return True


async def complete_lesson(
    db: AsyncSession,
    user_id: int,
    course: Course,
    lesson: Lesson,
    time_spent_minutes: int | None = None,
) -> CompletionResult:
    """Mark a lesson complete and apply every side effect.

    1. Insert the lesson completion
    2. Award the lesson's points
    3. Recompute course progress; first completion earns the course bonus
    4. Update the daily streak
    5. Award any achievements now satisfied

    Everything is flushed on the caller's session; the caller commits once.

    Raises:
        EnrollmentRequiredError: Not enrolled and the lesson is not a preview.
        AlreadyCompletedError: The lesson was completed before.
    """
    enrollment = await get_enrollment(db, user_id, course.id)
    if enrollment is None and not lesson.is_preview:
        msg = "You must enroll in this course"
        raise EnrollmentRequiredError(msg)
    if lesson.id in await get_completed_lesson_ids(db, user_id, [lesson.id]):
        msg = "Already completed"
        raise AlreadyCompletedError(msg)

    points = lesson.points_reward or DEFAULT_LESSON_POINTS
    db.add(
        LessonCompletion(
            user_id=user_id,
            lesson_id=lesson.id,
            time_spent_minutes=time_spent_minutes,
            points_awarded=points,
        )
    )
    await db.flush()
    await award_points(db, user_id, points, "lesson_complete", reference_type="lesson", reference_id=lesson.id)

    progress = None
    course_completed = False
    if enrollment is not None:
        just_completed = await recompute_course_progress(db, enrollment)
        progress = enrollment.progress_percent
        course_completed = enrollment.completed_at is not None
        if just_completed and not await _course_bonus_awarded(db, user_id, course.id):
            await award_points(
                db,
                user_id,
                COURSE_COMPLETION_BONUS,
                "course_complete",
                reference_type="course",
                reference_id=course.id,
            )
            points += COURSE_COMPLETION_BONUS

    await update_streak(db, user_id)
    achievements = await check_and_award_achievements(db, user_id)

    logger.info(
        "lesson_completed",
        user_id=user_id,
        lesson_id=lesson.id,
        points=points,
        progress=progress,
        achievements=[a.slug for a in achievements],
    )
    return CompletionResult(
        points_awarded=points,
        progress=progress,
        course_completed=course_completed,
        achievements=achievements,
    )


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------


async def list_my_courses(db: AsyncSession, user_id: int, limit: int | None = None) -> list[dict[str, Any]]:
    """Enrolled courses, most recently enrolled first, with progress and next lesson."""
    stmt = (
        select(Enrollment, Course)
        .join(Course, Enrollment.course_id == Course.id)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    rows = (await db.execute(stmt)).all()

    items = []
    for enrollment, course in rows:
        lessons = await get_course_lessons(db, course.id)
        completed = await get_completed_lesson_ids(db, user_id, [lesson.id for lesson in lessons])
        next_lesson = next((lesson for lesson in lessons if lesson.id not in completed), None)
        if next_lesson is None and lessons:
            next_lesson = lessons[0]
        items.append(
            {
                "id": course.id,
                "title": course.title,
                "slug": course.slug,
                "description": course.description,
                "thumbnail_url": course.cover_image_url,
                "difficulty": course.difficulty,
                "progress": progress_percent(len(completed), len(lessons)),
                "total_lessons": len(lessons),
                "completed_lessons": len(completed),
                "enrolled_at": enrollment.enrolled_at,
                "completed_at": enrollment.completed_at,
                "next_lesson_slug": next_lesson.slug if next_lesson else None,
            }
        )
    return items


async def get_learning_stats(db: AsyncSession, user_id: int) -> dict[str, Any]:
    enrollments = (await db.execute(select(Enrollment).where(Enrollment.user_id == user_id))).scalars().all()
    completed_courses = sum(1 for e in enrollments if e.completed_at is not None)
    lessons_completed = (
        await db.execute(select(func.count(LessonCompletion.id)).where(LessonCompletion.user_id == user_id))
    ).scalar() or 0
    time_spent = (
        await db.execute(
            select(func.coalesce(func.sum(LessonCompletion.time_spent_minutes), 0)).where(
                LessonCompletion.user_id == user_id
            )
        )
    ).scalar() or 0
    profile = await get_profile(db, user_id)

    return {
        "total_enrollments": len(enrollments),
        "completed_courses": completed_courses,
        "in_progress_courses": len(enrollments) - completed_courses,
        "average_progress": round(sum(e.progress_percent for e in enrollments) / len(enrollments))
        if enrollments
        else 0,
        "lessons_completed": lessons_completed,
        "total_time_spent_minutes": int(time_spent),
        "points": profile.points if profile else 0,
        "streak": profile.streak if profile else 0,
        "rank": await get_user_rank(db, user_id),
    }
