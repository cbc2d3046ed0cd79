"""Course, module and lesson administration queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from oceo.db.base import utcnow
from oceo.db.models import Course, CourseModule, Enrollment, Lesson, LessonCompletion, User
from oceo.slugs import generate_slug, is_slug_available

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _apply(row: Any, fields: dict[str, Any]) -> None:
    """Set fields on a row, skipping nulls aimed at NOT NULL columns."""
    columns = row.__table__.c
    for field, value in fields.items():
        if value is None and not columns[field].nullable:
            continue
        setattr(row, field, value)


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


async def list_courses_with_counts(db: AsyncSession, include_unpublished: bool = True) -> list[dict[str, Any]]:
    """Courses in display order, each with module, lesson and enrollment counts."""
    module_counts = (
        select(CourseModule.course_id, func.count(CourseModule.id).label("n"))
        .group_by(CourseModule.course_id)
        .subquery()
    )
    lesson_counts = (
        select(CourseModule.course_id, func.count(Lesson.id).label("n"))
        .join(Lesson, Lesson.module_id == CourseModule.id)
        .group_by(CourseModule.course_id)
        .subquery()
    )
    enrollment_counts = (
        select(Enrollment.course_id, func.count(Enrollment.id).label("n"))
        .group_by(Enrollment.course_id)
        .subquery()
    )

    stmt = (
        select(
            Course,
            func.coalesce(module_counts.c.n, 0),
            func.coalesce(lesson_counts.c.n, 0),
            func.coalesce(enrollment_counts.c.n, 0),
        )
        .outerjoin(module_counts, module_counts.c.course_id == Course.id)
        .outerjoin(lesson_counts, lesson_counts.c.course_id == Course.id)
        .outerjoin(enrollment_counts, enrollment_counts.c.course_id == Course.id)
        .order_by(Course.display_order, Course.created_at.desc(), Course.id.desc())
    )
    if not include_unpublished:
        stmt = stmt.where(Course.is_published.is_(True))

    result = await db.execute(stmt)
    return [
        {"course": course, "counts": {"modules": modules, "lessons": lessons, "enrollments": enrollments}}
        for course, modules, lessons, enrollments in result.all()
    ]


async def get_course(db: AsyncSession, course_id: int) -> Course | None:
    return await db.get(Course, course_id)


async def get_course_with_modules(db: AsyncSession, course_id: int) -> Course | None:
    """Course with modules and lessons, both in display order."""
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .options(selectinload(Course.modules).selectinload(CourseModule.lessons))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_course_stats(db: AsyncSession, course: Course) -> dict[str, int]:
    """Totals for a course loaded with get_course_with_modules."""
    lessons = [lesson for module in course.modules for lesson in module.lessons]
    enrollments = await db.execute(select(func.count(Enrollment.id)).where(Enrollment.course_id == course.id))
    return {
        "total_modules": len(course.modules),
        "total_lessons": len(lessons),
        "total_duration_minutes": sum(lesson.video_duration_minutes or 0 for lesson in lessons),
        "total_enrollments": enrollments.scalar() or 0,
    }


async def create_course(db: AsyncSession, fields: dict[str, Any], created_by: int | None) -> Course:
    """
    Raises:
        ValueError: Missing title/slug, or slug already used.
    """
    title = (fields.get("title") or "").strip()
    slug = generate_slug(fields.get("slug") or "")
    if not title or not slug:
        msg = "Title and slug are required"
        raise ValueError(msg)
    if not await is_slug_available(db, Course, slug):
        msg = "A course with this slug already exists"
        raise ValueError(msg)

    course = Course(**{**fields, "title": title, "slug": slug}, created_by=created_by)
    db.add(course)
    await db.flush()
    logger.info("course_created", course_id=course.id, slug=slug)
    return course


async def update_course(db: AsyncSession, course: Course, fields: dict[str, Any]) -> Course:
    """
    Raises:
        ValueError: Blank title, or slug already used by another course.
    """
    if "title" in fields:
        if not (fields["title"] or "").strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        fields["title"] = fields["title"].strip()
    if "slug" in fields:
        slug = generate_slug(fields["slug"] or "")
        if not slug or not await is_slug_available(db, Course, slug, exclude_id=course.id):
            msg = "A course with this slug already exists"
            raise ValueError(msg)
        fields["slug"] = slug

    _apply(course, fields)
    course.updated_at = utcnow()
    await db.flush()
    return course


async def _delete_lessons(db: AsyncSession, lesson_ids: list[int]) -> None:
    if not lesson_ids:
        return
    await db.execute(delete(LessonCompletion).where(LessonCompletion.lesson_id.in_(lesson_ids)))
    await db.execute(delete(Lesson).where(Lesson.id.in_(lesson_ids)))


async def delete_course(db: AsyncSession, course: Course) -> None:
    """Delete a course with its modules, lessons, completions and enrollments."""
    module_ids = list((await db.execute(select(CourseModule.id).where(CourseModule.course_id == course.id))).scalars())
    if module_ids:
        lesson_ids = list((await db.execute(select(Lesson.id).where(Lesson.module_id.in_(module_ids)))).scalars())
        await _delete_lessons(db, lesson_ids)
        await db.execute(delete(CourseModule).where(CourseModule.id.in_(module_ids)))
    await db.execute(delete(Enrollment).where(Enrollment.course_id == course.id))
    await db.delete(course)
    await db.flush()
    logger.info("course_deleted", course_id=course.id)


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


async def get_module(db: AsyncSession, course_id: int, module_id: int) -> CourseModule | None:
    result = await db.execute(
        select(CourseModule).where(CourseModule.id == module_id, CourseModule.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def create_module(db: AsyncSession, course_id: int, fields: dict[str, Any]) -> CourseModule:
    module = CourseModule(
        course_id=course_id,
        title=(fields.get("title") or "").strip() or "New Module",
        description=fields.get("description"),
        display_order=fields.get("display_order") or 0,
    )
    db.add(module)
    await db.flush()
    return module


async def update_module(db: AsyncSession, module: CourseModule, fields: dict[str, Any]) -> CourseModule:
    _apply(module, fields)
    module.updated_at = utcnow()
    await db.flush()
    return module


async def delete_module(db: AsyncSession, module: CourseModule) -> None:
    lesson_ids = list((await db.execute(select(Lesson.id).where(Lesson.module_id == module.id))).scalars())
    await _delete_lessons(db, lesson_ids)
    await db.delete(module)
    await db.flush()


async def reorder_modules(db: AsyncSession, course_id: int, module_ids: list[int]) -> None:
    """Set display_order to each ID's index. IDs outside the course are ignored."""
    result = await db.execute(
        select(CourseModule).where(CourseModule.course_id == course_id, CourseModule.id.in_(module_ids))
    )
    by_id = {m.id: m for m in result.scalars()}
    now = utcnow()
    for index, module_id in enumerate(module_ids):
        module = by_id.get(module_id)
        if module is not None:
            module.display_order = index
            module.updated_at = now
    await db.flush()


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


async def get_lesson(db: AsyncSession, module_id: int, lesson_id: int) -> Lesson | None:
    result = await db.execute(select(Lesson).where(Lesson.id == lesson_id, Lesson.module_id == module_id))
    return result.scalar_one_or_none()


async def _lesson_slug_taken(db: AsyncSession, module_id: int, slug: str, exclude_id: int | None = None) -> bool:
    """True when any lesson in the same course as ``module_id`` already uses ``slug``."""
    course_id = select(CourseModule.course_id).where(CourseModule.id == module_id).scalar_subquery()
    stmt = (
        select(Lesson.id)
        .join(CourseModule, CourseModule.id == Lesson.module_id)
        .where(CourseModule.course_id == course_id, Lesson.slug == slug)
    )
    if exclude_id is not None:
        stmt = stmt.where(Lesson.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def create_lesson(db: AsyncSession, module_id: int, fields: dict[str, Any]) -> Lesson:
    """
    Create a lesson. The slug is derived from the title when absent.

    Raises:
        ValueError: Slug already used by a lesson of the same course.
    """
    title = (fields.pop("title", None) or "").strip() or "New Lesson"
    slug = generate_slug(fields.pop("slug", None) or title)
    if await _lesson_slug_taken(db, module_id, slug):
        msg = "A lesson with this slug already exists in this course"
        raise ValueError(msg)

    lesson = Lesson(module_id=module_id, title=title, slug=slug)
    for field, value in fields.items():
        if value is not None:
            setattr(lesson, field, value)
    if not lesson.points_reward:
        lesson.points_reward = 10
    db.add(lesson)
    await db.flush()
    return lesson


async def update_lesson(db: AsyncSession, lesson: Lesson, fields: dict[str, Any]) -> Lesson:
    """
    Raises:
        ValueError: Slug already used by a lesson of the same course.
    """
    if "slug" in fields:
        slug = generate_slug(fields["slug"] or lesson.title)
        if await _lesson_slug_taken(db, lesson.module_id, slug, exclude_id=lesson.id):
            msg = "A lesson with this slug already exists in this course"
            raise ValueError(msg)
        fields["slug"] = slug

    _apply(lesson, fields)
    lesson.updated_at = utcnow()
    await db.flush()
    return lesson


async def delete_lesson(db: AsyncSession, lesson: Lesson) -> None:
    await _delete_lessons(db, [lesson.id])
    await db.flush()


async def reorder_lessons(db: AsyncSession, module_id: int, lesson_ids: list[int]) -> None:
    """Set display_order to each ID's index. IDs outside the module are ignored."""
    result = await db.execute(select(Lesson).where(Lesson.module_id == module_id, Lesson.id.in_(lesson_ids)))
    by_id = {lesson.id: lesson for lesson in result.scalars()}
    now = utcnow()
    for index, lesson_id in enumerate(lesson_ids):
        lesson = by_id.get(lesson_id)
        if lesson is not None:
            lesson.display_order = index
            lesson.updated_at = now
    await db.flush()


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


async def list_enrollments(db: AsyncSession, limit: int = 50) -> list[tuple[Enrollment, User, Course]]:
    """Most recent enrollments across all courses, with learner and course."""
    result = await db.execute(
        select(Enrollment, User, Course)
        .join(User, User.id == Enrollment.user_id)
        .join(Course, Course.id == Enrollment.course_id)
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .limit(limit)
    )
    return [(row.Enrollment, row.User, row.Course) for row in result]
