"""Course administration router: /api/v1/courses/* (owner/admin only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.courses import service
from oceo.courses.schemas import (
    CourseCounts,
    CourseCreateRequest,
    CourseDetailResponse,
    CourseListItem,
    CourseResponse,
    CourseStats,
    CourseUpdateRequest,
    EnrollmentCourse,
    EnrollmentListItem,
    EnrollmentListResponse,
    EnrollmentUser,
    LessonCreateRequest,
    LessonResponse,
    LessonUpdateRequest,
    ModuleCreateRequest,
    ModuleResponse,
    ModuleUpdateRequest,
    ModuleWithLessonsResponse,
    ReorderLessonsRequest,
    ReorderModulesRequest,
)
from oceo.database import get_session
from oceo.db.models import Course, CourseModule, User

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"], dependencies=[Depends(require_admin)])
enrollments_router = APIRouter(
    prefix="/api/v1/enrollments", tags=["Courses"], dependencies=[Depends(require_admin)]
)


async def _course_or_404(db: AsyncSession, course_id: int) -> Course:
    course = await service.get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


async def _module_or_404(db: AsyncSession, course_id: int, module_id: int) -> CourseModule:
    module = await service.get_module(db, course_id, module_id)
    if module is None:
        raise HTTPException(status_code=404, detail="Module not found")
    return module


async def _course_detail(db: AsyncSession, course_id: int) -> CourseDetailResponse:
    course = await service.get_course_with_modules(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    stats = await service.get_course_stats(db, course)
    return CourseDetailResponse(
        **CourseResponse.model_validate(course).model_dump(),
        modules=[ModuleWithLessonsResponse.model_validate(m) for m in course.modules],
        stats=CourseStats(**stats),
    )


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@router.get("", response_model=list[CourseListItem])
async def list_courses(db: AsyncSession = Depends(get_session)) -> list[CourseListItem]:
    """Every course with module, lesson and enrollment counts."""
    rows = await service.list_courses_with_counts(db)
    return [
        CourseListItem(
            **CourseResponse.model_validate(row["course"]).model_dump(),
            count=CourseCounts(**row["counts"]),
        )
        for row in rows
    ]


@router.post("", response_model=CourseResponse, status_code=201)
async def create_course(
    body: CourseCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    try:
        course = await service.create_course(db, body.model_dump(), created_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return CourseResponse.model_validate(course)


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(course_id: int, db: AsyncSession = Depends(get_session)) -> CourseDetailResponse:
    """Course with modules, lessons and totals."""
    return await _course_detail(db, course_id)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    body: CourseUpdateRequest,
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    course = await _course_or_404(db, course_id)
    try:
        await service.update_course(db, course, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return CourseResponse.model_validate(course)


@router.delete("/{course_id}")
async def delete_course(course_id: int, db: AsyncSession = Depends(get_session)) -> dict[str, bool]:
    course = await _course_or_404(db, course_id)
    await service.delete_course(db, course)
    await db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


@router.post("/{course_id}/modules", response_model=ModuleResponse, status_code=201)
async def create_module(
    course_id: int,
    body: ModuleCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> ModuleResponse:
    await _course_or_404(db, course_id)
    module = await service.create_module(db, course_id, body.model_dump())
    await db.commit()
    return ModuleResponse.model_validate(module)


@router.post("/{course_id}/modules/reorder")
async def reorder_modules(
    course_id: int,
    body: ReorderModulesRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    await _course_or_404(db, course_id)
    await service.reorder_modules(db, course_id, body.module_ids)
    await db.commit()
    return {"success": True}


@router.patch("/{course_id}/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    course_id: int,
    module_id: int,
    body: ModuleUpdateRequest,
    db: AsyncSession = Depends(get_session),
) -> ModuleResponse:
    module = await _module_or_404(db, course_id, module_id)
    await service.update_module(db, module, body.model_dump(exclude_unset=True))
    await db.commit()
    return ModuleResponse.model_validate(module)


@router.delete("/{course_id}/modules/{module_id}")
async def delete_module(
    course_id: int,
    module_id: int,
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    module = await _module_or_404(db, course_id, module_id)
    await service.delete_module(db, module)
    await db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


@router.post("/{course_id}/modules/{module_id}/lessons", response_model=LessonResponse, status_code=201)
async def create_lesson(
    course_id: int,
    module_id: int,
    body: LessonCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> LessonResponse:
    await _module_or_404(db, course_id, module_id)
    try:
        lesson = await service.create_lesson(db, module_id, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return LessonResponse.model_validate(lesson)


@router.post("/{course_id}/modules/{module_id}/lessons/reorder")
async def reorder_lessons(
    course_id: int,
    module_id: int,
    body: ReorderLessonsRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    await _module_or_404(db, course_id, module_id)
    await service.reorder_lessons(db, module_id, body.lesson_ids)
    await db.commit()
    return {"success": True}


@router.patch("/{course_id}/modules/{module_id}/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    course_id: int,
    module_id: int,
    lesson_id: int,
    body: LessonUpdateRequest,
    db: AsyncSession = Depends(get_session),
) -> LessonResponse:
    await _module_or_404(db, course_id, module_id)
    lesson = await service.get_lesson(db, module_id, lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    try:
        await service.update_lesson(db, lesson, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return LessonResponse.model_validate(lesson)


@router.delete("/{course_id}/modules/{module_id}/lessons/{lesson_id}")
async def delete_lesson(
    course_id: int,
    module_id: int,
    lesson_id: int,
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    await _module_or_404(db, course_id, module_id)
    lesson = await service.get_lesson(db, module_id, lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    await service.delete_lesson(db, lesson)
    await db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


@enrollments_router.get("", response_model=EnrollmentListResponse)
async def list_enrollments(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentListResponse:
    """Latest enrollments across every course."""
    rows = await service.list_enrollments(db, limit=limit)
    return EnrollmentListResponse(
        enrollments=[
            EnrollmentListItem(
                id=enrollment.id,
                enrolled_at=enrollment.enrolled_at,
                progress_percent=enrollment.progress_percent,
                completed_at=enrollment.completed_at,
                user=EnrollmentUser.model_validate(user),
                course=EnrollmentCourse.model_validate(course),
            )
            for enrollment, user, course in rows
        ]
    )
