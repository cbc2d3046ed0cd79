"""Studio Systems learner router: /api/v1/studio/*."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user
from oceo.checkout.stripe_client import StripeError, StripeNotConfiguredError
from oceo.database import get_session
from oceo.db.models import Course, User
from oceo.gamification.schemas import AchievementResponse
from oceo.studio import progress_service, subscription_service
from oceo.studio.schemas import (
    CatalogueCourse,
    CatalogueResponse,
    CheckoutUrlResponse,
    CompleteLessonRequest,
    CompleteLessonResponse,
    CourseViewResponse,
    EnrollmentResponse,
    LearningStatsResponse,
    LessonViewResponse,
    MyCourse,
    MyCoursesResponse,
    SubscriptionCheckoutRequest,
    SubscriptionInfo,
    SubscriptionStatusResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/studio", tags=["Studio"])

RECENT_COURSES_LIMIT = 6


async def _published_course_or_404(db: AsyncSession, slug: str) -> Course:
    course = await progress_service.get_published_course(db, slug)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@router.get("/courses", response_model=CatalogueResponse)
async def list_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CatalogueResponse:
    items = await progress_service.list_catalogue(db, user.id)
    return CatalogueResponse(courses=[CatalogueCourse(**item) for item in items])


@router.get("/courses/{slug}", response_model=CourseViewResponse)
async def get_course(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CourseViewResponse:
    course = await _published_course_or_404(db, slug)
    view = await progress_service.get_course_view(db, course, user.id)
    enrollment = view.pop("enrollment")
    return CourseViewResponse(
        **view,
        enrollment=EnrollmentResponse.model_validate(enrollment) if enrollment else None,
    )


@router.post("/courses/{slug}/enroll", response_model=EnrollmentResponse, status_code=201)
async def enroll(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    course = await _published_course_or_404(db, slug)
    try:
        enrollment = await progress_service.enroll(db, user.id, course)
    except progress_service.AlreadyEnrolledError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return EnrollmentResponse.model_validate(enrollment)


@router.delete("/courses/{slug}/enroll")
async def unenroll(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    course = await _published_course_or_404(db, slug)
    if not await progress_service.unenroll(db, user.id, course):
        raise HTTPException(status_code=404, detail="Not enrolled")
    await db.commit()
    return {"success": True}


@router.post("/courses/{slug}/access")
async def access_course(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    """Acknowledge that the user opened the course."""
    course = await _published_course_or_404(db, slug)
    logger.info("course_accessed", user_id=user.id, course_id=course.id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


@router.get("/courses/{slug}/lessons/{lesson_slug}", response_model=LessonViewResponse)
async def get_lesson(
    slug: str,
    lesson_slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonViewResponse:
    course = await _published_course_or_404(db, slug)
    try:
        view = await progress_service.get_lesson_view(db, course, lesson_slug, user.id)
    except progress_service.EnrollmentRequiredError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    if view is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return LessonViewResponse(**view)


@router.post("/courses/{slug}/lessons/{lesson_slug}/complete", response_model=CompleteLessonResponse)
async def complete_lesson(
    slug: str,
    lesson_slug: str,
    body: CompleteLessonRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompleteLessonResponse:
    """Mark a lesson complete. Every write lands in one commit."""
    course = await _published_course_or_404(db, slug)
    lesson, _lessons = await progress_service.find_course_lesson(db, course, lesson_slug)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")

    try:
        result = await progress_service.complete_lesson(
            db,
            user.id,
            course,
            lesson,
            time_spent_minutes=body.time_spent_minutes if body else None,
        )
    except progress_service.EnrollmentRequiredError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except progress_service.AlreadyCompletedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    return CompleteLessonResponse(
        points_awarded=result.points_awarded,
        progress=result.progress,
        course_completed=result.course_completed,
        achievements_earned=[AchievementResponse.model_validate(a) for a in result.achievements],
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/my-courses", response_model=MyCoursesResponse)
async def my_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MyCoursesResponse:
    items = await progress_service.list_my_courses(db, user.id)
    return MyCoursesResponse(courses=[MyCourse(**item) for item in items])


@router.get("/recent-courses", response_model=MyCoursesResponse)
async def recent_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MyCoursesResponse:
    items = await progress_service.list_my_courses(db, user.id, limit=RECENT_COURSES_LIMIT)
    return MyCoursesResponse(courses=[MyCourse(**item) for item in items])


@router.get("/stats", response_model=LearningStatsResponse)
async def stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LearningStatsResponse:
    return LearningStatsResponse(**await progress_service.get_learning_stats(db, user.id))


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def subscription_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SubscriptionStatusResponse:
    subscription = await subscription_service.get_subscription(db, user.id)
    return SubscriptionStatusResponse(
        has_subscription=subscription is not None,
        is_active=subscription_service.is_subscription_active(subscription),
        subscription=SubscriptionInfo.model_validate(subscription) if subscription else None,
    )


@router.post("/subscription/checkout", response_model=CheckoutUrlResponse)
async def subscription_checkout(
    body: SubscriptionCheckoutRequest,
    user: User = Depends(get_current_user),
) -> CheckoutUrlResponse:
    try:
        url = await subscription_service.create_studio_checkout(user, body.price_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (StripeError, StripeNotConfiguredError) as e:
        logger.error("studio_checkout_failed", user_id=user.id, error=str(e))
        raise HTTPException(status_code=502, detail="Failed to create checkout session") from e
    return CheckoutUrlResponse(url=url)
