"""Studio API response and request schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from oceo.gamification.schemas import AchievementResponse


class LessonLink(BaseModel):
    slug: str
    title: str


class CourseRef(BaseModel):
    id: int
    title: str
    slug: str


class CatalogueCourse(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    thumbnail_url: str | None = None
    difficulty: str
    total_lessons: int
    estimated_duration: int | None = None
    is_enrolled: bool
    progress: int | None = None


class CatalogueResponse(BaseModel):
    courses: list[CatalogueCourse]


class OutlineLesson(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    duration_minutes: int | None = None
    display_order: int
    is_completed: bool
    is_free: bool


class OutlineModule(BaseModel):
    id: int
    title: str
    description: str | None = None
    display_order: int
    lessons: list[OutlineLesson]


class EnrollmentResponse(BaseModel):
    id: int
    course_id: int
    enrolled_at: datetime
    progress_percent: int
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class CourseViewResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    thumbnail_url: str | None = None
    difficulty: str
    is_enrolled: bool
    enrollment: EnrollmentResponse | None = None
    progress: int
    total_lessons: int
    completed_lessons: int
    modules: list[OutlineModule]
    next_lesson: LessonLink | None = None


class LessonDetail(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    content: str | None = None
    video_url: str | None = None
    duration_minutes: int | None = None
    is_completed: bool
    points_reward: int


class LessonListItem(BaseModel):
    id: int
    title: str
    slug: str
    is_completed: bool
    duration_minutes: int | None = None


class LessonViewResponse(BaseModel):
    lesson: LessonDetail
    course: CourseRef
    prev_lesson: LessonLink | None = None
    next_lesson: LessonLink | None = None
    all_lessons: list[LessonListItem]


class CompleteLessonRequest(BaseModel):
    time_spent_minutes: int | None = Field(None, ge=0)


class CompleteLessonResponse(BaseModel):
    success: bool = True
    points_awarded: int
    progress: int | None = None
    course_completed: bool
    achievements_earned: list[AchievementResponse]


class MyCourse(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    thumbnail_url: str | None = None
    difficulty: str
    progress: int
    total_lessons: int
    completed_lessons: int
    enrolled_at: datetime
    completed_at: datetime | None = None
    next_lesson_slug: str | None = None


class MyCoursesResponse(BaseModel):
    courses: list[MyCourse]


class LearningStatsResponse(BaseModel):
    total_enrollments: int
    completed_courses: int
    in_progress_courses: int
    average_progress: int
    lessons_completed: int
    total_time_spent_minutes: int
    points: int
    streak: int
    rank: int | None = None


class SubscriptionInfo(BaseModel):
    tier: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool

    model_config = {"from_attributes": True}


class SubscriptionStatusResponse(BaseModel):
    has_subscription: bool
    is_active: bool
    subscription: SubscriptionInfo | None = None


class SubscriptionCheckoutRequest(BaseModel):
    price_id: str


class CheckoutUrlResponse(BaseModel):
    url: str
