"""Course administration schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CourseCreateRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    short_description: str | None = Field(None, max_length=500)
    cover_image_url: str | None = None
    difficulty: str = Field("beginner", pattern=r"^(beginner|intermediate|advanced)$")
    estimated_minutes: int | None = Field(None, ge=0)
    is_published: bool = False
    is_featured: bool = False
    required_subscription_tier: str | None = Field(None, max_length=50)
    display_order: int = 0


class CourseUpdateRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    short_description: str | None = Field(None, max_length=500)
    cover_image_url: str | None = None
    difficulty: str | None = Field(None, pattern=r"^(beginner|intermediate|advanced)$")
    estimated_minutes: int | None = Field(None, ge=0)
    is_published: bool | None = None
    is_featured: bool | None = None
    required_subscription_tier: str | None = Field(None, max_length=50)
    display_order: int | None = None


class ModuleCreateRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    display_order: int | None = None


class ModuleUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    display_order: int | None = None


class LessonCreateRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    content: str | None = None
    video_url: str | None = None
    video_duration_minutes: int | None = Field(None, ge=0)
    is_preview: bool = False
    points_reward: int | None = Field(None, ge=0)
    display_order: int = 0


class LessonUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    content: str | None = None
    video_url: str | None = None
    video_duration_minutes: int | None = Field(None, ge=0)
    is_preview: bool | None = None
    points_reward: int | None = Field(None, ge=0)
    display_order: int | None = None


class ReorderModulesRequest(BaseModel):
    module_ids: list[int]


class ReorderLessonsRequest(BaseModel):
    lesson_ids: list[int]


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    module_id: int
    title: str
    slug: str
    description: str | None = None
    content: str | None = None
    video_url: str | None = None
    video_duration_minutes: int | None = None
    is_preview: bool
    points_reward: int
    display_order: int
    created_at: datetime
    updated_at: datetime


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    description: str | None = None
    display_order: int
    created_at: datetime
    updated_at: datetime


class ModuleWithLessonsResponse(ModuleResponse):
    lessons: list[LessonResponse] = []


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: str | None = None
    short_description: str | None = None
    cover_image_url: str | None = None
    difficulty: str
    estimated_minutes: int | None = None
    is_published: bool
    is_featured: bool
    required_subscription_tier: str | None = None
    display_order: int
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime


class CourseCounts(BaseModel):
    modules: int
    lessons: int
    enrollments: int


class CourseListItem(CourseResponse):
    count: CourseCounts = Field(serialization_alias="_count")


class CourseStats(BaseModel):
    total_modules: int
    total_lessons: int
    total_duration_minutes: int
    total_enrollments: int


class CourseDetailResponse(CourseResponse):
    modules: list[ModuleWithLessonsResponse] = []
    stats: CourseStats


class EnrollmentUser(BaseModel):
    id: int
    name: str | None = None
    email: str

    model_config = ConfigDict(from_attributes=True)


class EnrollmentCourse(BaseModel):
    id: int
    title: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class EnrollmentListItem(BaseModel):
    id: int
    enrolled_at: datetime
    progress_percent: int
    completed_at: datetime | None = None
    user: EnrollmentUser
    course: EnrollmentCourse


class EnrollmentListResponse(BaseModel):
    enrollments: list[EnrollmentListItem]
