"""Community API request and response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AuthorResponse(BaseModel):
    id: int
    name: str | None = None

    model_config = {"from_attributes": True}


class PostCourseResponse(BaseModel):
    id: int
    title: str
    slug: str

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    id: int
    user_id: int
    course_id: int | None = None
    title: str
    content: str
    post_type: str
    is_pinned: bool
    likes_count: int
    comments_count: int
    created_at: datetime
    updated_at: datetime
    user: AuthorResponse | None = None
    course: PostCourseResponse | None = None


class PostListResponse(BaseModel):
    posts: list[PostResponse]


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    parent_id: int | None = None
    content: str
    created_at: datetime
    updated_at: datetime
    user: AuthorResponse | None = None
    replies: list[CommentResponse] = []


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]


class PostDetailResponse(BaseModel):
    post: PostResponse
    comments: list[CommentResponse]
    liked: bool


class PostCreatedResponse(BaseModel):
    post: PostResponse
    points_awarded: int
    new_achievements: list[str]


class PostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    post_type: str = "discussion"
    course_id: int | None = None


class PostUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    post_type: str | None = None


class PinRequest(BaseModel):
    is_pinned: bool


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    parent_id: int | None = None


class CommentUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1)


class LikeResponse(BaseModel):
    success: bool
    liked: bool
    likes_count: int


class LikersResponse(BaseModel):
    users: list[AuthorResponse]


class CommunityStatsResponse(BaseModel):
    total_posts: int
    total_comments: int
    pinned_posts: int
    posts_created: int
    comments_created: int
    likes_received: int
