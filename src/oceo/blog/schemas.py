"""Blog post request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _BlogPostFields(BaseModel):
    slug: str | None = Field(None, max_length=255)
    author: str | None = Field(None, max_length=100)
    excerpt: str | None = None
    content_json: Any | None = None
    cover_image_url: str | None = None
    og_image_url: str | None = None
    og_title: str | None = Field(None, max_length=255)
    og_description: str | None = None
    meta_title: str | None = Field(None, max_length=60)
    meta_description: str | None = Field(None, max_length=160)
    meta_keywords: str | None = None
    focus_keyword: str | None = Field(None, max_length=100)
    canonical_url: str | None = None
    meta_robots: str | None = Field(None, max_length=50)
    article_type: str | None = Field(None, max_length=50)
    industry: str | None = Field(None, max_length=100)
    target_audience: str | None = None
    key_concepts: str | None = None
    is_published: bool | None = None


class BlogPostCreate(_BlogPostFields):
    """Create a post. title and content are checked by the service (400 when blank)."""

    title: str | None = Field(None, max_length=255)
    content: str | None = None


class BlogPostUpdate(_BlogPostFields):
    """Partial update. Omitted fields are left untouched."""

    title: str | None = Field(None, max_length=255)
    content: str | None = None


class BlogPostResponse(BaseModel):
    """Full blog post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    author: str | None = None
    excerpt: str | None = None
    content: str
    content_json: Any | None = None
    cover_image_url: str | None = None
    og_image_url: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    meta_keywords: str | None = None
    focus_keyword: str | None = None
    canonical_url: str | None = None
    meta_robots: str
    article_type: str
    industry: str | None = None
    target_audience: str | None = None
    key_concepts: str | None = None
    published_at: datetime | None = None
    is_published: bool
    reading_time_minutes: int | None = None
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime


class BlogPostListResponse(BaseModel):
    """Paged listing used by the MCP endpoint."""

    posts: list[BlogPostResponse]
    total: int
    count: int
    limit: int
    offset: int
