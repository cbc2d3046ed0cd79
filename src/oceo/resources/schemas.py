from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ResourceCreateRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    content: str | None = None
    category: str | None = Field(None, max_length=50)
    thumbnail_url: str | None = None
    download_url: str | None = None
    notion_url: str | None = None
    file_type: str | None = Field(None, max_length=20)
    is_published: bool = False
    is_featured: bool = False
    required_subscription_tier: str | None = None
    display_order: int = 0


class ResourceUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    content: str | None = None
    category: str | None = Field(None, min_length=1, max_length=50)
    thumbnail_url: str | None = None
    download_url: str | None = None
    notion_url: str | None = None
    file_type: str | None = Field(None, max_length=20)
    is_published: bool | None = None
    is_featured: bool | None = None
    required_subscription_tier: str | None = None
    display_order: int | None = None


class ResourceResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    content: str | None = None
    category: str
    thumbnail_url: str | None = None
    download_url: str | None = None
    notion_url: str | None = None
    file_type: str | None = None
    is_published: bool
    is_featured: bool
    required_subscription_tier: str | None = None
    display_order: int
    download_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ResourceListResponse(BaseModel):
    resources: list[ResourceResponse]


class ResourceStatsResponse(BaseModel):
    total: int
    published: int
    by_category: dict[str, int]
    total_downloads: int


class CategoryOption(BaseModel):
    value: str
    label: str


class CategoryListResponse(BaseModel):
    categories: list[CategoryOption]


class DownloadResponse(BaseModel):
    download_url: str | None
    download_count: int
