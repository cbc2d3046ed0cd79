from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LinkItem(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., max_length=255)
    url: str


class LinkResponse(LinkItem):
    id: int
    updated_by: int | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class LinksUpdateRequest(BaseModel):
    links: list[LinkItem]


class LinkListResponse(BaseModel):
    links: list[LinkResponse]


class SeoFields(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    keywords: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image_url: str | None = None
    og_type: str | None = None
    twitter_card: str | None = None
    twitter_title: str | None = None
    twitter_description: str | None = None
    twitter_image_url: str | None = None
    canonical_url: str | None = None
    meta_robots: str | None = None


class SeoResponse(SeoFields):
    page: str
    id: int | None = None
    updated_by: int | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SeoEnvelope(BaseModel):
    seo: SeoResponse


class SeoListResponse(BaseModel):
    settings: list[SeoResponse]
