"""MMFC and Notion sync API schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

SYNC_FREQUENCY_PATTERN = "^(daily|weekly|manual)$"


class MmfcKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    api_key: str = Field(..., min_length=1)
    base_url: str | None = None
    auto_sync: bool = False
    sync_frequency: str = Field("daily", pattern=SYNC_FREQUENCY_PATTERN)
    skip_validation: bool = False


class MmfcKeyUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    api_key: str | None = None
    base_url: str | None = None
    auto_sync: bool | None = None
    sync_frequency: str | None = Field(None, pattern=SYNC_FREQUENCY_PATTERN)
    is_active: bool | None = None


class MmfcKeyResponse(BaseModel):
    id: int
    name: str
    base_url: str
    masked_api_key: str | None = None
    auto_sync: bool
    sync_frequency: str
    last_sync_at: datetime | None = None
    last_sync_status: str | None = None
    last_sync_error: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MmfcKeyListResponse(BaseModel):
    keys: list[MmfcKeyResponse]


class MmfcProductResponse(BaseModel):
    id: int
    api_key_id: int
    external_id: int
    title: str
    slug: str
    description: str | None = None
    pricing_type: str | None = None
    price: str | None = None
    sale_price: str | None = None
    delivery_type: str | None = None
    cover_image: str | None = None
    featured_image_url: str | None = None
    featured_image_alt: str | None = None
    images: Any = None
    video_url: str | None = None
    has_files: bool
    file_count: int
    has_repository: bool
    checkout_url: str | None = None
    is_visible: bool
    synced_at: datetime

    model_config = {"from_attributes": True}


class MmfcProductListResponse(BaseModel):
    products: list[MmfcProductResponse]
    count: int | None = None


class ProductVisibilityRequest(BaseModel):
    product_id: int
    is_visible: bool


class SchedulingLinkResponse(BaseModel):
    id: int
    api_key_id: int
    external_id: int
    slug: str
    title: str
    description: str | None = None
    duration_minutes: int
    booking_url: str
    max_advance_booking_days: int | None = None
    min_notice_minutes: int | None = None
    is_enabled: bool
    synced_at: datetime
    api_key_name: str | None = None

    model_config = {"from_attributes": True}


class SchedulingLinkListResponse(BaseModel):
    links: list[SchedulingLinkResponse]


class SchedulingToggleRequest(BaseModel):
    link_id: int
    is_enabled: bool


class MmfcServiceResponse(BaseModel):
    id: int
    api_key_id: int
    external_id: int
    title: str
    slug: str
    url: str | None = None
    description: str | None = None
    pricing_type: str | None = None
    price: Decimal | None = None
    sale_price: Decimal | None = None
    featured_image_url: str | None = None
    cover_image: str | None = None
    is_visible: bool
    synced_at: datetime
    api_key_name: str | None = None

    model_config = {"from_attributes": True}


class MmfcServiceListResponse(BaseModel):
    services: list[MmfcServiceResponse]


class ServiceVisibilityRequest(BaseModel):
    service_id: int
    is_visible: bool


class NotionSyncItem(BaseModel):
    id: str | None = None
    title: str
    status: str


class NotionSyncResponse(BaseModel):
    success: bool
    synced: int
    errors: list[str]
    resources: list[NotionSyncItem]


class NotionBlogSyncResponse(BaseModel):
    success: bool
    synced: int
    errors: list[str]
    posts: list[NotionSyncItem]


class NotionBlogStatusResponse(BaseModel):
    configured: bool
    api_key_present: bool
    database_id_present: bool


class NotionSingleSyncResponse(BaseModel):
    success: bool
    message: str
    status: str | None = None


class NotionProductResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    notion_page_id: str
    title: str
    slug: str
    description: str | None
    excerpt: str | None
    price: str | None
    sale_price: str | None
    product_type: str | None
    category: str | None
    cover_image_url: str | None
    checkout_url: str | None
    preview_url: str | None
    is_published: bool
    is_featured: bool
    display_order: int
    updated_at: datetime


class NotionProductDetailResponse(NotionProductResponse):
    content: str | None


class NotionProductListResponse(BaseModel):
    products: list[NotionProductResponse]


class NotionProductFlagsRequest(BaseModel):
    is_published: bool | None = None
    is_featured: bool | None = None
