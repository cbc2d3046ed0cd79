"""Dashboard product API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

_PRODUCT_TYPE = r"^(one_time|subscription)$"


class _ProductFields(BaseModel):
    description: str | None = None
    short_description: str | None = Field(None, max_length=500)
    cover_image_url: str | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    yearly_price_in_cents: int | None = Field(None, ge=0)
    delivery_type: str | None = None
    download_url: str | None = None
    access_instructions: str | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    display_order: int | None = None
    meta_title: str | None = Field(None, max_length=60)
    meta_description: str | None = Field(None, max_length=160)
    og_image_url: str | None = None


class ProductCreateRequest(_ProductFields):
    name: str | None = None
    slug: str | None = None
    product_type: str = Field("one_time", pattern=_PRODUCT_TYPE)
    price_in_cents: int | None = None


class ProductUpdateRequest(_ProductFields):
    name: str | None = None
    slug: str | None = None
    product_type: str | None = Field(None, pattern=_PRODUCT_TYPE)
    price_in_cents: int | None = None


class ProductResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    short_description: str | None = None
    cover_image_url: str | None = None
    product_type: str
    price_in_cents: int
    currency: str
    yearly_price_in_cents: int | None = None
    delivery_type: str
    download_url: str | None = None
    access_instructions: str | None = None
    is_published: bool
    is_featured: bool
    display_order: int
    stripe_product_id: str | None = None
    stripe_price_id: str | None = None
    stripe_yearly_price_id: str | None = None
    stripe_synced_at: datetime | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    og_image_url: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductListResponse(BaseModel):
    products: list[ProductResponse]


class UpsellCreateRequest(BaseModel):
    upsell_product_id: int
    display_order: int | None = None
    discount_percent: int | None = Field(None, ge=0, le=100)


class UpsellResponse(BaseModel):
    id: int
    display_order: int
    discount_percent: int | None = None
    upsell_product: ProductResponse


class UpsellListResponse(BaseModel):
    upsells: list[UpsellResponse]
    available_products: list[ProductResponse]


class PublicProduct(BaseModel):
    """Storefront view: no download URL or processor IDs."""

    id: int
    name: str
    slug: str
    description: str | None = None
    short_description: str | None = None
    cover_image_url: str | None = None
    product_type: str
    price_in_cents: int
    yearly_price_in_cents: int | None = None
    currency: str
    delivery_type: str
    is_featured: bool
    meta_title: str | None = None
    meta_description: str | None = None
    og_image_url: str | None = None

    model_config = {"from_attributes": True}


class PublicUpsell(BaseModel):
    id: int
    name: str
    short_description: str | None = None
    price_in_cents: int
    discount_percent: int | None = None


class PublicProductListResponse(BaseModel):
    products: list[PublicProduct]


class PublicProductDetailResponse(BaseModel):
    product: PublicProduct
    upsells: list[PublicUpsell]
