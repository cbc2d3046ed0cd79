"""Checkout and purchase API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class PaymentIntentRequest(BaseModel):
    product_id: int
    customer_email: EmailStr
    customer_name: str | None = None
    upsell_ids: list[int] = Field(default_factory=list)


class ProductSummary(BaseModel):
    id: int
    name: str
    price_in_cents: int


class PaymentIntentResponse(BaseModel):
    client_secret: str | None = None
    payment_intent_id: str
    total_cents: int
    product: ProductSummary
    upsells: list[ProductSummary]


class CartItemRequest(BaseModel):
    product_id: int
    product_source: str = Field("dashboard", pattern=r"^(dashboard|notion)$")
    quantity: int = Field(1, ge=1)


class CartCheckoutRequest(BaseModel):
    items: list[CartItemRequest] = Field(default_factory=list)
    customer_email: EmailStr
    customer_name: str | None = None


class CartLine(BaseModel):
    id: int
    name: str
    price_in_cents: int
    quantity: int
    slug: str
    source: str


class CartCheckoutResponse(BaseModel):
    is_free_order: bool
    client_secret: str | None = None
    payment_intent_id: str | None = None
    total_cents: int
    items: list[CartLine]


class SubscriptionRequest(BaseModel):
    product_id: int
    customer_email: EmailStr
    customer_name: str | None = None
    billing_interval: str = Field("month", pattern=r"^(month|year)$")


class SubscriptionProductSummary(BaseModel):
    id: int
    name: str
    monthly_price_in_cents: int
    yearly_price_in_cents: int | None = None


class SubscriptionResponse(BaseModel):
    client_secret: str
    subscription_id: str
    price_in_cents: int
    billing_interval: str
    product: SubscriptionProductSummary


class PurchaseItemResponse(BaseModel):
    id: int
    product_id: int
    price_in_cents: int
    is_upsell: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PurchaseResponse(BaseModel):
    id: int
    product_id: int
    customer_email: str
    customer_name: str | None = None
    amount_paid_cents: int
    currency: str
    status: str
    stripe_payment_intent_id: str | None = None
    stripe_subscription_id: str | None = None
    stripe_customer_id: str | None = None
    billing_interval: str | None = None
    delivery_email_sent_at: datetime | None = None
    access_granted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PurchaseListItem(PurchaseResponse):
    product_name: str


class PurchaseListResponse(BaseModel):
    purchases: list[PurchaseListItem]


class PurchaseDetailResponse(PurchaseResponse):
    items: list[PurchaseItemResponse]
