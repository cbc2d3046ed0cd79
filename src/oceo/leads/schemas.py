"""Application and lead API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class ApplicationCreateRequest(BaseModel):
    type: str | None = None
    name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    social_handle: str | None = Field(None, max_length=255)
    interest: str | None = None
    experiences: str | None = None
    growth_areas: str | None = None
    obstacles: str | None = None
    willing_to_invest: str | None = Field(None, max_length=50)
    additional_info: str | None = None


class ApplicationReviewRequest(BaseModel):
    status: str | None = None
    notes: str | None = None


class ApplicationResponse(BaseModel):
    id: int
    type: str
    name: str
    email: str
    phone: str | None = None
    social_handle: str | None = None
    interest: str | None = None
    experiences: str | None = None
    growth_areas: str | None = None
    obstacles: str | None = None
    willing_to_invest: str | None = None
    additional_info: str | None = None
    status: str
    notes: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]


class ClaimFreeProductRequest(BaseModel):
    email: EmailStr
    name: str | None = None
    product_slug: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)


class WaitlistRequest(BaseModel):
    email: EmailStr
    name: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LeadResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    product_slug: str | None = None
    product_name: str | None = None
    source: str
    delivery_email_sent_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LeadListResponse(BaseModel):
    leads: list[LeadResponse]
