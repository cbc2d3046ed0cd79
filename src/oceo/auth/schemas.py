"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class SignUpRequest(BaseModel):
    """Create a member account with email + password."""

    name: str | None = Field(None, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SignInRequest(BaseModel):
    """Sign in with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class UserResponse(BaseModel):
    """User as seen by the user themselves or an admin."""

    id: int
    name: str | None = None
    email: str
    role: str
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class SessionResponse(BaseModel):
    """Returned after sign-in / sign-up. The token is also set as a cookie."""

    token: str
    expires: datetime
    user: UserResponse
