"""Request schemas for account administration."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator


class ProfileUpdateRequest(BaseModel):
    """Update own profile."""

    name: str | None = Field(None, max_length=100)
    password: str | None = Field(None, min_length=1, max_length=128)


class UserCreateRequest(BaseModel):
    """Admin: create a user."""

    name: str | None = Field(None, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    role: str = "member"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class UserUpdateRequest(BaseModel):
    """Admin: update a user. is_active=False soft-deletes, True restores."""

    name: str | None = Field(None, max_length=100)
    email: EmailStr | None = None
    role: str | None = None
    is_active: bool | None = None
    password: str | None = Field(None, min_length=1, max_length=128)
