"""MCP API key schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class McpKeyCreateRequest(BaseModel):
    """Create a new MCP API key."""

    name: str = Field(..., min_length=1, max_length=100)
    permissions: dict[str, list[str]] | None = None
    expires_in_days: int | None = Field(None, ge=1, le=3650)


class McpKeyResponse(BaseModel):
    """Key listing (prefix only, never the full key)."""

    id: int
    name: str
    key_prefix: str
    permissions: dict[str, list[str]]
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class McpKeyCreateResponse(McpKeyResponse):
    """Response when creating a key (full key shown ONCE)."""

    key: str  # Full key, shown once, never again
