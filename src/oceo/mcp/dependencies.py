"""FastAPI dependencies that authenticate MCP clients by API key."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.database import get_session
from oceo.db.models import McpApiKey
from oceo.mcp.api_keys import has_permission, verify_mcp_key


def extract_api_key(request: Request) -> str | None:
    """Authorization: Bearer <key> first, then X-API-Key."""
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.headers.get("x-api-key") or None


async def get_mcp_key(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> McpApiKey:
    raw = extract_api_key(request)
    if raw is None:
        raise HTTPException(status_code=401, detail="Missing API key")
    api_key = await verify_mcp_key(db, raw)
    if api_key is None:
        raise HTTPException(status_code=401, detail="Invalid or expired API key")
    return api_key


def require_mcp_permission(resource: str, operation: str) -> Callable[..., Awaitable[McpApiKey]]:
    """Dependency factory: the key must grant ``operation`` on ``resource``."""

    async def _check(api_key: McpApiKey = Depends(get_mcp_key)) -> McpApiKey:
        if not has_permission(api_key, resource, operation):
            raise HTTPException(
                status_code=403,
                detail=f"API key lacks {resource}:{operation} permission",
            )
        return api_key

    return _check
