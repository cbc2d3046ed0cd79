"""MCP router: key administration and API-key authenticated blog access."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.blog.schemas import BlogPostCreate, BlogPostListResponse, BlogPostResponse, BlogPostUpdate
from oceo.blog.service import create_post, delete_post, get_post, list_posts, update_post
from oceo.config import get_settings
from oceo.database import get_session
from oceo.db.models import McpApiKey, User
from oceo.mcp.api_keys import create_mcp_key, deactivate_mcp_key, list_mcp_keys
from oceo.mcp.dependencies import require_mcp_permission
from oceo.mcp.schemas import McpKeyCreateRequest, McpKeyCreateResponse, McpKeyResponse

router = APIRouter(prefix="/api/v1/mcp", tags=["MCP"])


# ---------------------------------------------------------------------------
# Key administration
# ---------------------------------------------------------------------------


@router.get("/keys", response_model=list[McpKeyResponse])
async def list_keys(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[McpKeyResponse]:
    """List MCP keys (prefix only, never the full key)."""
    return [McpKeyResponse.model_validate(k) for k in await list_mcp_keys(db)]


@router.post("/keys", response_model=McpKeyCreateResponse, status_code=201)
async def create_key(
    body: McpKeyCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> McpKeyCreateResponse:
    """Create a new MCP key. Returns the full key ONCE."""
    expires_in_days = body.expires_in_days or get_settings().mcp_key_default_expiry_days
    api_key, full_key = await create_mcp_key(
        db,
        name=body.name,
        created_by=admin.id,
        permissions=body.permissions,
        expires_in_days=expires_in_days,
    )
    await db.commit()
    return McpKeyCreateResponse(
        id=api_key.id,
        name=api_key.name,
        key_prefix=api_key.key_prefix,
        permissions=api_key.permissions,
        last_used_at=api_key.last_used_at,
        expires_at=api_key.expires_at,
        is_active=api_key.is_active,
        created_at=api_key.created_at,
        key=full_key,
    )


@router.delete("/keys/{key_id}")
async def revoke_key(
    key_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Deactivate an MCP key."""
    if not await deactivate_mcp_key(db, key_id):
        raise HTTPException(status_code=404, detail="API key not found")
    await db.commit()
    return {"status": "api_key_revoked"}


# ---------------------------------------------------------------------------
# Blog over MCP
# ---------------------------------------------------------------------------

_blog_read = require_mcp_permission("blog", "read")
_blog_write = require_mcp_permission("blog", "write")


@router.get("/blog", response_model=BlogPostListResponse)
async def mcp_list_posts(
    status: Literal["all", "draft", "published"] = "all",
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _key: McpApiKey = Depends(_blog_read),
    db: AsyncSession = Depends(get_session),
) -> BlogPostListResponse:
    posts, total = await list_posts(db, status=status, limit=limit, offset=offset)
    await db.commit()
    return BlogPostListResponse(
        posts=[BlogPostResponse.model_validate(p) for p in posts],
        total=total,
        count=len(posts),
        limit=limit,
        offset=offset,
    )


@router.post("/blog", response_model=BlogPostResponse, status_code=201)
async def mcp_create_post(
    body: BlogPostCreate,
    key: McpApiKey = Depends(_blog_write),
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    try:
        post = await create_post(db, body, created_by=key.created_by)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BlogPostResponse.model_validate(post)


@router.get("/blog/{post_id}", response_model=BlogPostResponse)
async def mcp_get_post(
    post_id: int,
    _key: McpApiKey = Depends(_blog_read),
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    post = await get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    await db.commit()
    return BlogPostResponse.model_validate(post)


@router.put("/blog/{post_id}", response_model=BlogPostResponse)
async def mcp_update_post(
    post_id: int,
    body: BlogPostUpdate,
    _key: McpApiKey = Depends(_blog_write),
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    post = await get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    try:
        await update_post(db, post, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BlogPostResponse.model_validate(post)


@router.delete("/blog/{post_id}")
async def mcp_delete_post(
    post_id: int,
    _key: McpApiKey = Depends(_blog_write),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    post = await get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    await delete_post(db, post)
    await db.commit()
    return {"success": True}
