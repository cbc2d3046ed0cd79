"""Blog router: public reading endpoints and admin CMS endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.blog.schemas import BlogPostCreate, BlogPostResponse, BlogPostUpdate
from oceo.blog.service import (
    create_post,
    delete_post,
    get_post,
    get_published_post_by_slug,
    list_posts,
    update_post,
)
from oceo.database import get_session
from oceo.db.models import User

router = APIRouter(prefix="/api/v1/blog", tags=["Blog"])


# ---------------------------------------------------------------------------
# Admin (declared before /{slug} so "admin" is never read as a slug)
# ---------------------------------------------------------------------------


@router.get("/admin/posts", response_model=list[BlogPostResponse])
async def admin_list_posts(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[BlogPostResponse]:
    """All posts, drafts included."""
    posts, _total = await list_posts(db, status="all")
    return [BlogPostResponse.model_validate(p) for p in posts]


@router.post("/admin/posts", response_model=BlogPostResponse, status_code=201)
async def admin_create_post(
    body: BlogPostCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    try:
        post = await create_post(db, body, created_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BlogPostResponse.model_validate(post)


@router.get("/admin/posts/{post_id}", response_model=BlogPostResponse)
async def admin_get_post(
    post_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    post = await get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return BlogPostResponse.model_validate(post)


@router.put("/admin/posts/{post_id}", response_model=BlogPostResponse)
async def admin_update_post(
    post_id: int,
    body: BlogPostUpdate,
    _admin: User = Depends(require_admin),
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


@router.delete("/admin/posts/{post_id}")
async def admin_delete_post(
    post_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    post = await get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    await delete_post(db, post)
    await db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("", response_model=list[BlogPostResponse])
async def list_published_posts(
    db: AsyncSession = Depends(get_session),
) -> list[BlogPostResponse]:
    """Published posts, newest first."""
    posts, _total = await list_posts(db, status="published")
    return [BlogPostResponse.model_validate(p) for p in posts]


@router.get("/{slug}", response_model=BlogPostResponse)
async def get_published_post(
    slug: str,
    db: AsyncSession = Depends(get_session),
) -> BlogPostResponse:
    post = await get_published_post_by_slug(db, slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return BlogPostResponse.model_validate(post)
