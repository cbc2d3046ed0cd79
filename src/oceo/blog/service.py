"""Blog post queries and publishing rules."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Literal

import structlog
from sqlalchemy import func, select

from oceo.db.base import utcnow
from oceo.db.models import BlogPost
from oceo.slugs import generate_slug, is_slug_available, unique_slug

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from oceo.blog.schemas import BlogPostCreate, BlogPostUpdate

logger = structlog.get_logger()

WORDS_PER_MINUTE = 200

PostStatus = Literal["all", "draft", "published"]


def calculate_reading_time(content: str) -> int:
    """Minutes to read at 200 words per minute, rounded up, never below 1."""
    words = len(content.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


async def list_posts(
    db: AsyncSession,
    status: PostStatus = "all",
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[BlogPost], int]:
    """Posts newest first, filtered by status. Returns (page, total matching)."""
    stmt = select(BlogPost)
    count_stmt = select(func.count(BlogPost.id))
    if status == "published":
        stmt = stmt.where(BlogPost.is_published.is_(True))
        count_stmt = count_stmt.where(BlogPost.is_published.is_(True))
    elif status == "draft":
        stmt = stmt.where(BlogPost.is_published.is_(False))
        count_stmt = count_stmt.where(BlogPost.is_published.is_(False))

    stmt = stmt.order_by(BlogPost.created_at.desc(), BlogPost.id.desc()).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    posts = list((await db.execute(stmt)).scalars().all())
    total = (await db.execute(count_stmt)).scalar() or 0
    return posts, total


async def get_post(db: AsyncSession, post_id: int) -> BlogPost | None:
    return await db.get(BlogPost, post_id)


async def get_published_post_by_slug(db: AsyncSession, slug: str) -> BlogPost | None:
    result = await db.execute(
        select(BlogPost).where(BlogPost.slug == slug, BlogPost.is_published.is_(True))
    )
    return result.scalar_one_or_none()


_OPTIONAL_FIELDS = (
    "author",
    "excerpt",
    "content_json",
    "cover_image_url",
    "og_image_url",
    "og_title",
    "og_description",
    "meta_title",
    "meta_description",
    "meta_keywords",
    "focus_keyword",
    "canonical_url",
    "meta_robots",
    "article_type",
    "industry",
    "target_audience",
    "key_concepts",
)


async def create_post(db: AsyncSession, data: BlogPostCreate, created_by: int | None) -> BlogPost:
    """
    Create a post with a unique slug and computed reading time.

    Raises:
        ValueError: When title or content is blank.
    """
    if not data.title or not data.title.strip() or not data.content or not data.content.strip():
        msg = "Title and content are required"
        raise ValueError(msg)

    base_slug = generate_slug(data.slug or data.title)
    if not base_slug:
        msg = "Could not derive a slug from the title"
        raise ValueError(msg)

    is_published = bool(data.is_published)
    post = BlogPost(
        title=data.title.strip(),
        slug=await unique_slug(db, BlogPost, base_slug),
        content=data.content,
        is_published=is_published,
        published_at=utcnow() if is_published else None,
        reading_time_minutes=calculate_reading_time(data.content),
        created_by=created_by,
    )
    for field in _OPTIONAL_FIELDS:
        value = getattr(data, field)
        if value is not None:
            setattr(post, field, value)

    db.add(post)
    await db.flush()
    logger.info("blog_post_created", post_id=post.id, slug=post.slug, published=is_published)
    return post


async def update_post(db: AsyncSession, post: BlogPost, data: BlogPostUpdate) -> BlogPost:
    """
    Apply a partial update.

    Publishing for the first time stamps published_at; unpublishing clears it.

    Raises:
        ValueError: Blank title/content, or slug already taken.
    """
    if data.title is not None:
        if not data.title.strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        post.title = data.title.strip()

    if data.content is not None:
        if not data.content.strip():
            msg = "Content cannot be empty"
            raise ValueError(msg)
        post.content = data.content
        post.reading_time_minutes = calculate_reading_time(data.content)

    if data.slug is not None:
        new_slug = generate_slug(data.slug)
        if new_slug != post.slug:
            if not new_slug or not await is_slug_available(db, BlogPost, new_slug, exclude_id=post.id):
                msg = "Slug is already in use"
                raise ValueError(msg)
            post.slug = new_slug

    for field in _OPTIONAL_FIELDS:
        if field in data.model_fields_set:
            setattr(post, field, getattr(data, field))

    if data.is_published is not None and data.is_published != post.is_published:
        post.is_published = data.is_published
        if data.is_published and post.published_at is None:
            post.published_at = utcnow()
        elif not data.is_published:
            post.published_at = None

    post.updated_at = utcnow()
    await db.flush()
    return post


async def delete_post(db: AsyncSession, post: BlogPost) -> None:
    await db.delete(post)
    await db.flush()
    logger.info("blog_post_deleted", post_id=post.id)
