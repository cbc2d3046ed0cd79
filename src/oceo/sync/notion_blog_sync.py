"""
Import the Notion blog database into blog posts.

Each database row becomes one post, matched by slug. Page bodies are read as
block trees and rendered to Markdown. New posts are published immediately;
existing posts keep their SEO fields and only take the title, body, excerpt,
cover and publish date from Notion.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from sqlalchemy import select

from oceo.blog.service import calculate_reading_time
from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import BlogPost
from oceo.sync.notion_client import NotionApiError, NotionClient
from oceo.sync.notion_markdown import blocks_to_markdown, extract_excerpt
from oceo.sync.notion_sync import (
    NotionNotConfiguredError,
    SyncTargetNotFoundError,
    cover_url,
    ensure_configured,
    first_prop,
    page_slug,
    page_title,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PAGE_ERRORS = (NotionApiError, httpx.HTTPError, KeyError, TypeError, AttributeError, IndexError, ValueError)


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def page_published_at(page: dict[str, Any]) -> datetime | None:
    """Date from a ``Published`` or ``Date`` property (date or created_time)."""
    prop = first_prop(page.get("properties") or {}, "Published", "Date")
    if not prop:
        return None
    if prop.get("type") == "date":
        return _parse_date((prop.get("date") or {}).get("start"))
    if prop.get("type") == "created_time":
        return _parse_date(page.get("created_time"))
    return None


def page_to_post_fields(page: dict[str, Any], markdown: str) -> dict[str, Any]:
    title = page_title(page, "Untitled", "Title", "Name")
    return {
        "title": title,
        "slug": page_slug(title, page),
        "content": markdown,
        "excerpt": extract_excerpt(markdown),
        "cover_image_url": cover_url(page),
        "published_at": page_published_at(page),
    }


def _post_slug(page: dict[str, Any]) -> str | None:
    try:
        return page_slug(page_title(page, "Untitled", "Title", "Name"), page)
    except ValueError:
        return None


async def _page_markdown(client: NotionClient, page_id: str) -> str:
    return blocks_to_markdown(await client.fetch_block_tree(page_id))


def _apply_to_post(post: BlogPost, fields: dict[str, Any]) -> str:
    """Copy synced fields onto an existing post; "skipped" when nothing differs."""
    published_at = fields["published_at"] or post.published_at
    unchanged = (
        post.title == fields["title"]
        and post.content == fields["content"]
        and post.excerpt == fields["excerpt"]
        and post.cover_image_url == fields["cover_image_url"]
        and post.published_at == published_at
    )
    if unchanged:
        return "skipped"
    post.title = fields["title"]
    post.content = fields["content"]
    post.excerpt = fields["excerpt"]
    post.cover_image_url = fields["cover_image_url"]
    post.published_at = published_at
    post.reading_time_minutes = calculate_reading_time(fields["content"])
    post.updated_at = utcnow()
    return "updated"


async def _upsert_post(db: AsyncSession, fields: dict[str, Any], user_id: int) -> str:
    result = await db.execute(select(BlogPost).where(BlogPost.slug == fields["slug"]))
    post = result.scalar_one_or_none()
    if post is not None:
        status = _apply_to_post(post, fields)
        await db.flush()
        return status

    now = utcnow()
    db.add(
        BlogPost(
            title=fields["title"],
            slug=fields["slug"],
            content=fields["content"],
            excerpt=fields["excerpt"],
            cover_image_url=fields["cover_image_url"],
            author=get_settings().notion_blog_author,
            created_by=user_id,
            is_published=True,
            published_at=fields["published_at"] or now,
            reading_time_minutes=calculate_reading_time(fields["content"]),
            created_at=now,
            updated_at=now,
        )
    )
    await db.flush()
    return "created"


async def sync_notion_blog_posts(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """
    Import every page of the blog database.

    Returns:
        {success, synced, errors, posts: [{id, title, status}]} where status is
        created, updated or skipped (already identical). A failed database query
        sets success False; a failed page is recorded in errors and skipped.
    """
    result: dict[str, Any] = {"success": True, "synced": 0, "errors": [], "posts": []}
    try:
        api_key, database_id = ensure_configured("blog")
        async with NotionClient(api_key) as client:
            pages = await client.query_database(database_id)
            for page in pages:
                if "properties" not in page:
                    continue
                try:
                    fields = page_to_post_fields(page, await _page_markdown(client, page["id"]))
                    status = await _upsert_post(db, fields, user_id)
                except PAGE_ERRORS as e:
                    logger.warning("notion_blog_page_failed", page_id=page.get("id"), error=str(e))
                    result["errors"].append(f"Failed to sync page: {e}")
                    continue
                if status != "skipped":
                    result["synced"] += 1
                result["posts"].append({"id": page["id"], "title": fields["title"], "status": status})
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError) as e:
        logger.warning("notion_blog_query_failed", error=str(e))
        result["success"] = False
        result["errors"].append(str(e))
        return result

    logger.info("notion_blog_synced", synced=result["synced"], errors=len(result["errors"]))
    return result


async def sync_single_blog_post(db: AsyncSession, post_id: int) -> dict[str, Any]:
    """
    Refresh one post from the blog database row with the same slug.

    Returns:
        {success, message, status?}

    Raises:
        SyncTargetNotFoundError: No post has this ID.
    """
    post = await db.get(BlogPost, post_id)
    if post is None:
        msg = "Post not found"
        raise SyncTargetNotFoundError(msg)

    try:
        api_key, database_id = ensure_configured("blog")
        async with NotionClient(api_key) as client:
            pages = await client.query_database(database_id)
            page = next((p for p in pages if "properties" in p and _post_slug(p) == post.slug), None)
            if page is None:
                return {"success": False, "message": "Post not found in Notion database"}
            fields = page_to_post_fields(page, await _page_markdown(client, page["id"]))
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError, ValueError) as e:
        logger.warning("notion_blog_single_sync_failed", post_id=post_id, error=str(e))
        return {"success": False, "message": str(e)}

    status = _apply_to_post(post, fields)
    await db.flush()
    logger.info("notion_blog_post_synced", post_id=post.id, status=status)
    return {"success": True, "message": f'Successfully synced "{post.title}"', "status": status}


def blog_sync_status() -> dict[str, bool]:
    settings = get_settings()
    return {
        "configured": bool(settings.notion_api_key and settings.notion_blog_db_id),
        "api_key_present": bool(settings.notion_api_key),
        "database_id_present": bool(settings.notion_blog_db_id),
    }
