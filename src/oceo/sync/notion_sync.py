"""Import the Notion resources database into the resource library."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from sqlalchemy import select

from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import Resource
from oceo.slugs import generate_slug
from oceo.sync.notion_client import NotionApiError, NotionClient

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CATEGORY_MAP = {
    "Template": "templates",
    "Templates": "templates",
    "Guide": "guides",
    "Guides": "guides",
    "Tech Pack": "tech-packs",
    "Tech Packs": "tech-packs",
    "Mood Board": "mood-boards",
    "Mood Boards": "mood-boards",
    "Pattern": "patterns",
    "Patterns": "patterns",
    "General": "general",
}
KNOWN_FILE_TYPES = ("pdf", "xlsx", "docx", "figma", "zip")


DATABASE_SETTINGS = {
    "resources": "notion_resources_db_id",
    "blog": "notion_blog_db_id",
    "products": "notion_products_db_id",
}


class NotionNotConfiguredError(ValueError):
    pass


def ensure_configured(database: str = "resources") -> tuple[str, str]:
    """
    Return the API key and the ID of the named database.

    Raises:
        NotionNotConfiguredError: API key or database ID missing.
    """
    settings = get_settings()
    if not settings.notion_api_key:
        msg = "Notion API key not configured"
        raise NotionNotConfiguredError(msg)
    database_id = getattr(settings, DATABASE_SETTINGS[database])
    if not database_id:
        msg = f"Notion {database} database ID not configured"
        raise NotionNotConfiguredError(msg)
    return settings.notion_api_key, database_id


# ---------------------------------------------------------------------------
# Property mapping
# ---------------------------------------------------------------------------


def first_prop(props: dict[str, Any], *names: str) -> dict[str, Any] | None:
    for name in names:
        if props.get(name):
            return props[name]
    return None


def plain_text(parts: list[dict[str, Any]] | None) -> str:
    return "".join(p.get("plain_text", "") for p in parts or [])


def select_value(prop: dict[str, Any] | None) -> str | None:
    if not prop:
        return None
    if prop.get("type") == "select" and prop.get("select"):
        return prop["select"].get("name")
    if prop.get("type") == "multi_select" and prop.get("multi_select"):
        return prop["multi_select"][0].get("name")
    return None


def url_value(prop: dict[str, Any] | None) -> str | None:
    if prop and prop.get("type") == "url":
        return prop.get("url") or None
    return None


def checkbox_value(prop: dict[str, Any] | None) -> bool:
    return bool(prop and prop.get("type") == "checkbox" and prop.get("checkbox") is True)


def map_category(value: str | None) -> str:
    if not value:
        return "general"
    return CATEGORY_MAP.get(value) or "-".join(value.lower().split())


def detect_file_type(download_url: str | None, notion_url: str | None) -> str:
    if notion_url and not download_url:
        return "notion"
    if download_url:
        if "notion.so" in download_url or "notion.site" in download_url:
            return "notion"
        extension = download_url.rsplit(".", 1)[-1].lower().split("?")[0]
        if extension in KNOWN_FILE_TYPES:
            return extension
    return "notion" if notion_url else "pdf"


def page_title(page: dict[str, Any], default: str, *names: str) -> str:
    """Text of the page's title property, or ``default`` when it is missing or empty."""
    title_prop = first_prop(page.get("properties") or {}, *(names or ("Name", "Title", "title")))
    if title_prop and title_prop.get("type") == "title":
        return plain_text(title_prop.get("title")) or default
    return default


def cover_url(page: dict[str, Any]) -> str | None:
    cover = page.get("cover") or {}
    if cover.get("type") in ("external", "file"):
        return cover[cover["type"]].get("url")
    return None


def page_slug(title: str, page: dict[str, Any]) -> str:
    """
    Slug from the title, or from the page id when the title has no letters or digits.

    Raises:
        ValueError: Neither yields a slug.
    """
    slug = generate_slug(title) or generate_slug(str(page.get("id") or ""))
    if not slug:
        msg = f"Cannot derive a slug for \"{title}\""
        raise ValueError(msg)
    return slug


def page_to_resource_fields(page: dict[str, Any]) -> dict[str, Any]:
    """Map one Notion database row to Resource columns."""
    props = page["properties"]

    title = page_title(page, "Untitled Resource")

    description = ""
    desc_prop = first_prop(props, "Description", "description")
    if desc_prop and desc_prop.get("type") == "rich_text":
        description = plain_text(desc_prop.get("rich_text"))

    download_url = url_value(first_prop(props, "URL", "Link", "Download URL"))
    notion_url = page.get("url")

    file_type = select_value(first_prop(props, "File Type", "FileType"))
    file_type = file_type.lower() if file_type else detect_file_type(download_url, notion_url)

    published_prop = first_prop(props, "Published", "Status")
    is_published = True
    if published_prop and published_prop.get("type") == "checkbox":
        is_published = checkbox_value(published_prop)
    elif published_prop and published_prop.get("type") == "select":
        is_published = (select_value(published_prop) or "").lower() == "published"

    return {
        "title": title,
        "slug": page_slug(title, page),
        "description": description,
        "category": map_category(select_value(first_prop(props, "Category", "Type", "category"))),
        "thumbnail_url": cover_url(page),
        "download_url": download_url,
        "notion_url": notion_url,
        "file_type": file_type,
        "is_published": is_published,
        "is_featured": checkbox_value(first_prop(props, "Featured", "featured")),
    }


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


async def _upsert_resource(db: AsyncSession, fields: dict[str, Any], user_id: int) -> str:
    result = await db.execute(select(Resource).where(Resource.slug == fields["slug"]))
    resource = result.scalar_one_or_none()
    now = utcnow()
    if resource is None:
        db.add(Resource(**fields, created_by=user_id, created_at=now, updated_at=now))
        await db.flush()
        return "created"
    for key, value in fields.items():
        setattr(resource, key, value)
    resource.updated_at = now
    await db.flush()
    return "updated"


async def iter_sync_resources(
    db: AsyncSession,
    user_id: int,
) -> AsyncIterator[tuple[str, dict[str, Any]]]:
    """
    Yield ("progress", {...}) per page, then one ("complete", result).

    Per-page failures are recorded in the result and do not stop the run;
    a failed database query ends it with success False.
    """
    result: dict[str, Any] = {"success": True, "synced": 0, "errors": [], "resources": []}
    try:
        api_key, database_id = ensure_configured()
        async with NotionClient(api_key) as client:
            pages = await client.query_database(database_id, sorts=[{"property": "Name", "direction": "ascending"}])
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError) as e:
        logger.warning("notion_resources_query_failed", error=str(e))
        result["success"] = False
        result["errors"].append(str(e))
        yield "complete", result
        return

    total = len(pages)
    for index, page in enumerate(pages, start=1):
        if "properties" not in page:
            continue
        try:
            fields = page_to_resource_fields(page)
            status = await _upsert_resource(db, fields, user_id)
        except (KeyError, TypeError, AttributeError, IndexError, ValueError) as e:
            logger.warning("notion_resource_sync_failed", page_id=page.get("id"), error=str(e))
            result["errors"].append(f"Failed to sync resource: {e}")
            yield "progress", {
                "current": index,
                "total": total,
                "current_title": "Error syncing resource",
                "status": "error",
            }
            continue
        result["synced"] += 1
        result["resources"].append({"id": page.get("id"), "title": fields["title"], "status": status})
        yield "progress", {"current": index, "total": total, "current_title": fields["title"], "status": status}

    logger.info("notion_resources_synced", synced=result["synced"], errors=len(result["errors"]))
    yield "complete", result


async def sync_notion_resources(
    db: AsyncSession,
    user_id: int,
) -> dict[str, Any]:
    """Run the whole import and return {success, synced, errors, resources}."""
    result: dict[str, Any] = {}
    async for event, payload in iter_sync_resources(db, user_id):
        if event == "complete":
            result = payload
    return result


class SyncTargetNotFoundError(LookupError):
    pass


def _matches_resource(page: dict[str, Any], resource: Resource) -> bool:
    if page.get("url") and page["url"] == resource.notion_url:
        return True
    return generate_slug(page_title(page, "")) == resource.slug


async def sync_single_resource(db: AsyncSession, resource_id: int) -> dict[str, Any]:
    """
    Refresh one resource from its Notion row, matched by page URL or by slug.

    The slug and the publishing flags stay as they are; a missing property
    keeps the stored value.

    Returns:
        {success, message, status?}

    Raises:
        SyncTargetNotFoundError: No resource has this ID.
    """
    resource = await db.get(Resource, resource_id)
    if resource is None:
        msg = "Resource not found"
        raise SyncTargetNotFoundError(msg)
    if not resource.notion_url:
        return {"success": False, "message": "Resource does not have a Notion URL to sync from"}

    try:
        api_key, database_id = ensure_configured()
        async with NotionClient(api_key) as client:
            pages = await client.query_database(database_id)
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError) as e:
        logger.warning("notion_resource_single_sync_failed", resource_id=resource_id, error=str(e))
        return {"success": False, "message": str(e)}

    page = next((p for p in pages if "properties" in p and _matches_resource(p, resource)), None)
    if page is None:
        return {"success": False, "message": "Could not find matching resource in Notion"}

    try:
        fields = page_to_resource_fields(page)
    except ValueError as e:
        return {"success": False, "message": str(e)}
    resource.title = fields["title"]
    resource.description = fields["description"] or resource.description
    if select_value(first_prop(page["properties"], "Category", "Type", "category")):
        resource.category = fields["category"]
    resource.thumbnail_url = fields["thumbnail_url"] or resource.thumbnail_url
    resource.download_url = fields["download_url"]
    resource.notion_url = fields["notion_url"] or resource.notion_url
    resource.file_type = fields["file_type"]
    resource.updated_at = utcnow()
    await db.flush()

    logger.info("notion_resource_synced", resource_id=resource.id, title=resource.title)
    return {"success": True, "message": f'Successfully synced "{resource.title}"', "status": "updated"}
