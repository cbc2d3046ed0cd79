"""Link and SEO settings queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from oceo.db.base import utcnow
from oceo.db.models import LinkSetting, SeoSetting

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_SEO = {
    "title": "Patrick Farrell | Tech Strategy & Business Growth",
    "description": "Strategy, Systems, and Support for Start-ups, Entrepreneurs & Coaches.",
    "keywords": "tech strategy, business growth, startups, entrepreneurs, coaches",
    "og_title": None,
    "og_description": None,
    "og_image_url": None,
    "og_type": "website",
    "twitter_card": "summary_large_image",
    "twitter_title": None,
    "twitter_description": None,
    "twitter_image_url": None,
    "canonical_url": None,
    "meta_robots": "index, follow",
}

# Empty values fall back to these on write
_SEO_WRITE_DEFAULTS = {
    "og_type": "website",
    "twitter_card": "summary_large_image",
    "meta_robots": "index, follow",
}


async def list_links(db: AsyncSession) -> list[LinkSetting]:
    result = await db.execute(select(LinkSetting).order_by(LinkSetting.key))
    return list(result.scalars().all())


async def upsert_links(db: AsyncSession, links: list[dict[str, str]], updated_by: int) -> list[LinkSetting]:
    """Create or update each link by key."""
    keys = [link["key"] for link in links]
    result = await db.execute(select(LinkSetting).where(LinkSetting.key.in_(keys)))
    existing = {row.key: row for row in result.scalars().all()}

    now = utcnow()
    for link in links:
        row = existing.get(link["key"])
        if row is None:
            row = LinkSetting(key=link["key"])
            db.add(row)
            existing[row.key] = row
        row.label = link["label"]
        row.url = link["url"]
        row.updated_by = updated_by
        row.updated_at = now
    await db.flush()
    logger.info("links_updated", keys=keys, updated_by=updated_by)
    return await list_links(db)


async def get_seo(db: AsyncSession, page: str) -> SeoSetting | None:
    result = await db.execute(select(SeoSetting).where(SeoSetting.page == page))
    return result.scalar_one_or_none()


def default_seo(page: str) -> dict[str, Any]:
    return {"page": page, **DEFAULT_SEO}


async def list_seo(db: AsyncSession) -> list[SeoSetting]:
    result = await db.execute(select(SeoSetting).order_by(SeoSetting.page))
    return list(result.scalars().all())


async def upsert_seo(db: AsyncSession, page: str, fields: dict[str, Any], updated_by: int) -> SeoSetting:
    """
    Raises:
        ValueError: Title or description missing.
    """
    if not fields.get("title") or not fields.get("description"):
        msg = "Title and description are required"
        raise ValueError(msg)

    settings = await get_seo(db, page)
    if settings is None:
        settings = SeoSetting(page=page)
        db.add(settings)

    for key in DEFAULT_SEO:
        value = fields.get(key) or None
        if value is None:
            value = _SEO_WRITE_DEFAULTS.get(key)
        setattr(settings, key, value)
    settings.updated_by = updated_by
    settings.updated_at = utcnow()
    await db.flush()
    logger.info("seo_updated", page=page, updated_by=updated_by)
    return settings
