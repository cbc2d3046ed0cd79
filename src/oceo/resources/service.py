"""Resource library queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select, update

from oceo.db.base import utcnow
from oceo.db.models import Resource

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CATEGORIES = [
    {"value": "templates", "label": "Templates"},
    {"value": "guides", "label": "Guides"},
    {"value": "tech-packs", "label": "Tech Packs"},
    {"value": "mood-boards", "label": "Mood Boards"},
    {"value": "patterns", "label": "Patterns"},
    {"value": "general", "label": "General"},
]

DUPLICATE_SLUG = "A resource with this slug already exists"

_NOT_NULL = frozenset({"title", "slug", "category", "is_published", "is_featured", "display_order"})


async def list_resources(
    db: AsyncSession,
    include_unpublished: bool = False,
    category: str | None = None,
) -> list[Resource]:
    stmt = select(Resource)
    if not include_unpublished:
        stmt = stmt.where(Resource.is_published.is_(True))
    if category:
        stmt = stmt.where(Resource.category == category)
    stmt = stmt.order_by(Resource.display_order.asc(), Resource.created_at.desc(), Resource.id.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_resource(db: AsyncSession, resource_id: int) -> Resource | None:
    return await db.get(Resource, resource_id)


async def get_resource_by_slug(db: AsyncSession, slug: str) -> Resource | None:
    result = await db.execute(select(Resource).where(Resource.slug == slug))
    return result.scalar_one_or_none()


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: int | None = None) -> bool:
    existing = await get_resource_by_slug(db, slug)
    return existing is not None and existing.id != exclude_id


async def create_resource(db: AsyncSession, fields: dict[str, Any], created_by: int) -> Resource:
    """
    Raises:
        ValueError: Missing title/slug/category or the slug is taken.
    """
    if not fields.get("title") or not fields.get("slug") or not fields.get("category"):
        msg = "Title, slug, and category are required"
        raise ValueError(msg)
    if await _slug_taken(db, fields["slug"]):
        raise ValueError(DUPLICATE_SLUG)

    resource = Resource(**fields, created_by=created_by)
    db.add(resource)
    await db.flush()
    logger.info("resource_created", resource_id=resource.id, slug=resource.slug)
    return resource


async def update_resource(db: AsyncSession, resource: Resource, fields: dict[str, Any]) -> Resource:
    """
    Raises:
        ValueError: The new slug is taken.
    """
    slug = fields.get("slug")
    if slug and slug != resource.slug and await _slug_taken(db, slug, exclude_id=resource.id):
        raise ValueError(DUPLICATE_SLUG)
    for key, value in fields.items():
        if value is None and key in _NOT_NULL:
            continue
        setattr(resource, key, value)
    resource.updated_at = utcnow()
    await db.flush()
    return resource


async def delete_resource(db: AsyncSession, resource: Resource) -> None:
    await db.delete(resource)
    await db.flush()
    logger.info("resource_deleted", resource_id=resource.id)


async def record_download(db: AsyncSession, resource: Resource) -> Resource:
    """Increment the download counter in SQL and refresh the row."""
    await db.execute(
        update(Resource).where(Resource.id == resource.id).values(download_count=Resource.download_count + 1)
    )
    await db.refresh(resource, attribute_names=["download_count"])
    return resource


async def get_resource_stats(db: AsyncSession) -> dict[str, Any]:
    rows = await db.execute(select(Resource.category, func.count(Resource.id)).group_by(Resource.category))
    by_category = {category: count for category, count in rows.all()}

    totals = await db.execute(
        select(
            func.count(Resource.id),
            func.count(Resource.id).filter(Resource.is_published.is_(True)),
            func.coalesce(func.sum(Resource.download_count), 0),
        )
    )
    total, published, downloads = totals.one()
    return {
        "total": total,
        "published": published,
        "by_category": by_category,
        "total_downloads": int(downloads),
    }
