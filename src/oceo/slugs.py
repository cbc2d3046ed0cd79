"""URL slug helpers shared by blog posts, courses, lessons and resources."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_slug(text: str) -> str:
    """Lowercase, collapse every run of non-alphanumerics to '-', strip edge dashes."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


async def is_slug_available(
    db: AsyncSession,
    model: Any,  # noqa: ANN401
    slug: str,
    exclude_id: int | None = None,
) -> bool:
    """True if no row of ``model`` (other than ``exclude_id``) uses ``slug``."""
    stmt = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is None


async def unique_slug(
    db: AsyncSession,
    model: Any,  # noqa: ANN401
    base: str,
    exclude_id: int | None = None,
) -> str:
    """Return ``base`` or the first free ``base-1``, ``base-2``, ..."""
    candidate = base
    counter = 1
    while not await is_slug_available(db, model, candidate, exclude_id):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
