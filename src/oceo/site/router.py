"""Link and SEO settings: /api/v1/links, /api/v1/seo."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.database import get_session
from oceo.db.models import User
from oceo.site import service
from oceo.site.schemas import (
    LinkListResponse,
    LinkResponse,
    LinksUpdateRequest,
    SeoEnvelope,
    SeoFields,
    SeoListResponse,
    SeoResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Site"])


@router.get("/links", response_model=LinkListResponse)
async def get_links(db: AsyncSession = Depends(get_session)):
    links = await service.list_links(db)
    return LinkListResponse(links=[LinkResponse.model_validate(link) for link in links])


@router.put("/links", response_model=LinkListResponse)
async def update_links(
    body: LinksUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    links = await service.upsert_links(db, [link.model_dump() for link in body.links], updated_by=admin.id)
    await db.commit()
    return LinkListResponse(links=[LinkResponse.model_validate(link) for link in links])


@router.get("/seo", response_model=SeoListResponse)
async def list_seo(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_seo(db)
    return SeoListResponse(settings=[SeoResponse.model_validate(row) for row in rows])


@router.get("/seo/{page}", response_model=SeoEnvelope)
async def get_seo(page: str, db: AsyncSession = Depends(get_session)):
    """Page metadata, or the site-wide fallback when the page has none."""
    settings = await service.get_seo(db, page)
    if settings is None:
        return SeoEnvelope(seo=SeoResponse(**service.default_seo(page)))
    return SeoEnvelope(seo=SeoResponse.model_validate(settings))


@router.put("/seo/{page}", response_model=SeoEnvelope)
async def update_seo(
    page: str,
    body: SeoFields,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        settings = await service.upsert_seo(db, page, body.model_dump(), updated_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return SeoEnvelope(seo=SeoResponse.model_validate(settings))
