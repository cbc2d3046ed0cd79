"""Resource library router: /api/v1/resources/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user_optional, require_admin
from oceo.auth.service import ADMIN_ROLES
from oceo.database import get_session
from oceo.db.models import User
from oceo.resources import service
from oceo.resources.schemas import (
    CategoryListResponse,
    CategoryOption,
    DownloadResponse,
    ResourceCreateRequest,
    ResourceListResponse,
    ResourceResponse,
    ResourceStatsResponse,
    ResourceUpdateRequest,
)

router = APIRouter(prefix="/api/v1/resources", tags=["Resources"])


def _is_admin(user: User | None) -> bool:
    return user is not None and user.role in ADMIN_ROLES


@router.get("", response_model=ResourceListResponse)
async def list_resources(
    include_unpublished: bool = Query(False),
    category: str | None = Query(None),
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
):
    """Published resources; drafts too when an admin asks for them."""
    resources = await service.list_resources(
        db, include_unpublished=include_unpublished and _is_admin(user), category=category
    )
    return ResourceListResponse(resources=[ResourceResponse.model_validate(r) for r in resources])


@router.post("", response_model=ResourceResponse, status_code=201)
async def create_resource(
    body: ResourceCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        resource = await service.create_resource(db, body.model_dump(), created_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ResourceResponse.model_validate(resource)


@router.get("/stats", response_model=ResourceStatsResponse)
async def resource_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return ResourceStatsResponse(**await service.get_resource_stats(db))


@router.get("/categories", response_model=CategoryListResponse)
async def resource_categories():
    return CategoryListResponse(categories=[CategoryOption(**c) for c in service.CATEGORIES])


@router.get("/{resource_id}", response_model=ResourceResponse)
async def get_resource(
    resource_id: int,
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
):
    resource = await service.get_resource(db, resource_id)
    if resource is None or (not resource.is_published and not _is_admin(user)):
        raise HTTPException(status_code=404, detail="Resource not found")
    return ResourceResponse.model_validate(resource)


@router.put("/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: int,
    body: ResourceUpdateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    resource = await service.get_resource(db, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    try:
        await service.update_resource(db, resource, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ResourceResponse.model_validate(resource)


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    resource = await service.get_resource(db, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    await service.delete_resource(db, resource)
    await db.commit()
    return {"success": True}


@router.post("/{resource_id}/download", response_model=DownloadResponse)
async def download_resource(
    resource_id: int,
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
):
    """Count a download and hand back the file URL."""
    resource = await service.get_resource(db, resource_id)
    if resource is None or (not resource.is_published and not _is_admin(user)):
        raise HTTPException(status_code=404, detail="Resource not found")
    await service.record_download(db, resource)
    await db.commit()
    return DownloadResponse(download_url=resource.download_url, download_count=resource.download_count)
