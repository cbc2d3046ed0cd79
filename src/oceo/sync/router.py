"""MMFC key management, mirrored storefront content, Notion import and Notion product routes."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.database import get_session, get_session_factory
from oceo.db.models import MmfcApiKey, MmfcProduct, MmfcSchedulingLink, MmfcService, User
from oceo.sync import mmfc_service, notion_blog_sync, notion_products, notion_sync
from oceo.sync.crypto import decrypt_api_key, mask_api_key
from oceo.sync.schemas import (
    MmfcKeyCreateRequest,
    MmfcKeyListResponse,
    MmfcKeyResponse,
    MmfcKeyUpdateRequest,
    MmfcProductListResponse,
    MmfcProductResponse,
    MmfcServiceListResponse,
    MmfcServiceResponse,
    NotionBlogStatusResponse,
    NotionBlogSyncResponse,
    NotionProductDetailResponse,
    NotionProductFlagsRequest,
    NotionProductListResponse,
    NotionProductResponse,
    NotionSingleSyncResponse,
    NotionSyncResponse,
    ProductVisibilityRequest,
    SchedulingLinkListResponse,
    SchedulingLinkResponse,
    SchedulingToggleRequest,
    ServiceVisibilityRequest,
)

logger = structlog.get_logger()

keys_router = APIRouter(prefix="/api/v1/mmfc-keys", tags=["MMFC"])
products_router = APIRouter(prefix="/api/v1/mmfc-products", tags=["MMFC"])
scheduling_router = APIRouter(prefix="/api/v1/mmfc-scheduling", tags=["MMFC"])
services_router = APIRouter(prefix="/api/v1/mmfc-services", tags=["MMFC"])
notion_router = APIRouter(prefix="/api/v1/notion", tags=["Notion"])
notion_products_router = APIRouter(prefix="/api/v1/notion-products", tags=["Notion"])


def _key_response(key: MmfcApiKey) -> MmfcKeyResponse:
    try:
        masked = mask_api_key(decrypt_api_key(key.api_key))
    except ValueError:
        logger.warning("mmfc_key_undecryptable", api_key_id=key.id)
        masked = None
    response = MmfcKeyResponse.model_validate(key)
    response.masked_api_key = masked
    return response


async def _owned_key(db: AsyncSession, key_id: int, user: User) -> MmfcApiKey:
    key = await mmfc_service.get_api_key(db, key_id, user.id)
    if key is None:
        raise HTTPException(status_code=404, detail="API key not found")
    return key


def _sync_response(result: dict) -> JSONResponse | dict:
    if not result["success"]:
        return JSONResponse(status_code=400, content={"success": False, "error": result.get("error")})
    return result


# ── Keys ──


@keys_router.get("", response_model=MmfcKeyListResponse)
async def list_keys(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    keys = await mmfc_service.list_api_keys(db, admin.id)
    return MmfcKeyListResponse(keys=[_key_response(k) for k in keys])


@keys_router.post("", response_model=MmfcKeyResponse, status_code=201)
async def create_key(
    body: MmfcKeyCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Store a storefront key, validating it live unless skip_validation is set."""
    try:
        key = await mmfc_service.create_api_key(
            db,
            admin.id,
            body.name,
            body.api_key,
            base_url=body.base_url,
            auto_sync=body.auto_sync,
            sync_frequency=body.sync_frequency,
            skip_validation=body.skip_validation,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _key_response(key)


@keys_router.get("/{key_id}", response_model=MmfcKeyResponse)
async def get_key(key_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    return _key_response(await _owned_key(db, key_id, admin))


@keys_router.put("/{key_id}", response_model=MmfcKeyResponse)
async def update_key(
    key_id: int,
    body: MmfcKeyUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    key = await _owned_key(db, key_id, admin)
    try:
        await mmfc_service.update_api_key(db, key, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _key_response(key)


@keys_router.delete("/{key_id}")
async def delete_key(key_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    key = await _owned_key(db, key_id, admin)
    await mmfc_service.delete_api_key(db, key)
    await db.commit()
    return {"success": True}


@keys_router.post("/{key_id}/sync")
async def sync_products(key_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    await _owned_key(db, key_id, admin)
    result = await mmfc_service.sync_mmfc_products(db, key_id, admin.id)
    await db.commit()
    return _sync_response(result)


# ── Products ──


@products_router.get("", response_model=MmfcProductListResponse)
async def list_products(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    products = await mmfc_service.list_user_products(db, admin.id)
    return MmfcProductListResponse(products=[MmfcProductResponse.model_validate(p) for p in products])


@products_router.patch("", response_model=MmfcProductResponse)
async def set_product_visibility(
    body: ProductVisibilityRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        product = await mmfc_service.set_flag(
            db, MmfcProduct, body.product_id, admin.id, "is_visible", body.is_visible, label="Product"
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return MmfcProductResponse.model_validate(product)


@products_router.get("/public", response_model=MmfcProductListResponse)
async def public_products(db: AsyncSession = Depends(get_session)):
    products = await mmfc_service.list_public_products(db)
    return MmfcProductListResponse(
        products=[MmfcProductResponse.model_validate(p) for p in products],
        count=len(products),
    )


# ── Scheduling ──


@scheduling_router.get("", response_model=SchedulingLinkListResponse)
async def list_scheduling_links(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    rows = await mmfc_service.list_user_scheduling_links(db, admin.id)
    return SchedulingLinkListResponse(
        links=[
            SchedulingLinkResponse.model_validate(link).model_copy(update={"api_key_name": name})
            for link, name in rows
        ]
    )


@scheduling_router.patch("", response_model=SchedulingLinkResponse)
async def toggle_scheduling_link(
    body: SchedulingToggleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        link = await mmfc_service.set_flag(
            db, MmfcSchedulingLink, body.link_id, admin.id, "is_enabled", body.is_enabled, label="Scheduling link"
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return SchedulingLinkResponse.model_validate(link)


@scheduling_router.get("/public", response_model=SchedulingLinkListResponse)
async def public_scheduling_links(db: AsyncSession = Depends(get_session)):
    links = await mmfc_service.list_enabled_scheduling_links(db)
    return SchedulingLinkListResponse(links=[SchedulingLinkResponse.model_validate(link) for link in links])


@scheduling_router.post("/sync/{key_id}")
async def sync_scheduling(key_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    await _owned_key(db, key_id, admin)
    result = await mmfc_service.sync_mmfc_scheduling(db, key_id, admin.id)
    await db.commit()
    return _sync_response(result)


# ── Services ──


@services_router.get("", response_model=MmfcServiceListResponse)
async def list_services(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    rows = await mmfc_service.list_user_services(db, admin.id)
    return MmfcServiceListResponse(
        services=[
            MmfcServiceResponse.model_validate(service).model_copy(update={"api_key_name": name})
            for service, name in rows
        ]
    )


@services_router.patch("", response_model=MmfcServiceResponse)
async def set_service_visibility(
    body: ServiceVisibilityRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        service = await mmfc_service.set_flag(
            db, MmfcService, body.service_id, admin.id, "is_visible", body.is_visible, label="Service"
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return MmfcServiceResponse.model_validate(service)


@services_router.get("/public", response_model=MmfcServiceListResponse)
async def public_services(db: AsyncSession = Depends(get_session)):
    services = await mmfc_service.list_visible_services(db)
    return MmfcServiceListResponse(services=[MmfcServiceResponse.model_validate(s) for s in services])


@services_router.post("/sync/{key_id}")
async def sync_services(key_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    await _owned_key(db, key_id, admin)
    result = await mmfc_service.sync_mmfc_services(db, key_id, admin.id)
    await db.commit()
    return _sync_response(result)


# ── Notion ──


def _require_notion(database: str = "resources") -> None:
    try:
        notion_sync.ensure_configured(database)
    except notion_sync.NotionNotConfiguredError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _single_sync_response(result: dict) -> JSONResponse | NotionSingleSyncResponse:
    if not result["success"]:
        return JSONResponse(status_code=400, content={"success": False, "message": result["message"]})
    return NotionSingleSyncResponse(**result)


def _event_stream_response(run: Callable[[AsyncSession], AsyncIterator], failure_event: str) -> StreamingResponse:
    """SSE response over ``run(db)``; the session is committed once the run completes."""

    async def event_stream() -> AsyncIterator[str]:
        async with get_session_factory()() as db:
            try:
                async for event, payload in run(db):
                    if event == "complete":
                        await db.commit()
                    yield f"data: {json.dumps({'type': event, **payload})}\n\n"
            except Exception as e:
                logger.exception(failure_event)
                await db.rollback()
                yield f"data: {json.dumps({'type': 'error', 'error': str(e)})}\n\n"

    headers = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}
    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=headers)


# ── Resources ──


@notion_router.post("/sync-resources", response_model=NotionSyncResponse)
async def sync_resources(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    _require_notion()
    result = await notion_sync.sync_notion_resources(db, admin.id)
    await db.commit()
    return NotionSyncResponse(**result)


@notion_router.get("/sync-resources/stream")
async def sync_resources_stream(admin: User = Depends(require_admin)):
    """Server-sent events: one ``progress`` event per page, then ``complete``."""
    _require_notion()
    user_id = admin.id
    return _event_stream_response(
        lambda db: notion_sync.iter_sync_resources(db, user_id), "notion_resources_stream_failed"
    )


@notion_router.post("/sync-resources/{resource_id}", response_model=NotionSingleSyncResponse)
async def sync_resource(
    resource_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        result = await notion_sync.sync_single_resource(db, resource_id)
    except notion_sync.SyncTargetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return _single_sync_response(result)


# ── Blog ──


@notion_router.get("/sync-blog", response_model=NotionBlogStatusResponse)
async def blog_sync_status(_: User = Depends(require_admin)):
    return NotionBlogStatusResponse(**notion_blog_sync.blog_sync_status())


@notion_router.post("/sync-blog", response_model=NotionBlogSyncResponse)
async def sync_blog(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    """Import the blog database. A failed query answers 207 with what was collected."""
    _require_notion("blog")
    result = await notion_blog_sync.sync_notion_blog_posts(db, admin.id)
    await db.commit()
    if not result["success"]:
        return JSONResponse(status_code=207, content=NotionBlogSyncResponse(**result).model_dump())
    return NotionBlogSyncResponse(**result)


@notion_router.post("/sync-blog/{post_id}", response_model=NotionSingleSyncResponse)
async def sync_blog_post(
    post_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        result = await notion_blog_sync.sync_single_blog_post(db, post_id)
    except notion_sync.SyncTargetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return _single_sync_response(result)


# ── Products ──


@notion_router.get("/sync-products/stream")
async def sync_products_stream(
    limit: int | None = Query(None, ge=1),
    admin: User = Depends(require_admin),
):
    """Server-sent events: ``start``, one ``progress`` per page with a percentage, then ``complete``."""
    _require_notion("products")
    user_id = admin.id
    return _event_stream_response(
        lambda db: notion_products.iter_sync_products(db, user_id, limit), "notion_products_stream_failed"
    )


@notion_router.post("/sync-products/{product_id}", response_model=NotionSingleSyncResponse)
async def sync_product(
    product_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        result = await notion_products.sync_single_product(db, product_id)
    except notion_sync.SyncTargetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return _single_sync_response(result)


@notion_products_router.get("", response_model=NotionProductListResponse)
async def list_notion_products(_: User = Depends(require_admin), db: AsyncSession = Depends(get_session)):
    products = await notion_products.list_products(db)
    return NotionProductListResponse(products=[NotionProductResponse.model_validate(p) for p in products])


@notion_products_router.get("/public", response_model=NotionProductListResponse)
async def list_published_notion_products(db: AsyncSession = Depends(get_session)):
    products = await notion_products.list_products(db, published_only=True)
    return NotionProductListResponse(products=[NotionProductResponse.model_validate(p) for p in products])


@notion_products_router.get("/public/{slug}", response_model=NotionProductDetailResponse)
async def get_published_notion_product(slug: str, db: AsyncSession = Depends(get_session)):
    product = await notion_products.get_published_product(db, slug)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return NotionProductDetailResponse.model_validate(product)


@notion_products_router.patch("/{product_id}", response_model=NotionProductResponse)
async def update_notion_product(
    product_id: int,
    body: NotionProductFlagsRequest,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        product = await notion_products.set_product_flags(
            db, product_id, is_published=body.is_published, is_featured=body.is_featured
        )
    except notion_sync.SyncTargetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return NotionProductResponse.model_validate(product)
