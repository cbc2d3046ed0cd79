"""Dashboard products router: admin catalogue and the public storefront."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.checkout.stripe_client import StripeError, StripeNotConfiguredError
from oceo.database import get_session
from oceo.db.models import DashboardProduct, User
from oceo.products import service
from oceo.products.schemas import (
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
    PublicProduct,
    PublicProductDetailResponse,
    PublicProductListResponse,
    PublicUpsell,
    UpsellCreateRequest,
    UpsellListResponse,
    UpsellResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/dashboard-products", tags=["Products"], dependencies=[Depends(require_admin)])
public_router = APIRouter(prefix="/api/v1/products/public", tags=["Products"])


async def _product_or_404(db: AsyncSession, product_id: int) -> DashboardProduct:
    product = await service.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# ── Admin catalogue ──


@router.get("", response_model=ProductListResponse)
async def list_products(db: AsyncSession = Depends(get_session)):
    products = await service.list_products(db)
    return ProductListResponse(products=[ProductResponse.model_validate(p) for p in products])


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    body: ProductCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        product = await service.create_product(db, body.model_dump(), created_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ProductResponse.model_validate(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_session)):
    return ProductResponse.model_validate(await _product_or_404(db, product_id))


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    body: ProductUpdateRequest,
    db: AsyncSession = Depends(get_session),
):
    product = await _product_or_404(db, product_id)
    try:
        await service.update_product(db, product, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}")
async def delete_product(product_id: int, db: AsyncSession = Depends(get_session)):
    product = await _product_or_404(db, product_id)
    try:
        await service.delete_product(db, product)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"success": True}


# ── Upsells ──


@router.get("/{product_id}/upsells", response_model=UpsellListResponse)
async def list_upsells(product_id: int, db: AsyncSession = Depends(get_session)):
    await _product_or_404(db, product_id)
    upsells = await service.get_product_upsells(db, product_id)
    available = await service.get_available_upsell_products(db, exclude_product_id=product_id)
    return UpsellListResponse(
        upsells=[
            UpsellResponse(
                id=upsell.id,
                display_order=upsell.display_order,
                discount_percent=upsell.discount_percent,
                upsell_product=ProductResponse.model_validate(product),
            )
            for upsell, product in upsells
        ],
        available_products=[ProductResponse.model_validate(p) for p in available],
    )


@router.post("/{product_id}/upsells", status_code=201)
async def add_upsell(
    product_id: int,
    body: UpsellCreateRequest,
    db: AsyncSession = Depends(get_session),
):
    product = await _product_or_404(db, product_id)
    try:
        upsell = await service.add_upsell(
            db,
            product,
            body.upsell_product_id,
            display_order=body.display_order,
            discount_percent=body.discount_percent,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {
        "id": upsell.id,
        "product_id": upsell.product_id,
        "upsell_product_id": upsell.upsell_product_id,
        "display_order": upsell.display_order,
        "discount_percent": upsell.discount_percent,
    }


@router.delete("/{product_id}/upsells")
async def remove_upsell(
    product_id: int,
    upsell_product_id: int = Query(...),
    db: AsyncSession = Depends(get_session),
):
    await service.remove_upsell(db, product_id, upsell_product_id)
    await db.commit()
    return {"success": True}


@router.get("/{product_id}/available-upsells", response_model=ProductListResponse)
async def available_upsells(product_id: int, db: AsyncSession = Depends(get_session)):
    products = await service.get_available_upsell_products(db, exclude_product_id=product_id)
    return ProductListResponse(products=[ProductResponse.model_validate(p) for p in products])


# ── Stripe ──


@router.post("/{product_id}/stripe-sync", response_model=ProductResponse)
async def stripe_sync(product_id: int, db: AsyncSession = Depends(get_session)):
    """Push the product and its prices to Stripe."""
    product = await _product_or_404(db, product_id)
    try:
        await service.sync_product_to_stripe(db, product)
    except StripeNotConfiguredError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except StripeError as e:
        logger.error("product_stripe_sync_failed", product_id=product_id, error=str(e))
        raise HTTPException(status_code=502, detail="Failed to sync product to Stripe") from e
    await db.commit()
    return ProductResponse.model_validate(product)


# ── Public storefront ──


@public_router.get("", response_model=PublicProductListResponse)
async def public_products(
    featured: bool | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    products = await service.list_public_products(db, featured=featured)
    return PublicProductListResponse(products=[PublicProduct.model_validate(p) for p in products])


@public_router.get("/{slug}", response_model=PublicProductDetailResponse)
async def public_product(slug: str, db: AsyncSession = Depends(get_session)):
    """A published product with its published upsells."""
    product = await service.get_published_product_by_slug(db, slug)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    upsells = await service.get_product_upsells(db, product.id)
    return PublicProductDetailResponse(
        product=PublicProduct.model_validate(product),
        upsells=[
            PublicUpsell(
                id=item.id,
                name=item.name,
                short_description=item.short_description,
                price_in_cents=item.price_in_cents,
                discount_percent=upsell.discount_percent,
            )
            for upsell, item in upsells
            if item.is_published
        ],
    )
