"""Purchase administration router: /api/v1/purchases/* (owner/admin only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.checkout import service
from oceo.checkout.schemas import (
    PurchaseDetailResponse,
    PurchaseItemResponse,
    PurchaseListItem,
    PurchaseListResponse,
    PurchaseResponse,
)
from oceo.database import get_session
from oceo.db.models import DashboardProduct

router = APIRouter(prefix="/api/v1/purchases", tags=["Purchases"], dependencies=[Depends(require_admin)])


@router.get("", response_model=PurchaseListResponse)
async def list_purchases(db: AsyncSession = Depends(get_session)):
    rows = await service.list_purchases(db)
    return PurchaseListResponse(
        purchases=[
            PurchaseListItem(**PurchaseResponse.model_validate(purchase).model_dump(), product_name=product.name)
            for purchase, product in rows
        ]
    )


@router.get("/{purchase_id}", response_model=PurchaseDetailResponse)
async def get_purchase(purchase_id: int, db: AsyncSession = Depends(get_session)):
    purchase = await service.get_purchase(db, purchase_id)
    if purchase is None:
        raise HTTPException(status_code=404, detail="Purchase not found")
    return PurchaseDetailResponse(
        **PurchaseResponse.model_validate(purchase).model_dump(),
        items=[PurchaseItemResponse.model_validate(item) for item in purchase.items],
    )


@router.post("/{purchase_id}/resend-email")
async def resend_email(purchase_id: int, db: AsyncSession = Depends(get_session)):
    """Send the delivery email again."""
    purchase = await service.get_purchase(db, purchase_id)
    if purchase is None:
        raise HTTPException(status_code=404, detail="Purchase not found")
    product = await db.get(DashboardProduct, purchase.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    if not await service.send_delivery_email(db, purchase, product):
        raise HTTPException(status_code=502, detail="Failed to send email")
    await db.commit()
    return {"success": True}
