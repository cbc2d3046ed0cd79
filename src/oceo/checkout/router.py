"""Public checkout router: /api/v1/checkout/*."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.checkout import service
from oceo.checkout.schemas import (
    CartCheckoutRequest,
    CartCheckoutResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    SubscriptionRequest,
    SubscriptionResponse,
)
from oceo.checkout.stripe_client import StripeError, StripeNotConfiguredError
from oceo.database import get_session

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout"])


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(body: PaymentIntentRequest, db: AsyncSession = Depends(get_session)):
    """Start a one-time payment and record the pending purchase."""
    try:
        result = await service.create_payment_intent_checkout(
            db,
            body.product_id,
            body.customer_email,
            customer_name=body.customer_name,
            upsell_ids=body.upsell_ids,
        )
    except service.ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (StripeError, StripeNotConfiguredError) as e:
        logger.error("payment_intent_failed", product_id=body.product_id, error=str(e))
        raise HTTPException(status_code=502, detail="Failed to create payment intent") from e
    await db.commit()
    return PaymentIntentResponse(**result)


@router.post("/cart", response_model=CartCheckoutResponse)
async def cart_checkout(body: CartCheckoutRequest, db: AsyncSession = Depends(get_session)):
    """Price a cart of dashboard and Notion products; free carts skip payment."""
    try:
        result = await service.create_cart_checkout(
            db,
            [item.model_dump() for item in body.items],
            body.customer_email,
            customer_name=body.customer_name,
        )
    except service.ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (StripeError, StripeNotConfiguredError) as e:
        logger.error("cart_checkout_failed", error=str(e))
        raise HTTPException(status_code=502, detail="Failed to create checkout session") from e
    return CartCheckoutResponse(**result)


@router.post("/create-subscription", response_model=SubscriptionResponse)
async def create_subscription(body: SubscriptionRequest, db: AsyncSession = Depends(get_session)):
    """Start a subscription and record the pending purchase."""
    try:
        result = await service.create_subscription_checkout(
            db,
            body.product_id,
            body.customer_email,
            customer_name=body.customer_name,
            billing_interval=body.billing_interval,
        )
    except service.ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (StripeError, StripeNotConfiguredError) as e:
        logger.error("subscription_create_failed", product_id=body.product_id, error=str(e))
        raise HTTPException(status_code=502, detail="Failed to create subscription") from e
    await db.commit()
    return SubscriptionResponse(**result)
