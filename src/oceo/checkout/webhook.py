"""Stripe webhook receiver: /api/v1/stripe/webhook.

Handles:
  payment_intent.succeeded        one-time purchase completed, delivery email
  invoice.payment_succeeded       subscription purchase completed, welcome email on creation
  customer.subscription.updated   membership status and period mirrored
  customer.subscription.deleted   membership marked canceled
  checkout.session.completed      Studio Systems membership created for the user

Everything else is acknowledged and ignored.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.checkout import service, stripe_client
from oceo.config import get_settings
from oceo.database import get_session
from oceo.db.base import utcnow
from oceo.db.models import DashboardProduct, EducationSubscription, User
from oceo.email.service import get_email_service
from oceo.studio.subscription_service import SUBSCRIPTION_TYPE

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/stripe", tags=["Stripe"])


def _timestamp(value: Any) -> datetime | None:  # noqa: ANN401
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _period_end(subscription: dict[str, Any]) -> datetime | None:
    """Period end from the subscription, or from its first item on newer API versions."""
    if subscription.get("current_period_end"):
        return _timestamp(subscription["current_period_end"])
    items = (subscription.get("items") or {}).get("data") or []
    if items:
        return _timestamp(items[0].get("current_period_end"))
    return None


async def handle_payment_intent_succeeded(db: AsyncSession, intent: dict[str, Any]) -> None:
    purchase = await service.get_purchase_by_payment_intent(db, intent["id"])
    if purchase is None:
        logger.info("webhook_purchase_not_found", payment_intent_id=intent["id"])
        return
    await service.mark_completed(db, purchase)
    product = await db.get(DashboardProduct, purchase.product_id)
    if product is None:
        logger.error("webhook_product_missing", purchase_id=purchase.id)
        return
    await service.send_delivery_email(db, purchase, product)


async def handle_invoice_payment_succeeded(db: AsyncSession, invoice: dict[str, Any]) -> None:
    subscription_id = invoice.get("subscription")
    if not subscription_id:
        parent = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription_id = parent.get("subscription")
    if not subscription_id:
        return
    purchase = await service.get_purchase_by_subscription(db, subscription_id)
    if purchase is None:
        logger.info("webhook_purchase_not_found", subscription_id=subscription_id)
        return

    await service.mark_completed(db, purchase)
    if invoice.get("billing_reason") != "subscription_create":
        logger.info("subscription_renewal_processed", purchase_id=purchase.id)
        return
    product = await db.get(DashboardProduct, purchase.product_id)
    if product is None:
        logger.error("webhook_product_missing", purchase_id=purchase.id)
        return
    await service.send_delivery_email(db, purchase, product)


async def handle_subscription_change(db: AsyncSession, subscription: dict[str, Any]) -> None:
    result = await db.execute(
        select(EducationSubscription).where(EducationSubscription.stripe_subscription_id == subscription["id"])
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        logger.info("webhook_membership_not_found", subscription_id=subscription["id"])
        return

    membership.status = "canceled" if subscription.get("_deleted") else subscription.get("status", membership.status)
    membership.current_period_end = _period_end(subscription) or membership.current_period_end
    membership.cancel_at_period_end = bool(subscription.get("cancel_at_period_end"))
    membership.updated_at = utcnow()
    await db.flush()
    logger.info("membership_updated", user_id=membership.user_id, status=membership.status)


async def handle_checkout_session_completed(db: AsyncSession, session: dict[str, Any]) -> None:
    metadata = session.get("metadata") or {}
    if metadata.get("subscriptionType") != SUBSCRIPTION_TYPE:
        return
    raw_user_id = metadata.get("userId") or session.get("client_reference_id")
    if not raw_user_id or not str(raw_user_id).isdigit():
        logger.warning("webhook_checkout_without_user", session_id=session.get("id"))
        return
    user = await db.get(User, int(raw_user_id))
    if user is None:
        logger.warning("webhook_checkout_user_missing", user_id=raw_user_id)
        return

    result = await db.execute(select(EducationSubscription).where(EducationSubscription.user_id == user.id))
    membership = result.scalar_one_or_none()
    if membership is None:
        membership = EducationSubscription(user_id=user.id, tier=SUBSCRIPTION_TYPE)
        db.add(membership)
    membership.status = "active"
    membership.stripe_subscription_id = session.get("subscription")
    membership.stripe_customer_id = session.get("customer")
    membership.cancel_at_period_end = False
    membership.updated_at = utcnow()
    await db.flush()
    logger.info("membership_activated", user_id=user.id, subscription_id=membership.stripe_subscription_id)

    base_url = get_settings().app_base_url.rstrip("/")
    await get_email_service().send_template(
        user.email,
        "studio_welcome",
        {"name": user.name, "dashboard_url": f"{base_url}/studio"},
    )


async def _subscription_deleted(db: AsyncSession, subscription: dict[str, Any]) -> None:
    await handle_subscription_change(db, {**subscription, "_deleted": True})


HANDLERS: dict[str, Callable[[AsyncSession, dict[str, Any]], Awaitable[None]]] = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "invoice.payment_succeeded": handle_invoice_payment_succeeded,
    "customer.subscription.updated": handle_subscription_change,
    "customer.subscription.deleted": _subscription_deleted,
    "checkout.session.completed": handle_checkout_session_completed,
}


@router.post("/webhook")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_session)):
    """Verify the signature, dispatch the event and acknowledge it."""
    payload = await request.body()
    try:
        event = stripe_client.construct_event(payload, request.headers.get("stripe-signature"))
    except (stripe_client.SignatureVerificationError, ValueError) as e:
        logger.warning("webhook_signature_invalid", error=str(e))
        raise HTTPException(status_code=400, detail="Webhook signature verification failed.") from e
    except stripe_client.StripeNotConfiguredError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    event_type = event.get("type", "")
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("webhook_event_ignored", event_type=event_type)
        return {"received": True}

    await handler(db, event["data"]["object"])
    await db.commit()
    logger.info("webhook_event_processed", event_type=event_type, event_id=event.get("id"))
    return {"received": True}
