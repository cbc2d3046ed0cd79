"""Studio Systems membership: lookup, activity check and hosted checkout."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from oceo.checkout import stripe_client
from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import EducationSubscription, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ACTIVE_STATUSES = ("active", "trialing")
SUBSCRIPTION_TYPE = "studio_systems"


def price_map() -> dict[str, str]:
    """Public plan keys to configured Stripe price IDs."""
    settings = get_settings()
    return {
        "price_monthly": settings.stripe_studio_monthly_price_id,
        "price_yearly": settings.stripe_studio_yearly_price_id,
    }


async def get_subscription(db: AsyncSession, user_id: int) -> EducationSubscription | None:
    result = await db.execute(select(EducationSubscription).where(EducationSubscription.user_id == user_id))
    return result.scalar_one_or_none()


def is_subscription_active(subscription: EducationSubscription | None, now: datetime | None = None) -> bool:
    """Active or trialing, with no period end or one still in the future."""
    if subscription is None or subscription.status not in ACTIVE_STATUSES:
        return False
    if subscription.current_period_end is None:
        return True
    return subscription.current_period_end > (now or utcnow())


async def create_studio_checkout(user: User, price_key: str) -> str:
    """
    Start a hosted Stripe Checkout for the membership and return its URL.

    Raises:
        ValueError: Unknown price key.
    """
    price_id = price_map().get(price_key)
    if not price_id:
        msg = "Invalid price ID"
        raise ValueError(msg)

    base_url = get_settings().app_base_url.rstrip("/")
    metadata: dict[str, Any] = {"userId": str(user.id), "subscriptionType": SUBSCRIPTION_TYPE}
    session = await stripe_client.create_checkout_session(
        customer_email=user.email,
        client_reference_id=str(user.id),
        mode="subscription",
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=f"{base_url}/studio?success=true",
        cancel_url=f"{base_url}/studio/subscribe?canceled=true",
        metadata=metadata,
        subscription_data={"metadata": metadata},
    )
    logger.info("studio_checkout_created", user_id=user.id, price=price_key)
    return session.url
