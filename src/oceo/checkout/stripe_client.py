"""Thin async wrapper over the Stripe SDK.

The SDK is synchronous, so every call runs in the threadpool. Nothing here
touches the database; callers persist whatever IDs come back.
"""

from __future__ import annotations

import json
from typing import Any

import stripe
import structlog
from fastapi.concurrency import run_in_threadpool

from oceo.config import get_settings

logger = structlog.get_logger()

StripeError = stripe.StripeError
SignatureVerificationError = stripe.SignatureVerificationError


class StripeNotConfiguredError(RuntimeError):
    """Raised when a Stripe call is attempted without a secret key."""


def _api_key() -> str:
    key = get_settings().stripe_secret_key
    if not key:
        msg = "Stripe is not configured"
        raise StripeNotConfiguredError(msg)
    return key


async def find_or_create_customer(email: str, name: str | None = None) -> Any:  # noqa: ANN401
    """Reuse the first customer with this email, or create one."""
    api_key = _api_key()
    existing = await run_in_threadpool(stripe.Customer.list, email=email, limit=1, api_key=api_key)
    if existing.data:
        return existing.data[0]
    params: dict[str, Any] = {"email": email, "api_key": api_key}
    if name:
        params["name"] = name
    customer = await run_in_threadpool(stripe.Customer.create, **params)
    logger.info("stripe_customer_created", customer_id=customer.id)
    return customer


async def create_payment_intent(
    amount_cents: int,
    currency: str,
    customer_id: str,
    metadata: dict[str, str],
) -> Any:  # noqa: ANN401
    return await run_in_threadpool(
        stripe.PaymentIntent.create,
        amount=amount_cents,
        currency=currency.lower(),
        customer=customer_id,
        metadata=metadata,
        automatic_payment_methods={"enabled": True},
        api_key=_api_key(),
    )


async def create_subscription(price_id: str, customer_id: str, metadata: dict[str, str]) -> tuple[Any, str]:
    """Create an incomplete subscription. Returns (subscription, client_secret)."""
    subscription = await run_in_threadpool(
        stripe.Subscription.create,
        customer=customer_id,
        items=[{"price": price_id}],
        payment_behavior="default_incomplete",
        payment_settings={"save_default_payment_method": "on_subscription"},
        expand=["latest_invoice.payment_intent"],
        metadata=metadata,
        api_key=_api_key(),
    )
    invoice = getattr(subscription, "latest_invoice", None)
    payment_intent = getattr(invoice, "payment_intent", None)
    client_secret = getattr(payment_intent, "client_secret", None) or ""
    return subscription, client_secret


async def create_checkout_session(**params: Any) -> Any:  # noqa: ANN401
    return await run_in_threadpool(stripe.checkout.Session.create, api_key=_api_key(), **params)


# ---------------------------------------------------------------------------
# Products and prices
# ---------------------------------------------------------------------------


async def create_product(**params: Any) -> Any:  # noqa: ANN401
    return await run_in_threadpool(stripe.Product.create, api_key=_api_key(), **params)


async def update_product(product_id: str, **params: Any) -> Any:  # noqa: ANN401
    return await run_in_threadpool(stripe.Product.modify, product_id, api_key=_api_key(), **params)


async def retrieve_price(price_id: str) -> Any:  # noqa: ANN401
    return await run_in_threadpool(stripe.Price.retrieve, price_id, api_key=_api_key())


async def create_price(
    product_id: str,
    unit_amount: int,
    currency: str = "usd",
    interval: str | None = None,
) -> Any:  # noqa: ANN401
    params: dict[str, Any] = {
        "product": product_id,
        "unit_amount": unit_amount,
        "currency": currency.lower(),
    }
    if interval is not None:
        params["recurring"] = {"interval": interval}
    return await run_in_threadpool(stripe.Price.create, api_key=_api_key(), **params)


async def replace_price(
    price_id: str,
    product_id: str,
    unit_amount: int,
    currency: str = "usd",
    interval: str | None = None,
) -> Any:  # noqa: ANN401
    """Archive a price and create its replacement (Stripe prices are immutable)."""
    await run_in_threadpool(stripe.Price.modify, price_id, active=False, api_key=_api_key())
    return await create_price(product_id, unit_amount, currency, interval)


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


def construct_event(payload: bytes, signature: str | None) -> dict[str, Any]:
    """Verify the Stripe-Signature header and return the event as plain JSON.

    Raises:
        SignatureVerificationError: Bad or missing signature.
        ValueError: Payload is not valid JSON.
    """
    secret = get_settings().stripe_webhook_secret
    if not secret:
        msg = "Stripe webhook secret is not configured"
        raise StripeNotConfiguredError(msg)
    stripe.Webhook.construct_event(payload, signature or "", secret)
    return json.loads(payload)
