"""On-site checkout: payment intents, subscriptions and purchase records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from oceo.checkout import stripe_client
from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import DashboardProduct, NotionProduct, Purchase, PurchaseItem
from oceo.email.service import get_email_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

NOT_SYNCED = "Product is not synced to Stripe. Please contact support."


class ProductNotFoundError(LookupError):
    pass


async def _product_or_raise(db: AsyncSession, product_id: int) -> DashboardProduct:
    product = await db.get(DashboardProduct, product_id)
    if product is None:
        msg = "Product not found"
        raise ProductNotFoundError(msg)
    return product


async def create_payment_intent_checkout(
    db: AsyncSession,
    product_id: int,
    customer_email: str,
    customer_name: str | None = None,
    upsell_ids: list[int] | None = None,
) -> dict[str, Any]:
    """Start a one-time payment for a product plus optional upsells.

    Upsells without a Stripe price are skipped. A pending purchase with one
    item per product is recorded against the payment intent so the webhook
    can complete it.

    Raises:
        ProductNotFoundError: Unknown product.
        ValueError: Product not synced, or it is a subscription.
    """
    upsell_ids = upsell_ids or []
    product = await _product_or_raise(db, product_id)
    if not product.stripe_price_id:
        raise ValueError(NOT_SYNCED)
    if product.product_type == "subscription":
        msg = "Use create-subscription endpoint for subscription products"
        raise ValueError(msg)

    total_cents = product.price_in_cents
    upsells: list[DashboardProduct] = []
    for upsell_id in upsell_ids:
        upsell = await db.get(DashboardProduct, upsell_id)
        if upsell is not None and upsell.stripe_price_id:
            total_cents += upsell.price_in_cents
            upsells.append(upsell)

    customer = await stripe_client.find_or_create_customer(customer_email, customer_name)
    intent = await stripe_client.create_payment_intent(
        total_cents,
        product.currency,
        customer.id,
        {
            "productId": str(product.id),
            "productName": product.name,
            "customerEmail": customer_email,
            "customerName": customer_name or "",
            "upsellIds": ",".join(str(i) for i in upsell_ids),
        },
    )

    purchase = Purchase(
        product_id=product.id,
        customer_email=customer_email,
        customer_name=customer_name,
        amount_paid_cents=total_cents,
        currency=product.currency,
        status="pending",
        stripe_payment_intent_id=intent.id,
        stripe_customer_id=customer.id,
    )
    db.add(purchase)
    await db.flush()
    db.add(PurchaseItem(purchase_id=purchase.id, product_id=product.id, price_in_cents=product.price_in_cents))
    for upsell in upsells:
        db.add(
            PurchaseItem(
                purchase_id=purchase.id,
                product_id=upsell.id,
                price_in_cents=upsell.price_in_cents,
                is_upsell=True,
            )
        )
    await db.flush()
    logger.info("payment_intent_created", purchase_id=purchase.id, payment_intent_id=intent.id, total=total_cents)

    return {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "total_cents": total_cents,
        "product": {"id": product.id, "name": product.name, "price_in_cents": product.price_in_cents},
        "upsells": [{"id": u.id, "name": u.name, "price_in_cents": u.price_in_cents} for u in upsells],
    }


async def _cart_line(db: AsyncSession, item: dict[str, Any]) -> dict[str, Any]:
    if item["product_source"] == "notion":
        notion_product = await db.get(NotionProduct, item["product_id"])
        if notion_product is None:
            msg = f"Notion product not found: {item['product_id']}"
            raise ProductNotFoundError(msg)
        price = get_settings().notion_product_prices.get(notion_product.slug)
        if price is None:
            msg = f'Product "{notion_product.title}" does not have checkout configured.'
            raise ValueError(msg)
        return {
            "id": notion_product.id,
            "name": notion_product.title,
            "price_in_cents": price,
            "quantity": item["quantity"],
            "slug": notion_product.slug,
            "source": "notion",
        }

    product = await db.get(DashboardProduct, item["product_id"])
    if product is None:
        msg = f"Dashboard product not found: {item['product_id']}"
        raise ProductNotFoundError(msg)
    if not product.stripe_price_id:
        msg = f'Product "{product.name}" is not synced to Stripe. Please contact support.'
        raise ValueError(msg)
    if product.product_type == "subscription":
        msg = f'Subscription product "{product.name}" must be purchased separately.'
        raise ValueError(msg)
    return {
        "id": product.id,
        "name": product.name,
        "price_in_cents": product.price_in_cents,
        "quantity": item["quantity"],
        "slug": product.slug,
        "source": "dashboard",
    }


async def create_cart_checkout(
    db: AsyncSession,
    items: list[dict[str, Any]],
    customer_email: str,
    customer_name: str | None = None,
) -> dict[str, Any]:
    """Price a multi-item cart of dashboard and Notion products.

    Notion products are priced from the notion_product_prices setting. A cart
    that totals zero is a free order and no payment intent is created.

    Raises:
        ProductNotFoundError: Unknown product.
        ValueError: Empty cart, unsynced or subscription product, or a Notion
            product without a configured price.
    """
    if not items:
        msg = "Cart items are required"
        raise ValueError(msg)

    lines = [await _cart_line(db, item) for item in items]
    total_cents = sum(line["price_in_cents"] * line["quantity"] for line in lines)
    if total_cents == 0:
        logger.info("cart_checkout_free", customer_email=customer_email, items=len(lines))
        return {
            "is_free_order": True,
            "client_secret": None,
            "payment_intent_id": None,
            "total_cents": 0,
            "items": lines,
        }

    customer = await stripe_client.find_or_create_customer(customer_email, customer_name)
    intent = await stripe_client.create_payment_intent(
        total_cents,
        "usd",
        customer.id,
        {
            "type": "cart_checkout",
            "customerEmail": customer_email,
            "customerName": customer_name or "",
            "itemCount": str(len(lines)),
            "productIds": ",".join(f"{line['source']}:{line['id']}" for line in lines),
            "quantities": ",".join(str(line["quantity"]) for line in lines),
            "lineItems": ", ".join(f"{line['name']} x{line['quantity']}" for line in lines)[:500],
        },
    )
    logger.info("cart_payment_intent_created", payment_intent_id=intent.id, total=total_cents, items=len(lines))
    return {
        "is_free_order": False,
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "total_cents": total_cents,
        "items": lines,
    }


async def create_subscription_checkout(
    db: AsyncSession,
    product_id: int,
    customer_email: str,
    customer_name: str | None = None,
    billing_interval: str = "month",
) -> dict[str, Any]:
    """Start an incomplete subscription and record a pending purchase.

    The yearly price is used only when billing_interval is "year" and the
    product has both a yearly Stripe price and a yearly amount.

    Raises:
        ProductNotFoundError: Unknown product.
        ValueError: Product is one-time, or not synced.
    """
    product = await _product_or_raise(db, product_id)
    if product.product_type != "subscription":
        msg = "Use create-payment-intent endpoint for one-time products"
        raise ValueError(msg)

    if billing_interval == "year" and product.stripe_yearly_price_id and product.yearly_price_in_cents:
        price_id = product.stripe_yearly_price_id
        price_in_cents = product.yearly_price_in_cents
    else:
        if not product.stripe_price_id:
            raise ValueError(NOT_SYNCED)
        price_id = product.stripe_price_id
        price_in_cents = product.price_in_cents

    customer = await stripe_client.find_or_create_customer(customer_email, customer_name)
    subscription, client_secret = await stripe_client.create_subscription(
        price_id,
        customer.id,
        {
            "productId": str(product.id),
            "productName": product.name,
            "customerEmail": customer_email,
            "customerName": customer_name or "",
            "billingInterval": billing_interval,
        },
    )

    purchase = Purchase(
        product_id=product.id,
        customer_email=customer_email,
        customer_name=customer_name,
        amount_paid_cents=price_in_cents,
        currency=product.currency,
        status="pending",
        stripe_subscription_id=subscription.id,
        stripe_customer_id=customer.id,
        billing_interval=billing_interval,
    )
    db.add(purchase)
    await db.flush()
    db.add(PurchaseItem(purchase_id=purchase.id, product_id=product.id, price_in_cents=price_in_cents))
    await db.flush()
    logger.info("subscription_created", purchase_id=purchase.id, subscription_id=subscription.id)

    return {
        "client_secret": client_secret,
        "subscription_id": subscription.id,
        "price_in_cents": price_in_cents,
        "billing_interval": billing_interval,
        "product": {
            "id": product.id,
            "name": product.name,
            "monthly_price_in_cents": product.price_in_cents,
            "yearly_price_in_cents": product.yearly_price_in_cents,
        },
    }


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


async def list_purchases(db: AsyncSession) -> list[tuple[Purchase, DashboardProduct]]:
    result = await db.execute(
        select(Purchase, DashboardProduct)
        .join(DashboardProduct, Purchase.product_id == DashboardProduct.id)
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
    )
    return [(purchase, product) for purchase, product in result.all()]


async def get_purchase(db: AsyncSession, purchase_id: int) -> Purchase | None:
    result = await db.execute(
        select(Purchase)
        .where(Purchase.id == purchase_id)
        .options(selectinload(Purchase.items))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_purchase_by_payment_intent(db: AsyncSession, payment_intent_id: str) -> Purchase | None:
    result = await db.execute(select(Purchase).where(Purchase.stripe_payment_intent_id == payment_intent_id))
    return result.scalar_one_or_none()


async def get_purchase_by_subscription(db: AsyncSession, subscription_id: str) -> Purchase | None:
    result = await db.execute(select(Purchase).where(Purchase.stripe_subscription_id == subscription_id))
    return result.scalar_one_or_none()


async def mark_completed(db: AsyncSession, purchase: Purchase) -> None:
    now = utcnow()
    purchase.status = "completed"
    if purchase.access_granted_at is None:
        purchase.access_granted_at = now
    purchase.updated_at = now
    await db.flush()


async def send_delivery_email(db: AsyncSession, purchase: Purchase, product: DashboardProduct) -> bool:
    """Email the purchase confirmation (or subscription welcome) and stamp it on success."""
    email = get_email_service()
    if purchase.stripe_subscription_id:
        sent = await email.send_template(
            purchase.customer_email,
            "subscription_welcome",
            {
                "customer_name": purchase.customer_name,
                "product_name": product.name,
                "amount_cents": purchase.amount_paid_cents,
                "currency": purchase.currency,
                "billing_interval": purchase.billing_interval,
                "access_instructions": product.access_instructions,
            },
        )
    else:
        base_url = get_settings().app_base_url.rstrip("/")
        sent = await email.send_template(
            purchase.customer_email,
            "purchase_confirmation",
            {
                "customer_name": purchase.customer_name,
                "product_name": product.name,
                "amount_cents": purchase.amount_paid_cents,
                "currency": purchase.currency,
                "thank_you_url": f"{base_url}/checkout/thank-you?product={product.slug}",
                "delivery_type": product.delivery_type,
                "product_description": product.short_description,
                "download_url": product.download_url,
                "access_instructions": product.access_instructions,
            },
        )

    if sent:
        now = utcnow()
        purchase.delivery_email_sent_at = now
        purchase.updated_at = now
        await db.flush()
        logger.info("purchase_email_sent", purchase_id=purchase.id)
    else:
        logger.error("purchase_email_failed", purchase_id=purchase.id)
    return sent
