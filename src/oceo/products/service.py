"""Dashboard product, upsell and Stripe catalogue queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, or_, select

from oceo.checkout import stripe_client
from oceo.db.base import utcnow
from oceo.db.models import DashboardProduct, ProductUpsell, Purchase, PurchaseItem
from oceo.slugs import generate_slug, is_slug_available

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PRODUCT_TYPES = ("one_time", "subscription")
DUPLICATE_SLUG = "A product with this slug already exists"


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


async def list_products(db: AsyncSession) -> list[DashboardProduct]:
    """Every product, most recently updated first."""
    result = await db.execute(
        select(DashboardProduct).order_by(DashboardProduct.updated_at.desc(), DashboardProduct.id.desc())
    )
    return list(result.scalars().all())


async def list_public_products(db: AsyncSession, featured: bool | None = None) -> list[DashboardProduct]:
    stmt = select(DashboardProduct).where(DashboardProduct.is_published.is_(True))
    if featured is not None:
        stmt = stmt.where(DashboardProduct.is_featured.is_(featured))
    stmt = stmt.order_by(DashboardProduct.display_order.desc(), DashboardProduct.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def get_product(db: AsyncSession, product_id: int) -> DashboardProduct | None:
    return await db.get(DashboardProduct, product_id)


async def get_published_product_by_slug(db: AsyncSession, slug: str) -> DashboardProduct | None:
    result = await db.execute(
        select(DashboardProduct).where(DashboardProduct.slug == slug, DashboardProduct.is_published.is_(True))
    )
    return result.scalar_one_or_none()


async def create_product(db: AsyncSession, fields: dict[str, Any], created_by: int | None) -> DashboardProduct:
    """
    Create a product. The slug is derived from the name when absent.

    Raises:
        ValueError: Missing name, negative price or duplicate slug.
    """
    name = (fields.pop("name", None) or "").strip()
    if not name:
        msg = "Name is required"
        raise ValueError(msg)
    price = fields.get("price_in_cents")
    if price is None or price < 0:
        msg = "Price is required"
        raise ValueError(msg)

    slug = generate_slug(fields.pop("slug", None) or name)
    if not slug or not await is_slug_available(db, DashboardProduct, slug):
        raise ValueError(DUPLICATE_SLUG)

    product = DashboardProduct(name=name, slug=slug, created_by=created_by)
    for field, value in fields.items():
        if value is not None:
            setattr(product, field, value)
    db.add(product)
    await db.flush()
    logger.info("product_created", product_id=product.id, slug=slug)
    return product


async def update_product(db: AsyncSession, product: DashboardProduct, fields: dict[str, Any]) -> DashboardProduct:
    """
    Apply a partial update. Renaming without an explicit slug regenerates it.

    Raises:
        ValueError: Blank name, negative price or duplicate slug.
    """
    if "name" in fields:
        name = (fields["name"] or "").strip()
        if not name:
            msg = "Name is required"
            raise ValueError(msg)
        if name != product.name and not fields.get("slug"):
            fields["slug"] = name
        fields["name"] = name
    if fields.get("price_in_cents") is not None and fields["price_in_cents"] < 0:
        msg = "Price must be zero or more"
        raise ValueError(msg)
    if fields.get("slug"):
        slug = generate_slug(fields["slug"])
        if not slug or not await is_slug_available(db, DashboardProduct, slug, exclude_id=product.id):
            raise ValueError(DUPLICATE_SLUG)
        fields["slug"] = slug
    else:
        fields.pop("slug", None)

    columns = DashboardProduct.__table__.c
    for field, value in fields.items():
        if value is None and not columns[field].nullable:
            continue
        setattr(product, field, value)
    product.updated_at = utcnow()
    await db.flush()
    return product


async def delete_product(db: AsyncSession, product: DashboardProduct) -> None:
    """
    Delete a product and the upsell links that mention it.

    Raises:
        ValueError: The product has purchases.
    """
    purchases = await db.execute(
        select(func.count(PurchaseItem.id)).where(PurchaseItem.product_id == product.id)
    )
    direct = await db.execute(select(func.count(Purchase.id)).where(Purchase.product_id == product.id))
    if (purchases.scalar() or 0) or (direct.scalar() or 0):
        msg = "Product has purchases and cannot be deleted"
        raise ValueError(msg)

    await db.execute(
        delete(ProductUpsell).where(
            or_(ProductUpsell.product_id == product.id, ProductUpsell.upsell_product_id == product.id)
        )
    )
    await db.delete(product)
    await db.flush()
    logger.info("product_deleted", product_id=product.id)


# ---------------------------------------------------------------------------
# Upsells
# ---------------------------------------------------------------------------


async def get_product_upsells(db: AsyncSession, product_id: int) -> list[tuple[ProductUpsell, DashboardProduct]]:
    result = await db.execute(
        select(ProductUpsell, DashboardProduct)
        .join(DashboardProduct, ProductUpsell.upsell_product_id == DashboardProduct.id)
        .where(ProductUpsell.product_id == product_id)
        .order_by(ProductUpsell.display_order, ProductUpsell.id)
    )
    return [(upsell, product) for upsell, product in result.all()]


async def get_available_upsell_products(
    db: AsyncSession, exclude_product_id: int | None = None
) -> list[DashboardProduct]:
    """Published products that can be offered as upsells, by name."""
    stmt = select(DashboardProduct).where(DashboardProduct.is_published.is_(True))
    if exclude_product_id is not None:
        stmt = stmt.where(DashboardProduct.id != exclude_product_id)
    return list((await db.execute(stmt.order_by(DashboardProduct.name))).scalars().all())


async def add_upsell(
    db: AsyncSession,
    product: DashboardProduct,
    upsell_product_id: int,
    display_order: int | None = None,
    discount_percent: int | None = None,
) -> ProductUpsell:
    """
    Raises:
        LookupError: Upsell product does not exist.
        ValueError: Self-upsell or the pair already exists.
    """
    if upsell_product_id == product.id:
        msg = "Cannot add product as its own upsell"
        raise ValueError(msg)
    if await db.get(DashboardProduct, upsell_product_id) is None:
        msg = "Upsell product not found"
        raise LookupError(msg)

    existing = await db.execute(
        select(ProductUpsell.id).where(
            ProductUpsell.product_id == product.id,
            ProductUpsell.upsell_product_id == upsell_product_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        msg = "This upsell already exists for this product"
        raise ValueError(msg)

    upsell = ProductUpsell(
        product_id=product.id,
        upsell_product_id=upsell_product_id,
        display_order=display_order or 0,
        discount_percent=discount_percent,
    )
    db.add(upsell)
    await db.flush()
    return upsell


async def remove_upsell(db: AsyncSession, product_id: int, upsell_product_id: int) -> None:
    await db.execute(
        delete(ProductUpsell).where(
            ProductUpsell.product_id == product_id,
            ProductUpsell.upsell_product_id == upsell_product_id,
        )
    )
    await db.flush()


# ---------------------------------------------------------------------------
# Stripe catalogue sync
# ---------------------------------------------------------------------------


def _stripe_product_params(product: DashboardProduct) -> dict[str, Any]:
    params: dict[str, Any] = {
        "name": product.name,
        "metadata": {
            "dashboardProductId": str(product.id),
            "productType": product.product_type,
            "deliveryType": product.delivery_type,
        },
    }
    if product.description:
        params["description"] = product.description
    if product.cover_image_url:
        params["images"] = [product.cover_image_url]
    return params


async def _sync_price(
    existing_price_id: str | None,
    stripe_product_id: str,
    amount: int,
    currency: str,
    interval: str | None,
) -> str:
    """Keep a price whose amount matches, otherwise archive it and create a new one."""
    if existing_price_id is None:
        price = await stripe_client.create_price(stripe_product_id, amount, currency, interval)
        return price.id
    existing = await stripe_client.retrieve_price(existing_price_id)
    if existing.unit_amount == amount:
        return existing_price_id
    price = await stripe_client.replace_price(existing_price_id, stripe_product_id, amount, currency, interval)
    return price.id


async def sync_product_to_stripe(db: AsyncSession, product: DashboardProduct) -> DashboardProduct:
    """Create or update the Stripe product and its price(s), then store the IDs.

    Subscription products get a monthly price and, when a yearly amount is
    set, a yearly price. One-time products get a single price.

    Raises:
        stripe_client.StripeError: The Stripe API rejected a call.
        stripe_client.StripeNotConfiguredError: No secret key configured.
    """
    params = _stripe_product_params(product)
    if product.stripe_product_id:
        stripe_product = await stripe_client.update_product(product.stripe_product_id, **params)
    else:
        stripe_product = await stripe_client.create_product(**params)

    if product.product_type == "subscription":
        price_id = await _sync_price(
            product.stripe_price_id, stripe_product.id, product.price_in_cents, product.currency, "month"
        )
        yearly_price_id = None
        if product.yearly_price_in_cents:
            yearly_price_id = await _sync_price(
                product.stripe_yearly_price_id,
                stripe_product.id,
                product.yearly_price_in_cents,
                product.currency,
                "year",
            )
    else:
        price_id = await _sync_price(
            product.stripe_price_id, stripe_product.id, product.price_in_cents, product.currency, None
        )
        yearly_price_id = None

    now = utcnow()
    product.stripe_product_id = stripe_product.id
    product.stripe_price_id = price_id
    product.stripe_yearly_price_id = yearly_price_id
    product.stripe_synced_at = now
    product.updated_at = now
    await db.flush()
    logger.info(
        "product_synced_to_stripe",
        product_id=product.id,
        stripe_product_id=stripe_product.id,
        stripe_price_id=price_id,
    )
    return product
