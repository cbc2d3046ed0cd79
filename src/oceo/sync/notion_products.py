"""Import the Notion products database into ``notion_products``."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from sqlalchemy import select

from oceo.db.base import utcnow
from oceo.db.models import NotionProduct
from oceo.sync.notion_client import NotionApiError, NotionClient
from oceo.sync.notion_markdown import blocks_to_markdown, extract_excerpt
from oceo.sync.notion_sync import (
    NotionNotConfiguredError,
    SyncTargetNotFoundError,
    checkbox_value,
    cover_url,
    ensure_configured,
    first_prop,
    page_slug,
    page_title,
    plain_text,
    select_value,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PAGE_ERRORS = (NotionApiError, httpx.HTTPError, KeyError, TypeError, AttributeError, IndexError, ValueError)
MOST_RECENT_FIRST = [{"timestamp": "last_edited_time", "direction": "descending"}]


def _price_text(prop: dict[str, Any] | None) -> str | None:
    """Display price: "$29" from a number property, the raw text from a rich_text one."""
    if not prop:
        return None
    if prop.get("type") == "number" and prop.get("number") is not None:
        number = prop["number"]
        if float(number).is_integer():
            number = int(number)
        return f"${number}"
    if prop.get("type") == "rich_text":
        return plain_text(prop.get("rich_text")) or None
    return None


def _text_or_url(prop: dict[str, Any] | None) -> str | None:
    if not prop:
        return None
    if prop.get("type") == "url":
        return prop.get("url") or None
    if prop.get("type") == "rich_text":
        return plain_text(prop.get("rich_text")) or None
    return None


def _category(prop: dict[str, Any] | None) -> str | None:
    if prop and prop.get("type") == "multi_select":
        return ", ".join(option["name"] for option in prop.get("multi_select") or []) or None
    return select_value(prop)


def _is_live(prop: dict[str, Any] | None) -> bool:
    """Unpublished unless a Live/Published checkbox is ticked or Status is "Published"."""
    if prop and prop.get("type") == "select":
        return (select_value(prop) or "").lower() == "published"
    return checkbox_value(prop)


def page_to_product_fields(page: dict[str, Any], markdown: str) -> dict[str, Any]:
    props = page["properties"]
    title = page_title(page, "Untitled", "Title", "Name")
    excerpt = extract_excerpt(markdown)

    description = None
    desc_prop = first_prop(props, "Description")
    if desc_prop and desc_prop.get("type") == "rich_text":
        description = plain_text(desc_prop.get("rich_text")) or None

    type_prop = first_prop(props, "Type", "Product Type")
    product_type = select_value(type_prop)
    if product_type is None and type_prop and type_prop.get("type") == "rich_text":
        product_type = plain_text(type_prop.get("rich_text")) or None

    order_prop = first_prop(props, "Order", "Display Order")
    display_order = 0
    if order_prop and order_prop.get("type") == "number" and order_prop.get("number") is not None:
        display_order = int(order_prop["number"])

    return {
        "title": title,
        "slug": page_slug(title, page),
        "description": description or excerpt,
        "content": markdown,
        "excerpt": excerpt,
        "price": _price_text(first_prop(props, "Price")),
        "sale_price": _price_text(first_prop(props, "Sale Price")),
        "product_type": product_type,
        "category": _category(first_prop(props, "Category")),
        "cover_image_url": cover_url(page),
        "checkout_url": _text_or_url(first_prop(props, "Checkout URL", "Checkout", "URL")),
        "preview_url": _text_or_url(first_prop(props, "Preview URL", "Preview", "Demo")),
        "is_published": _is_live(first_prop(props, "Live", "Published", "Status")),
        "is_featured": checkbox_value(first_prop(props, "Featured")),
        "display_order": display_order,
    }


async def _upsert_product(db: AsyncSession, page_id: str, fields: dict[str, Any], user_id: int) -> str:
    result = await db.execute(select(NotionProduct).where(NotionProduct.notion_page_id == page_id))
    product = result.scalar_one_or_none()
    now = utcnow()
    if product is None:
        db.add(NotionProduct(notion_page_id=page_id, **fields, created_by=user_id, created_at=now, updated_at=now))
        await db.flush()
        return "created"
    for key, value in fields.items():
        setattr(product, key, value)
    product.updated_at = now
    await db.flush()
    return "updated"


async def iter_sync_products(
    db: AsyncSession,
    user_id: int,
    limit: int | None = None,
) -> AsyncIterator[tuple[str, dict[str, Any]]]:
    """
    Import the products database, most recently edited first.

    Yields ("start", {...}), one ("progress", {...}) per page and a final
    ("complete", {success, synced, errors, products}). ``limit`` keeps only
    the N most recently edited pages.
    """
    if limit == 1:
        scope = "latest product"
    elif limit:
        scope = f"last {limit} products"
    else:
        scope = "all products"
    yield "start", {"message": f"Starting sync of {scope}..."}

    result: dict[str, Any] = {"success": True, "synced": 0, "errors": [], "products": []}
    try:
        api_key, database_id = ensure_configured("products")
        async with NotionClient(api_key) as client:
            pages = await client.query_database(database_id, sorts=MOST_RECENT_FIRST)
            if limit:
                pages = pages[:limit]
            total = len(pages)
            for index, page in enumerate(pages, start=1):
                if "properties" not in page:
                    continue
                try:
                    markdown = blocks_to_markdown(await client.fetch_block_tree(page["id"]))
                    fields = page_to_product_fields(page, markdown)
                    status = await _upsert_product(db, page["id"], fields, user_id)
                except PAGE_ERRORS as e:
                    logger.warning("notion_product_sync_failed", page_id=page.get("id"), error=str(e))
                    result["errors"].append(f"Failed to sync product: {e}")
                    title, status = "Error syncing product", "error"
                else:
                    result["synced"] += 1
                    result["products"].append({"id": page["id"], "title": fields["title"], "status": status})
                    title = fields["title"]
                yield "progress", {
                    "current": index,
                    "total": total,
                    "title": title,
                    "status": status,
                    "percentage": round(index / total * 100),
                }
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError) as e:
        logger.warning("notion_products_query_failed", error=str(e))
        result["success"] = False
        result["errors"].append(str(e))

    logger.info("notion_products_synced", synced=result["synced"], errors=len(result["errors"]))
    yield "complete", result


async def sync_notion_products(db: AsyncSession, user_id: int, limit: int | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {}
    async for event, payload in iter_sync_products(db, user_id, limit):
        if event == "complete":
            result = payload
    return result


async def sync_single_product(db: AsyncSession, product_id: int) -> dict[str, Any]:
    """
    Refresh one product straight from its Notion page.

    Publishing, featuring and display order are left as set locally.

    Raises:
        SyncTargetNotFoundError: No product has this ID.
    """
    product = await db.get(NotionProduct, product_id)
    if product is None:
        msg = "Product not found"
        raise SyncTargetNotFoundError(msg)

    try:
        api_key, _ = ensure_configured("products")
        async with NotionClient(api_key) as client:
            page = await client.retrieve_page(product.notion_page_id)
            if "properties" not in page:
                return {"success": False, "message": "Invalid page response from Notion"}
            markdown = blocks_to_markdown(await client.fetch_block_tree(product.notion_page_id))
        fields = page_to_product_fields(page, markdown)
    except (NotionApiError, NotionNotConfiguredError, httpx.HTTPError, ValueError) as e:
        logger.warning("notion_product_single_sync_failed", product_id=product_id, error=str(e))
        return {"success": False, "message": str(e)}

    for key in ("is_published", "is_featured", "display_order"):
        fields.pop(key)
    for key, value in fields.items():
        setattr(product, key, value)
    product.updated_at = utcnow()
    await db.flush()
    logger.info("notion_product_synced", product_id=product.id, title=product.title)
    return {"success": True, "message": f'Successfully synced "{product.title}"', "status": "updated"}


async def list_products(db: AsyncSession, published_only: bool = False) -> list[NotionProduct]:
    """Admin view: most recently updated first. Public view: display order."""
    stmt = select(NotionProduct)
    if published_only:
        stmt = stmt.where(NotionProduct.is_published.is_(True)).order_by(
            NotionProduct.display_order, NotionProduct.id
        )
    else:
        stmt = stmt.order_by(NotionProduct.updated_at.desc(), NotionProduct.id.desc())
    return list((await db.execute(stmt)).scalars().all())


async def set_product_flags(
    db: AsyncSession,
    product_id: int,
    is_published: bool | None = None,
    is_featured: bool | None = None,
) -> NotionProduct:
    """
    Raises:
        SyncTargetNotFoundError: No product has this ID.
    """
    product = await db.get(NotionProduct, product_id)
    if product is None:
        msg = "Product not found"
        raise SyncTargetNotFoundError(msg)
    if is_published is not None:
        product.is_published = is_published
    if is_featured is not None:
        product.is_featured = is_featured
    product.updated_at = utcnow()
    await db.flush()
    return product


async def get_published_product(db: AsyncSession, slug: str) -> NotionProduct | None:
    result = await db.execute(
        select(NotionProduct)
        .where(NotionProduct.slug == slug, NotionProduct.is_published.is_(True))
        .order_by(NotionProduct.id)
        .limit(1)
    )
    return result.scalar_one_or_none()
