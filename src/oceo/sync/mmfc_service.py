"""MMFC storefront sync: stored keys, fetch, transform and upsert."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from sqlalchemy import delete, select

from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import MmfcApiKey, MmfcProduct, MmfcSchedulingLink, MmfcService
from oceo.sync.crypto import decrypt_api_key, encrypt_api_key
from oceo.sync.mmfc_client import MmfcApiError, MmfcClient

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SYNC_FREQUENCIES = {"daily": timedelta(days=1), "weekly": timedelta(days=7), "manual": None}
KEY_PREFIX = "int_"

# Failures a single sync run reports instead of raising
SYNC_ERRORS = (MmfcApiError, httpx.HTTPError, LookupError, ValueError, TypeError)


class MmfcKeyValidationError(ValueError):
    pass


# ---------------------------------------------------------------------------
# API keys
# ---------------------------------------------------------------------------


async def list_api_keys(db: AsyncSession, user_id: int) -> list[MmfcApiKey]:
    result = await db.execute(
        select(MmfcApiKey).where(MmfcApiKey.user_id == user_id).order_by(MmfcApiKey.created_at.desc())
    )
    return list(result.scalars().all())


async def get_api_key(db: AsyncSession, key_id: int, user_id: int) -> MmfcApiKey | None:
    result = await db.execute(select(MmfcApiKey).where(MmfcApiKey.id == key_id, MmfcApiKey.user_id == user_id))
    return result.scalar_one_or_none()


def check_key_format(api_key: str) -> None:
    if not api_key.startswith(KEY_PREFIX):
        msg = 'Invalid API key format. Must start with "int_"'
        raise ValueError(msg)


async def validate_remote_key(api_key: str, base_url: str | None) -> None:
    """
    Check the key against the storefront.

    Raises:
        MmfcKeyValidationError: Unreachable, or neither endpoint accepted the key.
    """
    try:
        async with MmfcClient(api_key, base_url) as client:
            ok, reason = await client.validate()
    except httpx.HTTPError as e:
        msg = f"Unable to connect to MMFC: {e}. You can skip validation by enabling the skip option."
        raise MmfcKeyValidationError(msg) from e
    if not ok:
        msg = f"Invalid API key or insufficient permissions. {reason}."
        raise MmfcKeyValidationError(msg)


async def create_api_key(
    db: AsyncSession,
    user_id: int,
    name: str,
    api_key: str,
    base_url: str | None = None,
    auto_sync: bool = False,
    sync_frequency: str = "daily",
    skip_validation: bool = False,
) -> MmfcApiKey:
    """
    Raises:
        ValueError: Bad format, or live validation failed.
    """
    check_key_format(api_key)
    if not skip_validation:
        await validate_remote_key(api_key, base_url)

    key = MmfcApiKey(
        user_id=user_id,
        name=name,
        api_key=encrypt_api_key(api_key),
        base_url=(base_url or get_settings().mmfc_default_base_url).rstrip("/"),
        auto_sync=auto_sync,
        sync_frequency=sync_frequency,
        is_active=True,
    )
    db.add(key)
    await db.flush()
    logger.info("mmfc_key_created", api_key_id=key.id, user_id=user_id)
    return key


async def update_api_key(db: AsyncSession, key: MmfcApiKey, fields: dict[str, Any]) -> MmfcApiKey:
    """
    Apply changes. A replacement key is format-checked and validated live.

    Raises:
        ValueError: Bad format, or live validation failed.
    """
    new_key = fields.pop("api_key", None)
    if new_key:
        check_key_format(new_key)
        await validate_remote_key(new_key, fields.get("base_url") or key.base_url)
        key.api_key = encrypt_api_key(new_key)
    for field, value in fields.items():
        if value is not None:
            setattr(key, field, value)
    key.updated_at = utcnow()
    await db.flush()
    return key


async def delete_api_key(db: AsyncSession, key: MmfcApiKey) -> None:
    """Remove the key and everything synced through it."""
    for model in (MmfcProduct, MmfcSchedulingLink, MmfcService):
        await db.execute(delete(model).where(model.api_key_id == key.id))
    await db.delete(key)
    await db.flush()
    logger.info("mmfc_key_deleted", api_key_id=key.id)


async def _record_sync(db: AsyncSession, key: MmfcApiKey, error: str | None = None) -> None:
    now = utcnow()
    key.last_sync_at = now
    key.last_sync_status = "error" if error else "success"
    key.last_sync_error = error
    key.updated_at = now
    await db.flush()


async def _usable_key(db: AsyncSession, key_id: int, user_id: int) -> tuple[MmfcApiKey, str]:
    key = await get_api_key(db, key_id, user_id)
    if key is None:
        msg = "API key not found"
        raise LookupError(msg)
    if not key.is_active:
        msg = "API key is inactive"
        raise ValueError(msg)
    return key, decrypt_api_key(key.api_key)


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def _product_fields(item: dict[str, Any], base_url: str) -> dict[str, Any]:
    settings = get_settings()
    featured = item.get("featured_image") or None
    checkout_url = item.get("checkout_url") or (
        f"{base_url}/store/{settings.mmfc_store_handle}/{item['slug']}?ref={settings.mmfc_referral_code}"
    )
    return {
        "title": item["title"],
        "slug": item["slug"],
        "description": item.get("description"),
        "pricing_type": item.get("pricing_type"),
        "price": item.get("price"),
        "sale_price": item.get("sale_price") or None,
        "delivery_type": item.get("delivery_type"),
        "cover_image": item.get("cover_image"),
        "featured_image_url": featured.get("url") if featured else None,
        "featured_image_alt": featured.get("alt") if featured else None,
        "images": [featured] if featured else None,
        "video_url": item.get("video_url") or None,
        "has_files": bool(item.get("has_files")),
        "file_count": item.get("file_count") or 0,
        "has_repository": bool(item.get("has_repository")),
        "checkout_url": checkout_url,
    }


def _link_fields(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "slug": item["slug"],
        "title": item["title"],
        "description": item.get("description"),
        "duration_minutes": item["duration_minutes"],
        "booking_url": item["booking_url"],
        "max_advance_booking_days": item.get("max_advance_booking_days"),
        "min_notice_minutes": item.get("min_notice_minutes"),
    }


def _decimal(value: Any) -> Decimal | None:  # noqa: ANN401
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        msg = f"Invalid price: {value!r}"
        raise ValueError(msg) from e


def _service_fields(item: dict[str, Any]) -> dict[str, Any]:
    featured = item.get("featured_image") or {}
    return {
        "title": item["title"],
        "slug": item["slug"],
        "url": item.get("url"),
        "description": item.get("description"),
        "pricing_type": item.get("pricing_type"),
        "price": _decimal(item.get("price")),
        "sale_price": _decimal(item.get("sale_price")),
        "featured_image_url": item.get("featured_image_url") or featured.get("url"),
        "cover_image": item.get("cover_image"),
    }


async def _upsert(db: AsyncSession, model: type, api_key_id: int, external_id: int, fields: dict[str, Any]) -> None:
    """Insert or update one mirrored row keyed by (api_key_id, external_id)."""
    result = await db.execute(select(model).where(model.api_key_id == api_key_id, model.external_id == external_id))
    row = result.scalar_one_or_none()
    now = utcnow()
    if row is None:
        db.add(model(api_key_id=api_key_id, external_id=external_id, synced_at=now, **fields))
        return
    for field, value in fields.items():
        setattr(row, field, value)
    row.synced_at = now
    row.updated_at = now


# ---------------------------------------------------------------------------
# Sync runs
# ---------------------------------------------------------------------------


async def sync_mmfc_products(db: AsyncSession, api_key_id: int, user_id: int) -> dict[str, Any]:
    """Mirror every storefront product. Returns {success, products_count, error?}."""
    key: MmfcApiKey | None = None
    try:
        key, token = await _usable_key(db, api_key_id, user_id)
        async with MmfcClient(token, key.base_url) as client:
            items = await client.fetch_all_products()
        for item in items:
            await _upsert(db, MmfcProduct, key.id, item["id"], _product_fields(item, key.base_url))
        await _record_sync(db, key)
    except SYNC_ERRORS as e:
        logger.warning("mmfc_sync_failed", api_key_id=api_key_id, error=str(e))
        if key is not None:
            await _record_sync(db, key, error=str(e))
        return {"success": False, "products_count": 0, "error": str(e)}
    logger.info("mmfc_sync_completed", api_key_id=api_key_id, products_count=len(items))
    return {"success": True, "products_count": len(items)}


async def sync_mmfc_scheduling(db: AsyncSession, api_key_id: int, user_id: int) -> dict[str, Any]:
    """Mirror booking links. Returns {success, links_count, error?}."""
    key: MmfcApiKey | None = None
    try:
        key, token = await _usable_key(db, api_key_id, user_id)
        async with MmfcClient(token, key.base_url) as client:
            items = await client.fetch_scheduling_links()
        for item in items:
            await _upsert(db, MmfcSchedulingLink, key.id, item["id"], _link_fields(item))
        await _record_sync(db, key)
    except SYNC_ERRORS as e:
        logger.warning("mmfc_scheduling_sync_failed", api_key_id=api_key_id, error=str(e))
        if key is not None:
            await _record_sync(db, key, error=str(e))
        return {"success": False, "links_count": 0, "error": str(e)}
    logger.info("mmfc_scheduling_sync_completed", api_key_id=api_key_id, links_count=len(items))
    return {"success": True, "links_count": len(items)}


async def sync_mmfc_services(db: AsyncSession, api_key_id: int, user_id: int) -> dict[str, Any]:
    """Mirror service offerings. Returns {success, services_count, error?}."""
    key: MmfcApiKey | None = None
    try:
        key, token = await _usable_key(db, api_key_id, user_id)
        async with MmfcClient(token, key.base_url) as client:
            items = await client.fetch_services()
        for item in items:
            await _upsert(db, MmfcService, key.id, item["id"], _service_fields(item))
        await _record_sync(db, key)
    except SYNC_ERRORS as e:
        logger.warning("mmfc_services_sync_failed", api_key_id=api_key_id, error=str(e))
        if key is not None:
            await _record_sync(db, key, error=str(e))
        return {"success": False, "services_count": 0, "error": str(e)}
    logger.info("mmfc_services_sync_completed", api_key_id=api_key_id, services_count=len(items))
    return {"success": True, "services_count": len(items)}


def is_sync_due(key: MmfcApiKey, now=None) -> bool:  # noqa: ANN001
    if key.last_sync_at is None:
        return True
    interval = SYNC_FREQUENCIES.get(key.sync_frequency)
    if interval is None:
        return False
    return key.last_sync_at < (now or utcnow()) - interval


async def sync_all_auto_sync_keys(db: AsyncSession) -> dict[str, Any]:
    """Product sync for every active auto-sync key that is due."""
    result = await db.execute(
        select(MmfcApiKey).where(MmfcApiKey.is_active.is_(True), MmfcApiKey.auto_sync.is_(True))
    )
    now = utcnow()
    due = [key for key in result.scalars().all() if is_sync_due(key, now)]

    results = []
    for key in due:
        outcome = await sync_mmfc_products(db, key.id, key.user_id)
        results.append({"api_key_id": key.id, "success": outcome["success"], "error": outcome.get("error")})
    synced = sum(1 for r in results if r["success"])
    logger.info("mmfc_auto_sync_completed", synced=synced, failed=len(results) - synced)
    return {"synced": synced, "failed": len(results) - synced, "results": results}


# ---------------------------------------------------------------------------
# Mirrored content
# ---------------------------------------------------------------------------


async def list_user_products(db: AsyncSession, user_id: int) -> list[MmfcProduct]:
    result = await db.execute(
        select(MmfcProduct)
        .join(MmfcApiKey, MmfcProduct.api_key_id == MmfcApiKey.id)
        .where(MmfcApiKey.user_id == user_id)
        .order_by(MmfcProduct.created_at.desc(), MmfcProduct.id.desc())
    )
    return list(result.scalars().all())


async def list_public_products(db: AsyncSession) -> list[MmfcProduct]:
    result = await db.execute(
        select(MmfcProduct)
        .where(MmfcProduct.is_visible.is_(True))
        .order_by(MmfcProduct.created_at.desc(), MmfcProduct.id.desc())
    )
    return list(result.scalars().all())


async def list_user_scheduling_links(db: AsyncSession, user_id: int) -> list[tuple[MmfcSchedulingLink, str]]:
    result = await db.execute(
        select(MmfcSchedulingLink, MmfcApiKey.name)
        .join(MmfcApiKey, MmfcSchedulingLink.api_key_id == MmfcApiKey.id)
        .where(MmfcApiKey.user_id == user_id)
        .order_by(MmfcSchedulingLink.synced_at.desc(), MmfcSchedulingLink.id.desc())
    )
    return [(link, name) for link, name in result.all()]


async def list_enabled_scheduling_links(db: AsyncSession) -> list[MmfcSchedulingLink]:
    result = await db.execute(
        select(MmfcSchedulingLink)
        .where(MmfcSchedulingLink.is_enabled.is_(True))
        .order_by(MmfcSchedulingLink.synced_at.desc(), MmfcSchedulingLink.id.desc())
    )
    return list(result.scalars().all())


async def list_user_services(db: AsyncSession, user_id: int) -> list[tuple[MmfcService, str]]:
    result = await db.execute(
        select(MmfcService, MmfcApiKey.name)
        .join(MmfcApiKey, MmfcService.api_key_id == MmfcApiKey.id)
        .where(MmfcApiKey.user_id == user_id)
        .order_by(MmfcService.synced_at.desc(), MmfcService.id.desc())
    )
    return [(service, name) for service, name in result.all()]


async def list_visible_services(db: AsyncSession) -> list[MmfcService]:
    result = await db.execute(
        select(MmfcService)
        .where(MmfcService.is_visible.is_(True))
        .order_by(MmfcService.synced_at.desc(), MmfcService.id.desc())
    )
    return list(result.scalars().all())


async def _owned(db: AsyncSession, model: type, row_id: int, user_id: int) -> Any:  # noqa: ANN401
    result = await db.execute(
        select(model)
        .join(MmfcApiKey, model.api_key_id == MmfcApiKey.id)
        .where(model.id == row_id, MmfcApiKey.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def set_flag(
    db: AsyncSession, model: type, row_id: int, user_id: int, flag: str, value: bool, label: str
) -> Any:  # noqa: ANN401
    """
    Toggle is_visible / is_enabled on a mirrored row the user owns.

    Raises:
        LookupError: No such row for this user.
    """
    row = await _owned(db, model, row_id, user_id)
    if row is None:
        msg = f"{label} not found"
        raise LookupError(msg)
    setattr(row, flag, value)
    row.updated_at = utcnow()
    await db.flush()
    return row
