"""Applications, lead capture and the Studio Systems waitlist."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from oceo.config import get_settings
from oceo.db.base import utcnow
from oceo.db.models import Application, Lead
from oceo.email.service import get_email_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

APPLICATION_TYPES = ("coaching", "entrepreneur-circle")
APPLICATION_STATUSES = ("pending", "approved", "rejected")

WAITLIST_SOURCE = "studio_waitlist"
FREE_PRODUCT_SOURCE = "free_product"

# Answer labels for the admin notification, in display order
_APPLICATION_DETAIL_LABELS = {
    "phone": "Phone",
    "social_handle": "Social handle",
    "interest": "Interest",
    "experiences": "Experience",
    "growth_areas": "Growth areas",
    "obstacles": "Obstacles",
    "willing_to_invest": "Willing to invest",
    "additional_info": "Additional info",
}


def _dashboard_url(path: str) -> str:
    return f"{get_settings().app_base_url.rstrip('/')}/dashboard/{path}"


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


async def submit_application(db: AsyncSession, fields: dict[str, Any]) -> Application:
    """
    Store an application and notify the admin.

    Raises:
        ValueError: Missing type/name/email or unknown type.
    """
    if not fields.get("type") or not (fields.get("name") or "").strip() or not fields.get("email"):
        msg = "Missing required fields"
        raise ValueError(msg)
    if fields["type"] not in APPLICATION_TYPES:
        msg = "Invalid application type"
        raise ValueError(msg)

    application = Application(**fields, status="pending")
    db.add(application)
    await db.flush()
    logger.info("application_submitted", application_id=application.id, type=application.type)

    await get_email_service().notify_admin(
        "new_application_notification",
        {
            "application_type": application.type,
            "name": application.name,
            "email": application.email,
            "details": {label: getattr(application, field) for field, label in _APPLICATION_DETAIL_LABELS.items()},
            "dashboard_url": _dashboard_url("applications"),
        },
    )
    return application


async def list_applications(db: AsyncSession, application_type: str | None = None) -> list[Application]:
    stmt = select(Application)
    if application_type:
        stmt = stmt.where(Application.type == application_type)
    result = await db.execute(stmt.order_by(Application.created_at.desc(), Application.id.desc()))
    return list(result.scalars().all())


async def review_application(
    db: AsyncSession,
    application: Application,
    status: str | None,
    notes: str | None,
    reviewer_id: int,
) -> Application:
    """
    Raises:
        ValueError: Unknown status.
    """
    if status is not None:
        if status not in APPLICATION_STATUSES:
            msg = "Invalid status"
            raise ValueError(msg)
        application.status = status
    if notes is not None:
        application.notes = notes
    now = utcnow()
    application.reviewed_by = reviewer_id
    application.reviewed_at = now
    application.updated_at = now
    await db.flush()
    logger.info("application_reviewed", application_id=application.id, status=application.status)
    return application


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


def free_product_download_url(product_slug: str) -> str | None:
    return get_settings().free_product_downloads.get(product_slug) or None


async def claim_free_product(
    db: AsyncSession,
    email: str,
    product_slug: str,
    product_name: str,
    name: str | None = None,
) -> tuple[Lead, bool]:
    """
    Record the lead and email the download link.

    Returns:
        (lead, email_sent)

    Raises:
        ValueError: The product is not configured as a free download.
    """
    download_url = free_product_download_url(product_slug)
    if download_url is None:
        msg = "This product is not available as a free download"
        raise ValueError(msg)

    lead = Lead(
        email=email,
        name=name,
        product_slug=product_slug,
        product_name=product_name,
        source=FREE_PRODUCT_SOURCE,
    )
    db.add(lead)
    await db.flush()

    sent = await get_email_service().send_template(
        email,
        "free_download",
        {"name": name, "product_name": product_name, "download_url": download_url},
    )
    if sent:
        lead.delivery_email_sent_at = utcnow()
        await db.flush()
    logger.info("free_product_claimed", lead_id=lead.id, product_slug=product_slug, email_sent=sent)
    return lead, sent


async def join_waitlist(db: AsyncSession, email: str, name: str | None = None) -> Lead:
    """
    Raises:
        ValueError: The email is already on the waitlist.
    """
    email = email.strip().lower()
    existing = await db.execute(
        select(Lead.id).where(Lead.email == email, Lead.source == WAITLIST_SOURCE).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        msg = "You are already on the waitlist!"
        raise ValueError(msg)

    lead = Lead(
        email=email,
        name=name,
        product_slug="studio-systems",
        product_name="Studio Systems Waitlist",
        source=WAITLIST_SOURCE,
    )
    db.add(lead)
    await db.flush()
    logger.info("waitlist_joined", lead_id=lead.id)

    await get_email_service().notify_admin(
        "waitlist_admin_notification",
        {"name": name, "email": email, "dashboard_url": _dashboard_url("leads")},
    )
    return lead


async def list_leads(db: AsyncSession, source: str | None = None) -> list[Lead]:
    stmt = select(Lead)
    if source:
        stmt = stmt.where(Lead.source == source)
    result = await db.execute(stmt.order_by(Lead.created_at.desc(), Lead.id.desc()))
    return list(result.scalars().all())
