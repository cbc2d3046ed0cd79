"""Admin CRM views over waitlist leads and Studio Systems memberships."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from oceo.db.base import utcnow
from oceo.db.models import EducationSubscription, Lead, User, UserProfile
from oceo.leads.service import WAITLIST_SOURCE

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _percent(part: int, whole: int) -> str:
    return f"{part / whole * 100:.1f}%" if whole else "0%"


async def waitlist_tab(db: AsyncSession) -> dict[str, Any]:
    """Waitlist signups, newest first, and how many became active members."""
    leads = list((await db.execute(
        select(Lead).where(Lead.source == WAITLIST_SOURCE).order_by(Lead.created_at.desc(), Lead.id.desc())
    )).scalars().all())

    week_ago = utcnow() - timedelta(days=7)
    member_emails = set((await db.execute(
        select(func.lower(User.email))
        .join(EducationSubscription, EducationSubscription.user_id == User.id)
        .where(EducationSubscription.status == "active")
    )).scalars().all())
    converted = len({lead.email.lower() for lead in leads} & member_emails)

    return {
        "data": leads,
        "stats": {
            "total": len(leads),
            "this_week": sum(1 for lead in leads if lead.created_at >= week_ago),
            "converted": converted,
            "conversion_rate": _percent(converted, len(leads)),
        },
    }


async def members_tab(db: AsyncSession) -> dict[str, Any]:
    """Active then trialing members with points and last activity."""
    result = await db.execute(
        select(User, EducationSubscription, UserProfile)
        .join(EducationSubscription, EducationSubscription.user_id == User.id)
        .outerjoin(UserProfile, UserProfile.user_id == User.id)
        .where(EducationSubscription.status.in_(("active", "trialing")))
        .order_by(EducationSubscription.created_at.desc(), EducationSubscription.id.desc())
    )
    rows = [(row.User, row.EducationSubscription, row.UserProfile) for row in result]
    active = [r for r in rows if r[1].status == "active"]
    trialing = [r for r in rows if r[1].status == "trialing"]

    members = [
        {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "created_at": user.created_at,
            "subscription_id": sub.id,
            "tier": sub.tier,
            "status": sub.status,
            "current_period_end": sub.current_period_end,
            "cancel_at_period_end": sub.cancel_at_period_end,
            "member_since": sub.created_at,
            "points": profile.points if profile else None,
            "last_activity_at": profile.last_activity_at if profile else None,
        }
        for user, sub, profile in active + trialing
    ]
    return {
        "data": members,
        "stats": {
            "total": len(members),
            "active": len(active),
            "trialing": len(trialing),
            "at_risk": sum(1 for m in members if m["cancel_at_period_end"]),
        },
    }


async def churned_tab(db: AsyncSession) -> dict[str, Any]:
    """Canceled memberships, most recently canceled first, with churn rate."""
    result = await db.execute(
        select(User, EducationSubscription)
        .join(EducationSubscription, EducationSubscription.user_id == User.id)
        .where(EducationSubscription.status == "canceled")
        .order_by(EducationSubscription.updated_at.desc(), EducationSubscription.id.desc())
    )
    churned = [
        {
            "id": row.User.id,
            "name": row.User.name,
            "email": row.User.email,
            "subscription_id": row.EducationSubscription.id,
            "tier": row.EducationSubscription.tier,
            "status": row.EducationSubscription.status,
            "member_since": row.EducationSubscription.created_at,
            "churned_at": row.EducationSubscription.updated_at,
        }
        for row in result
    ]
    total = (await db.execute(select(func.count(EducationSubscription.id)))).scalar() or 0
    days = [(m["churned_at"] - m["member_since"]).total_seconds() / 86400 for m in churned]

    return {
        "data": churned,
        "stats": {
            "total": len(churned),
            "churn_rate": _percent(len(churned), total),
            "avg_membership_days": round(sum(days) / len(days)) if days else 0,
        },
    }


async def get_tab(db: AsyncSession, tab: str) -> dict[str, Any]:
    """
    Raises:
        ValueError: Unknown tab.
    """
    if tab == "waitlist":
        return await waitlist_tab(db)
    if tab == "members":
        return await members_tab(db)
    if tab == "churned":
        return await churned_tab(db)
    msg = "Invalid tab"
    raise ValueError(msg)
