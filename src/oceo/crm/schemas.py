"""CRM tab payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from oceo.leads.schemas import LeadResponse


class WaitlistStats(BaseModel):
    total: int
    this_week: int
    converted: int
    conversion_rate: str


class WaitlistTabResponse(BaseModel):
    data: list[LeadResponse]
    stats: WaitlistStats


class CrmMember(BaseModel):
    id: int
    name: str | None = None
    email: str
    created_at: datetime
    subscription_id: int
    tier: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool
    member_since: datetime
    points: int | None = None
    last_activity_at: datetime | None = None


class MemberStats(BaseModel):
    total: int
    active: int
    trialing: int
    at_risk: int


class MembersTabResponse(BaseModel):
    data: list[CrmMember]
    stats: MemberStats


class ChurnedMember(BaseModel):
    id: int
    name: str | None = None
    email: str
    subscription_id: int
    tier: str
    status: str
    member_since: datetime
    churned_at: datetime


class ChurnStats(BaseModel):
    total: int
    churn_rate: str
    avg_membership_days: int


class ChurnedTabResponse(BaseModel):
    data: list[ChurnedMember]
    stats: ChurnStats
