"""Applications, leads and waitlist router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.database import get_session
from oceo.db.models import Application, User
from oceo.leads import service
from oceo.leads.schemas import (
    ApplicationCreateRequest,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationReviewRequest,
    ClaimFreeProductRequest,
    LeadListResponse,
    LeadResponse,
    WaitlistRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Leads"])


# ── Applications ──


@router.post("/applications", status_code=201)
async def submit_application(body: ApplicationCreateRequest, db: AsyncSession = Depends(get_session)):
    try:
        application = await service.submit_application(db, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"message": "Application submitted successfully", "id": application.id}


@router.get("/applications", response_model=ApplicationListResponse)
async def list_applications(
    type: str | None = Query(None),  # noqa: A002
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    applications = await service.list_applications(db, application_type=type)
    return ApplicationListResponse(applications=[ApplicationResponse.model_validate(a) for a in applications])


@router.put("/applications/{application_id}", response_model=ApplicationResponse)
async def review_application(
    application_id: int,
    body: ApplicationReviewRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    application = await db.get(Application, application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    try:
        await service.review_application(db, application, body.status, body.notes, reviewer_id=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ApplicationResponse.model_validate(application)


# ── Leads ──


@router.post("/leads/claim-free-product")
async def claim_free_product(body: ClaimFreeProductRequest, db: AsyncSession = Depends(get_session)):
    """Record the lead and email the download link."""
    try:
        lead, email_sent = await service.claim_free_product(
            db, body.email, body.product_slug, body.product_name, name=body.name
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"success": True, "lead_id": lead.id, "email_sent": email_sent}


@router.get("/leads", response_model=LeadListResponse)
async def list_leads(
    source: str | None = Query(None),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    leads = await service.list_leads(db, source=source)
    return LeadListResponse(leads=[LeadResponse.model_validate(lead) for lead in leads])


# ── Waitlist ──


@router.post("/waitlist", status_code=201)
async def join_waitlist(body: WaitlistRequest, db: AsyncSession = Depends(get_session)):
    try:
        await service.join_waitlist(db, body.email, name=body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"success": True, "message": "Successfully joined the waitlist!"}


@router.get("/waitlist", response_model=LeadListResponse)
async def list_waitlist(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    leads = await service.list_leads(db, source=service.WAITLIST_SOURCE)
    return LeadListResponse(leads=[LeadResponse.model_validate(lead) for lead in leads])
