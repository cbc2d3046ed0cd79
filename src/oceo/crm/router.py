"""Admin CRM router: waitlist, members and churn."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import require_admin
from oceo.crm import service
from oceo.crm.schemas import ChurnedTabResponse, MembersTabResponse, WaitlistTabResponse
from oceo.database import get_session

router = APIRouter(prefix="/api/v1/crm", tags=["CRM"], dependencies=[Depends(require_admin)])

TAB_RESPONSES = {
    "waitlist": WaitlistTabResponse,
    "members": MembersTabResponse,
    "churned": ChurnedTabResponse,
}


@router.get("", response_model=WaitlistTabResponse | MembersTabResponse | ChurnedTabResponse)
async def crm(
    tab: str = Query("waitlist"),
    db: AsyncSession = Depends(get_session),
):
    try:
        payload = await service.get_tab(db, tab)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TAB_RESPONSES[tab].model_validate(payload, from_attributes=True)
