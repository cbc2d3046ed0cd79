"""Gamification API endpoints: leaderboard and achievements."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user, get_current_user_optional, require_admin
from oceo.auth.service import ADMIN_ROLES
from oceo.database import get_session
from oceo.db.models import Achievement, User
from oceo.gamification.achievement_service import (
    TRIGGER_TYPES,
    create_achievement,
    delete_achievement,
    get_user_achievements,
    list_achievements,
)
from oceo.gamification.points_service import get_leaderboard
from oceo.gamification.schemas import (
    AchievementCreateRequest,
    AchievementListResponse,
    AchievementResponse,
    AchievementUpdateRequest,
    EarnedAchievementResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    SeedResponse,
    UserAchievementsResponse,
)
from oceo.gamification.seed import seed_default_achievements

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Top learners by points."""
    rows = await get_leaderboard(db, limit=limit)
    return LeaderboardResponse(leaderboard=[LeaderboardEntry(**r) for r in rows])


@router.get("/achievements", response_model=AchievementListResponse)
async def achievements(
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
):
    """All achievements. Secret ones are shown to admins and to users who earned them."""
    is_admin = user is not None and user.role in ADMIN_ROLES
    items = await list_achievements(db, include_secret=True)
    if not is_admin:
        earned_ids: set[int] = set()
        if user is not None:
            earned_ids = {a.id for _ua, a in await get_user_achievements(db, user.id)}
        items = [a for a in items if not a.is_secret or a.id in earned_ids]
    return AchievementListResponse(achievements=[AchievementResponse.model_validate(a) for a in items])


# ── Authenticated endpoints ──


@router.get("/achievements/me", response_model=UserAchievementsResponse)
async def my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Achievements the current user has earned."""
    earned = await get_user_achievements(db, user.id)
    available = await list_achievements(db, include_secret=False)
    return UserAchievementsResponse(
        earned=[
            EarnedAchievementResponse(
                achievement=AchievementResponse.model_validate(a),
                earned_at=ua.earned_at,
            )
            for ua, a in earned
        ],
        total_earned=len(earned),
        total_available=len(available),
    )


# ── Admin endpoints ──


@router.post("/achievements/seed", response_model=SeedResponse)
async def seed_achievements(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Insert any missing default achievements."""
    inserted = await seed_default_achievements(db)
    await db.commit()
    return SeedResponse(inserted=inserted)


@router.post("/achievements", response_model=AchievementResponse, status_code=201)
async def add_achievement(
    body: AchievementCreateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    try:
        achievement = await create_achievement(db, **body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return AchievementResponse.model_validate(achievement)


@router.get("/achievements/{achievement_id}", response_model=AchievementResponse)
async def get_achievement(
    achievement_id: int,
    db: AsyncSession = Depends(get_session),
):
    achievement = await db.get(Achievement, achievement_id)
    if achievement is None:
        raise HTTPException(status_code=404, detail="Achievement not found")
    return AchievementResponse.model_validate(achievement)


@router.put("/achievements/{achievement_id}", response_model=AchievementResponse)
async def edit_achievement(
    achievement_id: int,
    body: AchievementUpdateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    achievement = await db.get(Achievement, achievement_id)
    if achievement is None:
        raise HTTPException(status_code=404, detail="Achievement not found")
    if body.trigger_type is not None and body.trigger_type not in TRIGGER_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid trigger type. Must be one of: {', '.join(TRIGGER_TYPES)}",
        )
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(achievement, field, value)
    await db.commit()
    return AchievementResponse.model_validate(achievement)


@router.delete("/achievements/{achievement_id}")
async def remove_achievement(
    achievement_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    achievement = await db.get(Achievement, achievement_id)
    if achievement is None:
        raise HTTPException(status_code=404, detail="Achievement not found")
    await delete_achievement(db, achievement)
    await db.commit()
    return {"success": True}
