"""Gamification API response and request schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AchievementResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    icon_url: str | None = None
    points_value: int
    trigger_type: str
    trigger_value: int
    is_secret: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]


class AchievementCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    icon_url: str | None = None
    points_value: int = Field(0, ge=0)
    trigger_type: str
    trigger_value: int = Field(1, ge=0)
    is_secret: bool = False


class AchievementUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    icon_url: str | None = None
    points_value: int | None = Field(None, ge=0)
    trigger_type: str | None = None
    trigger_value: int | None = Field(None, ge=0)
    is_secret: bool | None = None


class EarnedAchievementResponse(BaseModel):
    achievement: AchievementResponse
    earned_at: datetime


class UserAchievementsResponse(BaseModel):
    earned: list[EarnedAchievementResponse]
    total_earned: int
    total_available: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: str | None = None
    points: int
    streak: int


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry]


class SeedResponse(BaseModel):
    inserted: int
