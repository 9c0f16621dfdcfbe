"""Pydantic models for gamification endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


# --- Achievements ---


class AchievementResponse(BaseModel):
    slug: str
    module_id: str | None = None
    name: str
    description: str
    icon: str | None = None
    category: str
    xp_reward: int
    criteria: dict[str, Any] = {}
    unlocked: bool = False
    unlocked_at: datetime | None = None
    progress: float = 0.0


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]
    total: int
    unlocked: int


class UnlockedAchievementResponse(BaseModel):
    slug: str
    name: str
    module_id: str | None = None
    xp_reward: int
    unlocked_at: datetime
    metadata: dict[str, Any] = {}


class UserAchievementsResponse(BaseModel):
    unlocked: list[UnlockedAchievementResponse]
    total_available: int
    total_unlocked: int


# --- XP ---


class XPResponse(BaseModel):
    total_xp: int
    level: int
    level_title: str
    xp_into_level: int
    xp_for_level: int
    progress: float
    next_level: int
    next_title: str


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    module_id: str | None = None
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class XPCorrectionRequest(BaseModel):
    delta: int
    reason: str = Field(..., min_length=3, max_length=256)


class XPCorrectionResponse(BaseModel):
    user_id: int
    total_xp: int
    level: int


# --- Streak / summary ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    is_active: bool


class GamificationSummaryResponse(BaseModel):
    xp: XPResponse
    streak: StreakResponse
    achievements: dict[str, int]


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    title: str
    xp_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Leaderboard ---


LeaderboardType = Literal["xp", "level", "achievements"]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: str
    total_xp: int
    level: int
    achievements: int
    is_current_user: bool = False


class LeaderboardResponse(BaseModel):
    type: LeaderboardType
    entries: list[LeaderboardEntry]
