"""Request/response schemas for user profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from goal_assistant.auth.schemas import UserResponse


class ProfileUpdateRequest(BaseModel):
    """Update profile fields. ``preferences`` keys are merged into the stored ones."""

    name: str | None = Field(None, min_length=1, max_length=100)
    preferences: dict[str, Any] | None = None


class GoalStats(BaseModel):
    total: int = 0
    completed: int = 0
    active: int = 0
    completion_rate: float = 0.0


class ModuleUsage(BaseModel):
    module_id: str
    goal_count: int


class ActivityStats(BaseModel):
    progress_entries: int = 0
    achievements_unlocked: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: str | None = None
    days_since_joined: int = 0


class ProfileResponse(BaseModel):
    user: UserResponse
    preferences: dict[str, Any] = {}
    created_at: datetime | None = None
    goals: GoalStats
    activity: ActivityStats
    modules: list[ModuleUsage] = []
