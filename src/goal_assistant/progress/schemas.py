"""Request/response schemas for progress endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ProgressCreateRequest(BaseModel):
    """Record progress toward a goal.

    ``value`` is added to the goal's current value. When ``max_value`` is
    given, ``value / max_value >= 1`` also completes the goal.
    """

    goal_id: int
    value: float = Field(..., ge=0)
    max_value: float | None = Field(None, gt=0)
    action: str | None = Field(None, min_length=1, max_length=64)
    note: str | None = Field(None, max_length=2000)
    entry_data: dict[str, Any] = Field(default_factory=dict)
    idempotency_key: str | None = Field(None, min_length=1, max_length=128)
    recorded_at: datetime | None = None


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_id: int
    module_id: str
    action: str
    value: float
    max_value: float | None = None
    note: str | None = None
    entry_data: dict[str, Any] = {}
    xp_awarded: int = 0
    idempotency_key: str | None = None
    recorded_at: datetime


class ProgressCreateResponse(BaseModel):
    progress: ProgressResponse
    duplicate: bool = False
    xp_awarded: int = 0
    goal_completed: bool = False
    leveled_up: bool = False
    level: int
    streak: int
    achievements_unlocked: list[str] = []


class ProgressListResponse(BaseModel):
    entries: list[ProgressResponse]
    total: int
    page: int
    per_page: int


class ChartPoint(BaseModel):
    date: date
    progress: float
    xp_earned: int | None = None


class TrendPoint(BaseModel):
    date: date
    trend: float


class ChartStats(BaseModel):
    total_data_points: int
    average_progress: float
    max_progress: float
    total_xp: int
    progress_trend: Literal["increasing", "decreasing", "stable"]


class ChartConfig(BaseModel):
    aggregation: Literal["daily", "weekly", "monthly"]
    days: int
    include_xp: bool
    include_trend: bool


class ProgressChartResponse(BaseModel):
    goal_id: int
    goal: dict[str, Any]
    config: ChartConfig
    points: list[ChartPoint]
    stats: ChartStats
    trend_line: list[TrendPoint] | None = None


class AnalyticsTimeframe(BaseModel):
    days: int
    start_date: date
    end_date: date


class ProgressAnalytics(BaseModel):
    total_entries: int
    total_xp_earned: int
    average_progress: float
    peak_progress: float
    progress_trend: Literal["increasing", "decreasing", "stable"]
    active_day_streak: int
    consistency_score: int


class AnalyticsGamification(BaseModel):
    total_xp: int
    level: int
    level_title: str
    current_streak: int
    longest_streak: int
    streak_active: bool


class AnalyticsInsights(BaseModel):
    daily_average: float
    xp_per_entry: int
    streak_health: Literal["excellent", "good", "fair", "needs_attention"]
    consistency_grade: Literal["A", "B", "C", "D", "F"]


class ProgressAnalyticsResponse(BaseModel):
    user_id: int
    timeframe: AnalyticsTimeframe
    analytics: ProgressAnalytics
    gamification: AnalyticsGamification
    insights: AnalyticsInsights
    recent_progress: list[ProgressResponse]
