"""Request/response schemas for goal endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

GoalStatus = Literal["active", "completed", "archived"]
Difficulty = Literal["easy", "medium", "hard", "expert"]
Priority = Literal["low", "medium", "high", "urgent"]


class GoalCreateRequest(BaseModel):
    module_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    parent_id: int | None = None
    difficulty: Difficulty = "medium"
    priority: Priority = "medium"
    target_value: float = Field(100, gt=0)
    unit: str | None = Field(None, max_length=32)
    target_date: date | None = None
    module_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Title cannot be blank"
            raise ValueError(msg)
        return v


class GoalUpdateRequest(BaseModel):
    """Partial update. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    parent_id: int | None = None
    status: GoalStatus | None = None
    difficulty: Difficulty | None = None
    priority: Priority | None = None
    target_value: float | None = Field(None, gt=0)
    unit: str | None = Field(None, max_length=32)
    target_date: date | None = None
    module_data: dict[str, Any] | None = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    module_id: str
    parent_id: int | None = None
    title: str
    description: str | None = None
    status: str
    difficulty: str
    priority: str
    current_value: float
    target_value: float
    progress_percent: float = 0.0
    unit: str | None = None
    target_date: date | None = None
    module_data: dict[str, Any] = {}
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GoalListResponse(BaseModel):
    goals: list[GoalResponse]
    total: int
    page: int
    per_page: int


class GoalMutationResponse(BaseModel):
    goal: GoalResponse
    xp_awarded: int = 0
    achievements_unlocked: list[str] = []


BulkAction = Literal["bulk-complete", "bulk-update-status", "bulk-archive", "bulk-delete"]


class GoalBulkRequest(BaseModel):
    """One action applied to many goals.

    ``status`` is required for ``bulk-update-status``. ``complete_sub_goals``
    applies to completion, ``cascade`` to deletion.
    """

    action: BulkAction
    goal_ids: list[int] = Field(..., min_length=1, max_length=100)
    status: GoalStatus | None = None
    complete_sub_goals: bool = False
    cascade: bool = False


class BulkGoalError(BaseModel):
    goal_id: int
    error: str


class GoalBulkResponse(BaseModel):
    success: bool
    action: BulkAction
    processed: int
    successful: int
    failed: int
    succeeded_ids: list[int] = []
    errors: list[BulkGoalError] = []
    xp_awarded: int = 0
    achievements_unlocked: list[str] = []
