"""Progress API endpoints. Entries can be created and read, never edited."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.dependencies import get_current_user
from goal_assistant.database import get_session
from goal_assistant.db.models import User
from goal_assistant.goals.service import GoalNotFoundError, get_goal
from goal_assistant.modules.dependencies import get_module_registry
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.progress.analytics import Aggregation, goal_chart, user_analytics
from goal_assistant.progress.schemas import (
    ProgressAnalyticsResponse,
    ProgressChartResponse,
    ProgressCreateRequest,
    ProgressCreateResponse,
    ProgressListResponse,
    ProgressResponse,
)
from goal_assistant.progress.service import (
    ProgressNotFoundError,
    get_progress,
    list_progress,
    record_progress,
)

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.post("", response_model=ProgressCreateResponse, status_code=201)
async def create_progress(
    body: ProgressCreateRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> ProgressCreateResponse:
    try:
        outcome = await record_progress(db, registry, user, body)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail="Goal not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if outcome.duplicate:
        response.status_code = 200
    return ProgressCreateResponse(
        progress=ProgressResponse.model_validate(outcome.progress),
        duplicate=outcome.duplicate,
        xp_awarded=outcome.xp_awarded,
        goal_completed=outcome.goal_completed,
        leveled_up=outcome.leveled_up,
        level=user.current_level,
        streak=user.streak_count,
        achievements_unlocked=[a.slug for a in outcome.achievements],
    )


@router.get("", response_model=ProgressListResponse)
async def list_my_progress(
    goal_id: int | None = Query(None),
    module_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressListResponse:
    entries, total = await list_progress(
        db, user.id, goal_id=goal_id, module_id=module_id, page=page, per_page=per_page
    )
    return ProgressListResponse(
        entries=[ProgressResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/chart/{goal_id}", response_model=ProgressChartResponse)
async def progress_chart(
    goal_id: int,
    days: int = Query(30, ge=1),
    aggregation: Aggregation = Query("daily"),
    include_xp: bool = Query(False),
    include_trend: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressChartResponse:
    """Progress over time for one goal. ``days`` is capped at 365."""
    try:
        goal = await get_goal(db, user.id, goal_id)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail="Goal not found") from e
    chart = await goal_chart(
        db, goal, days=days, aggregation=aggregation, include_xp=include_xp, include_trend=include_trend
    )
    return ProgressChartResponse.model_validate(chart)


async def _analytics_response(db: AsyncSession, user: User, days: int) -> ProgressAnalyticsResponse:
    data = await user_analytics(db, user, days)
    data["recent_progress"] = [ProgressResponse.model_validate(e) for e in data["recent_progress"]]
    return ProgressAnalyticsResponse.model_validate(data)


@router.get("/analytics", response_model=ProgressAnalyticsResponse)
async def my_progress_analytics(
    days: int = Query(30, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressAnalyticsResponse:
    """Entry, XP, consistency and streak summary for the current user. ``days`` is capped at 365."""
    return await _analytics_response(db, user, days)


@router.get("/analytics/{user_id}", response_model=ProgressAnalyticsResponse)
async def user_progress_analytics(
    user_id: int,
    days: int = Query(30, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressAnalyticsResponse:
    """Same as ``/analytics``; users may only read their own."""
    if user_id != user.id:
        raise HTTPException(status_code=403, detail="You can only view your own analytics")
    return await _analytics_response(db, user, days)


@router.get("/{progress_id}", response_model=ProgressResponse)
async def get_my_progress(
    progress_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressResponse:
    try:
        entry = await get_progress(db, user.id, progress_id)
    except ProgressNotFoundError as e:
        raise HTTPException(status_code=404, detail="Progress entry not found") from e
    return ProgressResponse.model_validate(entry)
