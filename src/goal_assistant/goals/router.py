"""Goal API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.dependencies import get_current_user
from goal_assistant.database import get_session
from goal_assistant.db.models import Goal, User
from goal_assistant.gamification.engine import ActionResult
from goal_assistant.goals.schemas import (
    BulkGoalError,
    GoalBulkRequest,
    GoalBulkResponse,
    GoalCreateRequest,
    GoalListResponse,
    GoalMutationResponse,
    GoalResponse,
    GoalStatus,
    GoalUpdateRequest,
)
from goal_assistant.goals.service import (
    GoalHasSubGoalsError,
    GoalNotFoundError,
    GoalsNotFoundError,
    bulk_update_goals,
    create_goal,
    delete_goal,
    get_goal,
    list_goals,
    progress_percent,
    update_goal,
)
from goal_assistant.modules.dependencies import get_module_registry
from goal_assistant.modules.registry import ModuleRegistry

router = APIRouter(prefix="/api/v1/goals", tags=["Goals"])


def goal_response(goal: Goal) -> GoalResponse:
    response = GoalResponse.model_validate(goal)
    response.progress_percent = progress_percent(goal)
    return response


def _mutation(goal: Goal, result: ActionResult | None) -> GoalMutationResponse:
    return GoalMutationResponse(
        goal=goal_response(goal),
        xp_awarded=result.xp_awarded if result else 0,
        achievements_unlocked=[a.slug for a in result.achievements] if result else [],
    )


@router.get("", response_model=GoalListResponse)
async def list_my_goals(
    module_id: str | None = Query(None),
    status: GoalStatus | None = Query(None),
    parent_id: int | None = Query(None),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GoalListResponse:
    goals, total = await list_goals(
        db,
        user.id,
        module_id=module_id,
        status=status,
        parent_id=parent_id,
        search=search,
        page=page,
        per_page=per_page,
    )
    return GoalListResponse(
        goals=[goal_response(g) for g in goals],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=GoalMutationResponse, status_code=201)
async def create_my_goal(
    body: GoalCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> GoalMutationResponse:
    try:
        goal, result = await create_goal(db, registry, user, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _mutation(goal, result)


@router.post("/bulk", response_model=GoalBulkResponse)
async def bulk_goals(
    body: GoalBulkRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> GoalBulkResponse:
    """Complete, archive, re-status or delete several goals at once.

    200 when every goal succeeded, 207 on partial success, 400 when all failed.
    """
    try:
        outcome = await bulk_update_goals(db, registry, user, body)
    except GoalsNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    processed = len(outcome.succeeded) + len(outcome.errors)
    if not outcome.succeeded:
        response.status_code = 400
    elif outcome.errors:
        response.status_code = 207
    return GoalBulkResponse(
        success=not outcome.errors,
        action=body.action,
        processed=processed,
        successful=len(outcome.succeeded),
        failed=len(outcome.errors),
        succeeded_ids=outcome.succeeded,
        errors=[BulkGoalError(goal_id=goal_id, error=error) for goal_id, error in outcome.errors],
        xp_awarded=outcome.xp_awarded,
        achievements_unlocked=outcome.achievements,
    )


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_my_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GoalResponse:
    try:
        goal = await get_goal(db, user.id, goal_id)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail="Goal not found") from e
    return goal_response(goal)


@router.patch("/{goal_id}", response_model=GoalMutationResponse)
async def update_my_goal(
    goal_id: int,
    body: GoalUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> GoalMutationResponse:
    try:
        goal, result = await update_goal(db, registry, user, goal_id, body)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail="Goal not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _mutation(goal, result)


@router.delete("/{goal_id}", status_code=204)
async def delete_my_goal(
    goal_id: int,
    cascade: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_goal(db, user.id, goal_id, cascade=cascade)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail="Goal not found") from e
    except GoalHasSubGoalsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return Response(status_code=204)
