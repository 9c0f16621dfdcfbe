"""User profile router: /api/v1/users/profile."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.dependencies import get_current_user
from goal_assistant.auth.schemas import UserResponse
from goal_assistant.database import get_session
from goal_assistant.db.models import User
from goal_assistant.users.schemas import ProfileResponse, ProfileUpdateRequest
from goal_assistant.users.service import profile_stats, update_profile

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


async def _profile_response(db: AsyncSession, user: User) -> ProfileResponse:
    stats = await profile_stats(db, user)
    return ProfileResponse(
        user=UserResponse.model_validate(user),
        preferences=user.preferences or {},
        created_at=user.created_at,
        **stats,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Own profile with goal and activity statistics."""
    return await _profile_response(db, user)


@router.patch("/profile", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update name and preferences."""
    try:
        user = await update_profile(db, user, name=body.name, preferences=body.preferences)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    await db.refresh(user)
    logger.info("profile_updated", user_id=user.id)
    return await _profile_response(db, user)
