"""Gamification API endpoints: achievements, XP, levels, leaderboard."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.dependencies import get_current_admin, get_current_user
from goal_assistant.config import get_settings
from goal_assistant.database import get_session
from goal_assistant.db.models import Achievement, User, XPLedger
from goal_assistant.gamification.achievement_service import (
    achievement_progress,
    get_user_achievements,
)
from goal_assistant.gamification.leaderboard_service import get_leaderboard
from goal_assistant.gamification.level_thresholds import LEVEL_THRESHOLDS, compute_level
from goal_assistant.gamification.schemas import (
    AchievementListResponse,
    AchievementResponse,
    AllLevelsResponse,
    GamificationSummaryResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LeaderboardType,
    LevelEntry,
    StreakResponse,
    UnlockedAchievementResponse,
    UserAchievementsResponse,
    XPCorrectionRequest,
    XPCorrectionResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPResponse,
)
from goal_assistant.gamification.streak_service import streak_is_active
from goal_assistant.gamification.xp_service import correct_xp, get_xp_history

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _xp_response(user: User) -> XPResponse:
    level_info = compute_level(user.total_xp)
    return XPResponse(
        total_xp=user.total_xp,
        level=level_info["level"],
        level_title=level_info["title"],
        xp_into_level=level_info["xp_into_level"],
        xp_for_level=level_info["xp_for_level"],
        progress=level_info["progress"],
        next_level=level_info["next_level"],
        next_title=level_info["next_title"],
    )


async def _active_achievement_count(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count()).select_from(Achievement).where(Achievement.is_active.is_(True))
    )
    return result.scalar_one()


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(levels=[LevelEntry(**t) for t in LEVEL_THRESHOLDS])


# ── Authenticated endpoints ──


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    module_id: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Achievement catalog with the caller's unlock status and progress."""
    rows = await achievement_progress(db, user, module_id)
    items = [
        AchievementResponse(
            slug=row["achievement"].slug,
            module_id=row["achievement"].module_id,
            name=row["achievement"].name,
            description=row["achievement"].description,
            icon=row["achievement"].icon,
            category=row["achievement"].category,
            xp_reward=row["achievement"].xp_reward,
            criteria=row["achievement"].criteria or {},
            unlocked=row["unlocked"],
            unlocked_at=row["unlocked_at"],
            progress=round(row["progress"], 4),
        )
        for row in rows
    ]
    return AchievementListResponse(
        achievements=items,
        total=len(items),
        unlocked=sum(1 for item in items if item.unlocked),
    )


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get current user's unlocked achievements."""
    unlocked = await get_user_achievements(db, user.id)
    return UserAchievementsResponse(
        unlocked=[
            UnlockedAchievementResponse(
                slug=ua.achievement.slug,
                name=ua.achievement.name,
                module_id=ua.achievement.module_id,
                xp_reward=ua.achievement.xp_reward,
                unlocked_at=ua.unlocked_at,
                metadata=ua.unlock_metadata or {},
            )
            for ua in unlocked
        ],
        total_available=await _active_achievement_count(db),
        total_unlocked=len(unlocked),
    )


@router.get("/users/me/xp", response_model=XPResponse)
async def get_my_xp(user: User = Depends(get_current_user)):
    """Get current user's XP and level."""
    return _xp_response(user)


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def get_my_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get XP ledger history (paginated)."""
    total_result = await db.execute(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user.id)
    )
    entries = await get_xp_history(db, user.id, limit=per_page, offset=(page - 1) * per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                module_id=e.module_id,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total_result.scalar_one(),
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/gamification", response_model=GamificationSummaryResponse)
async def get_gamification_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """XP, streak and achievement counts in one call."""
    unlocked = await get_user_achievements(db, user.id)
    active = streak_is_active(user)
    return GamificationSummaryResponse(
        xp=_xp_response(user),
        streak=StreakResponse(
            current_streak=user.streak_count if active else 0,
            longest_streak=user.longest_streak,
            last_activity_date=user.last_activity_date,
            is_active=active,
        ),
        achievements={
            "unlocked": len(unlocked),
            "total": await _active_achievement_count(db),
        },
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    type: LeaderboardType = Query("xp"),  # noqa: A002
    limit: int = Query(10, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Top users by XP, level or unlocked achievements."""
    limit = min(limit, get_settings().leaderboard_max_entries)
    entries = await get_leaderboard(db, type, limit, current_user_id=user.id)
    return LeaderboardResponse(type=type, entries=[LeaderboardEntry(**e) for e in entries])


# ── Admin ──


@router.post("/admin/users/{user_id}/xp-correction", response_model=XPCorrectionResponse)
async def xp_correction(
    user_id: int,
    body: XPCorrectionRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
):
    """Adjust a user's XP. The ledger records the admin and the reason."""
    try:
        target = await correct_xp(db, user_id, body.delta, body.reason, admin.id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail="User not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    logger.info("xp_corrected", admin_id=admin.id, user_id=user_id, delta=body.delta)
    return XPCorrectionResponse(user_id=target.id, total_xp=target.total_xp, level=target.current_level)
