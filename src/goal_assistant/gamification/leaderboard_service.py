"""Leaderboard ranking straight from the users table."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import User, UserAchievement

LEADERBOARD_TYPES = ("xp", "level", "achievements")


async def get_leaderboard(
    db: AsyncSession,
    board: str,
    limit: int,
    current_user_id: int | None = None,
) -> list[dict]:
    """Top ``limit`` users for ``board``; ties fall back to total XP, then user id."""
    if board not in LEADERBOARD_TYPES:
        msg = f"Unknown leaderboard type: {board}"
        raise ValueError(msg)

    achievement_count = (
        select(UserAchievement.user_id, func.count(UserAchievement.id).label("unlocked"))
        .group_by(UserAchievement.user_id)
        .subquery()
    )
    unlocked = func.coalesce(achievement_count.c.unlocked, 0)

    order_by = {
        "xp": (User.total_xp.desc(), User.id),
        "level": (User.current_level.desc(), User.total_xp.desc(), User.id),
        "achievements": (unlocked.desc(), User.total_xp.desc(), User.id),
    }[board]

    rows = (
        await db.execute(
            select(User.id, User.name, User.total_xp, User.current_level, unlocked.label("unlocked"))
            .outerjoin(achievement_count, achievement_count.c.user_id == User.id)
            .order_by(*order_by)
            .limit(limit)
        )
    ).all()

    return [
        {
            "rank": rank,
            "user_id": row.id,
            "name": row.name,
            "total_xp": row.total_xp,
            "level": row.current_level,
            "achievements": row.unlocked,
            "is_current_user": row.id == current_user_id,
        }
        for rank, row in enumerate(rows, start=1)
    ]
