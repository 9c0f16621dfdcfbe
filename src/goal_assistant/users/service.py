"""User profile business logic."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Goal, Progress, User, UserAchievement
from goal_assistant.gamification.streak_service import streak_is_active
from goal_assistant.timeutils import ensure_utc, utcnow


async def update_profile(
    db: AsyncSession,
    user: User,
    name: str | None = None,
    preferences: dict[str, Any] | None = None,
) -> User:
    """
    Update the user's name and merge preference keys. A ``None`` preference
    value removes that key.

    Raises:
        ValueError: If the name is blank.
    """
    if name is not None:
        if not name.strip():
            msg = "Name cannot be blank"
            raise ValueError(msg)
        user.name = name.strip()

    if preferences is not None:
        merged = dict(user.preferences or {})
        for key, value in preferences.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        user.preferences = merged

    await db.flush()
    return user


async def profile_stats(db: AsyncSession, user: User) -> dict[str, Any]:
    """Goal, activity and per-module counters shown on the profile page."""
    total = (await db.execute(select(func.count(Goal.id)).where(Goal.user_id == user.id))).scalar_one()
    completed = (
        await db.execute(
            select(func.count(Goal.id)).where(Goal.user_id == user.id, Goal.status == "completed")
        )
    ).scalar_one()
    active = (
        await db.execute(
            select(func.count(Goal.id)).where(Goal.user_id == user.id, Goal.status == "active")
        )
    ).scalar_one()
    entries = (
        await db.execute(select(func.count(Progress.id)).where(Progress.user_id == user.id))
    ).scalar_one()
    unlocked = (
        await db.execute(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user.id)
        )
    ).scalar_one()
    usage = (
        await db.execute(
            select(Goal.module_id, func.count(Goal.id))
            .where(Goal.user_id == user.id)
            .group_by(Goal.module_id)
            .order_by(Goal.module_id)
        )
    ).all()

    created_at = ensure_utc(user.created_at)
    days_since_joined = (utcnow() - created_at).days if created_at else 0

    return {
        "goals": {
            "total": total,
            "completed": completed,
            "active": active,
            "completion_rate": round(completed / total * 100, 2) if total else 0.0,
        },
        "activity": {
            "progress_entries": entries,
            "achievements_unlocked": unlocked,
            "current_streak": user.streak_count if streak_is_active(user) else 0,
            "longest_streak": user.longest_streak,
            "last_activity_date": user.last_activity_date.isoformat() if user.last_activity_date else None,
            "days_since_joined": max(days_since_joined, 0),
        },
        "modules": [{"module_id": module_id, "goal_count": count} for module_id, count in usage],
    }
