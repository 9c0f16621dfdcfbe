"""Achievement unlocking with duplicate prevention."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Achievement, Goal, Progress, User, UserAchievement
from goal_assistant.gamification.criteria import (
    UserStats,
    evaluate_criteria,
    metric_key,
    required_metrics,
)
from goal_assistant.gamification.xp_service import grant_xp
from goal_assistant.timeutils import utcnow

logger = logging.getLogger(__name__)

# Unlocking grants XP, which can satisfy xp/level criteria in turn.
MAX_UNLOCK_PASSES = 5


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def collect_stats(
    db: AsyncSession,
    user: User,
    module_id: str | None = None,
    metrics: set[tuple[str, int | None]] | None = None,
) -> UserStats:
    """Build a UserStats snapshot, scoped to ``module_id`` when given."""
    goal_filter = [Goal.user_id == user.id]
    progress_filter = [Progress.user_id == user.id]
    if module_id is not None:
        goal_filter.append(Goal.module_id == module_id)
        progress_filter.append(Progress.module_id == module_id)

    goals_created = (await db.execute(select(func.count(Goal.id)).where(*goal_filter))).scalar_one()
    goals_completed = (
        await db.execute(select(func.count(Goal.id)).where(*goal_filter, Goal.status == "completed"))
    ).scalar_one()
    progress_entries = (
        await db.execute(select(func.count(Progress.id)).where(*progress_filter))
    ).scalar_one()

    stats = UserStats(
        total_xp=user.total_xp,
        level=user.current_level,
        streak=user.streak_count,
        longest_streak=user.longest_streak,
        goals_created=goals_created,
        goals_completed=goals_completed,
        progress_entries=progress_entries,
    )

    for name, window_days in metrics or set():
        stats.metrics[metric_key(name, window_days)] = await _metric_value(
            db, name, window_days, goal_filter, progress_filter
        )
    return stats


async def _metric_value(
    db: AsyncSession,
    name: str,
    window_days: int | None,
    goal_filter: list[Any],
    progress_filter: list[Any],
) -> float:
    since = utcnow() - timedelta(days=window_days) if window_days else None

    if name.startswith(("action:", "value:")):
        kind, action = name.split(":", 1)
        column = func.count(Progress.id) if kind == "action" else func.coalesce(func.sum(Progress.value), 0)
        conditions = [*progress_filter, Progress.action == action]
        if since is not None:
            conditions.append(Progress.recorded_at >= since)
        return float((await db.execute(select(column).where(*conditions))).scalar_one())

    if name.startswith("distinct:"):
        field_name = name.split(":", 1)[1]
        rows = (await db.execute(select(Goal.module_data).where(*goal_filter))).scalars().all()
        values = {
            str(data[field_name]).strip().lower()
            for data in rows
            if data and data.get(field_name) not in (None, "")
        }
        return float(len(values))

    if name in ("goals_created", "goals_completed", "progress_entries"):
        if name == "progress_entries":
            conditions = list(progress_filter)
            if since is not None:
                conditions.append(Progress.recorded_at >= since)
            stmt = select(func.count(Progress.id)).where(*conditions)
        else:
            conditions = list(goal_filter)
            if name == "goals_completed":
                conditions.append(Goal.status == "completed")
                if since is not None:
                    conditions.append(Goal.completed_at >= since)
            elif since is not None:
                conditions.append(Goal.created_at >= since)
            stmt = select(func.count(Goal.id)).where(*conditions)
        return float((await db.execute(stmt)).scalar_one())

    logger.warning("Unknown achievement metric: %s", name)
    return 0.0


# ---------------------------------------------------------------------------
# Unlocking
# ---------------------------------------------------------------------------


async def unlocked_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars().all())


async def unlock_achievement(
    db: AsyncSession,
    user_id: int,
    achievement: Achievement,
    metadata: dict | None = None,
) -> bool:
    """Record an unlock and grant its XP.

    Returns True if unlocked now, False if the user already had it.
    """
    try:
        async with db.begin_nested():
            db.add(UserAchievement(
                user_id=user_id,
                achievement_id=achievement.id,
                unlocked_at=utcnow(),
                unlock_metadata=metadata or {},
            ))
    except IntegrityError:
        return False  # Already unlocked

    await grant_xp(
        db=db,
        user_id=user_id,
        amount=achievement.xp_reward,
        source="achievement",
        source_id=achievement.slug,
        description=f'Unlocked achievement: "{achievement.name}"',
        idempotency_key=f"achievement:{achievement.slug}:{user_id}",
        module_id=achievement.module_id,
    )
    logger.info("User %s unlocked achievement %s", user_id, achievement.slug)
    return True


async def _candidate_achievements(db: AsyncSession, module_id: str | None) -> list[Achievement]:
    scope = Achievement.module_id.is_(None)
    if module_id is not None:
        scope = or_(scope, Achievement.module_id == module_id)
    result = await db.execute(
        select(Achievement)
        .where(Achievement.is_active.is_(True), scope)
        .order_by(Achievement.sort_order, Achievement.id)
    )
    return list(result.scalars().all())


async def check_achievements(
    db: AsyncSession,
    user: User,
    module_id: str | None = None,
    context: dict | None = None,
) -> list[Achievement]:
    """Unlock every global (and ``module_id``) achievement the user now satisfies.

    Safe to call repeatedly: already-unlocked achievements are skipped and the
    unique constraint on user_achievements prevents double unlocks.
    """
    candidates = await _candidate_achievements(db, module_id)
    have = await unlocked_ids(db, user.id)
    newly: list[Achievement] = []

    for _ in range(MAX_UNLOCK_PASSES):
        pending = [a for a in candidates if a.id not in have]
        if not pending:
            break

        stats_by_scope: dict[str | None, UserStats] = {}
        for scope in {a.module_id for a in pending}:
            criteria = [a.criteria for a in pending if a.module_id == scope]
            stats_by_scope[scope] = await collect_stats(db, user, scope, required_metrics(criteria))

        unlocked_this_pass = False
        for achievement in pending:
            met, _progress = evaluate_criteria(achievement.criteria, stats_by_scope[achievement.module_id])
            if not met:
                continue
            if await unlock_achievement(db, user.id, achievement, context):
                newly.append(achievement)
                unlocked_this_pass = True
            have.add(achievement.id)

        if not unlocked_this_pass:
            break

    return newly


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def achievement_progress(
    db: AsyncSession,
    user: User,
    module_id: str | None = None,
) -> list[dict]:
    """Catalog entries with the user's unlock status and progress.

    With ``module_id`` only that module's achievements are listed.
    """
    stmt = select(Achievement).where(Achievement.is_active.is_(True))
    if module_id is not None:
        stmt = stmt.where(Achievement.module_id == module_id)
    achievements = (await db.execute(stmt.order_by(Achievement.sort_order, Achievement.id))).scalars().all()

    unlocks = {
        ua.achievement_id: ua
        for ua in (
            await db.execute(select(UserAchievement).where(UserAchievement.user_id == user.id))
        ).scalars().all()
    }

    stats_by_scope: dict[str | None, UserStats] = {}
    for scope in {a.module_id for a in achievements}:
        criteria = [a.criteria for a in achievements if a.module_id == scope]
        stats_by_scope[scope] = await collect_stats(db, user, scope, required_metrics(criteria))

    out = []
    for achievement in achievements:
        unlock = unlocks.get(achievement.id)
        _met, progress = evaluate_criteria(achievement.criteria, stats_by_scope[achievement.module_id])
        out.append({
            "achievement": achievement,
            "unlocked": unlock is not None,
            "unlocked_at": unlock.unlocked_at if unlock else None,
            "progress": 1.0 if unlock else progress,
        })
    return out


async def get_user_achievements(db: AsyncSession, user_id: int) -> list[UserAchievement]:
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.unlocked_at.desc())
    )
    return list(result.scalars().unique().all())
