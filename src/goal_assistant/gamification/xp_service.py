"""XP computation and grants with idempotency and level-up detection."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import User, XPLedger
from goal_assistant.gamification.level_thresholds import compute_level
from goal_assistant.modules.base import DIFFICULTY_MULTIPLIERS, LifeAreaModule, PointsAction
from goal_assistant.timeutils import utcnow

logger = logging.getLogger(__name__)

GLOBAL_ACTIONS: dict[str, PointsAction] = {
    "create_goal": PointsAction(5, "Create a goal", difficulty_multiplier=False, streak_bonus=False),
    "complete_goal": PointsAction(10, "Complete a goal"),
    "update_progress": PointsAction(2, "Record progress toward a goal"),
    "daily_login": PointsAction(1, "First activity of the day", difficulty_multiplier=False),
}


def streak_multiplier(streak: int, percentage: float, cap_days: int = 30) -> float:
    """1 + percentage/100 per streak day, counting at most ``cap_days`` days."""
    return 1 + (percentage / 100) * min(max(streak, 0), cap_days)


def compute_action_xp(
    action: str,
    *,
    difficulty: str = "medium",
    streak: int = 0,
    module: LifeAreaModule | None = None,
    streak_bonus_percentage: float = 10.0,
    streak_cap_days: int = 30,
) -> int:
    """XP for one action: round(base x difficulty multiplier x streak multiplier).

    Module actions use the module's multipliers and streak percentage; other
    actions fall back to the global table. Raises ValueError for an action
    neither knows, or an unknown difficulty.
    """
    if module is not None and action in module.points.actions:
        points_action = module.points.actions[action]
        multipliers = module.points.difficulty_multipliers
        percentage = module.points.streak_bonus_percentage
    elif action in GLOBAL_ACTIONS:
        points_action = GLOBAL_ACTIONS[action]
        multipliers = DIFFICULTY_MULTIPLIERS
        percentage = streak_bonus_percentage
    else:
        msg = f"Unknown action: {action}"
        raise ValueError(msg)

    if difficulty not in multipliers:
        msg = f"Unknown difficulty: {difficulty}"
        raise ValueError(msg)

    xp = float(points_action.base_points)
    if points_action.difficulty_multiplier:
        xp *= multipliers[difficulty]
    if points_action.streak_bonus:
        xp *= streak_multiplier(streak, percentage, streak_cap_days)
    return round(xp)


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        msg = f"User {user_id} not found"
        raise LookupError(msg)
    return user


async def grant_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str,
    module_id: str | None = None,
) -> bool:
    """Grant XP to a user. Returns True if granted, False if duplicate.

    After granting:
    1. Insert into xp_ledger
    2. Update users.total_xp
    3. Recompute users.current_level from total_xp
    """
    if amount < 0:
        msg = "XP grants must be non-negative; use correct_xp for deductions"
        raise ValueError(msg)

    # Check idempotency
    existing = await db.execute(
        select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
    )
    if existing.scalar_one_or_none() is not None:
        return False

    now = utcnow()
    try:
        async with db.begin_nested():
            db.add(XPLedger(
                user_id=user_id,
                amount=amount,
                source=source,
                module_id=module_id,
                source_id=source_id,
                description=description,
                idempotency_key=idempotency_key,
                created_at=now,
            ))
    except IntegrityError:
        # Concurrent grant with the same key won the race
        return False

    user = await get_user(db, user_id)
    old_level = user.current_level
    user.total_xp += amount
    _apply_level(user)
    await db.flush()

    if user.current_level > old_level:
        logger.info("User %s levelled up: %s -> %s", user_id, old_level, user.current_level)
    return True


async def correct_xp(
    db: AsyncSession,
    user_id: int,
    delta: int,
    reason: str,
    admin_id: int,
) -> User:
    """Admin correction. The only path that may lower total XP (never below zero)."""
    if delta == 0:
        msg = "Correction delta must be non-zero"
        raise ValueError(msg)

    user = await get_user(db, user_id)
    applied = max(delta, -user.total_xp)
    db.add(XPLedger(
        user_id=user_id,
        amount=applied,
        source="admin_correction",
        source_id=str(admin_id),
        description=reason[:256],
        idempotency_key=f"correction:{uuid.uuid4()}",
        created_at=utcnow(),
    ))
    user.total_xp += applied
    _apply_level(user)
    await db.flush()
    logger.warning("Admin %s corrected XP of user %s by %s: %s", admin_id, user_id, applied, reason)
    return user


def _apply_level(user: User) -> None:
    user.current_level = compute_level(user.total_xp)["level"]


async def get_xp_history(
    db: AsyncSession,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[XPLedger]:
    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
