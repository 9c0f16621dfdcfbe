"""Progress recording. Entries are append-only; there is no update or delete."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Achievement, Goal, Progress, User
from goal_assistant.gamification.engine import GamificationEngine
from goal_assistant.gamification.xp_service import GLOBAL_ACTIONS
from goal_assistant.goals.service import complete_goal, enabled_module, get_goal
from goal_assistant.modules.base import LifeAreaModule
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.progress.schemas import ProgressCreateRequest
from goal_assistant.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "update_progress"


class ProgressNotFoundError(LookupError):
    pass


@dataclass
class ProgressOutcome:
    progress: Progress
    duplicate: bool = False
    xp_awarded: int = 0
    goal_completed: bool = False
    leveled_up: bool = False
    achievements: list[Achievement] = field(default_factory=list)


def resolve_action(module: LifeAreaModule, action: str | None) -> str:
    """Progress may use the generic update action or any action the module declares."""
    name = action or DEFAULT_ACTION
    if name == DEFAULT_ACTION:
        return name
    if name in module.points.actions:
        return name
    if name in GLOBAL_ACTIONS:
        msg = f"Action '{name}' cannot be recorded as progress"
        raise ValueError(msg)
    msg = f"Unknown action '{name}' for module '{module.id}'"
    raise ValueError(msg)


def reaches_target(goal: Goal, value: float, max_value: float | None) -> bool:
    if max_value is not None and value / max_value >= 1.0:
        return True
    return bool(goal.target_value) and goal.current_value >= goal.target_value


async def get_progress(db: AsyncSession, user_id: int, progress_id: int) -> Progress:
    result = await db.execute(
        select(Progress).where(Progress.id == progress_id, Progress.user_id == user_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        msg = f"Progress entry {progress_id} not found"
        raise ProgressNotFoundError(msg)
    return entry


async def find_by_key(db: AsyncSession, user_id: int, idempotency_key: str) -> Progress | None:
    result = await db.execute(
        select(Progress).where(
            Progress.user_id == user_id, Progress.idempotency_key == idempotency_key
        )
    )
    return result.scalar_one_or_none()


async def list_progress(
    db: AsyncSession,
    user_id: int,
    *,
    goal_id: int | None = None,
    module_id: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Progress], int]:
    conditions: list[Any] = [Progress.user_id == user_id]
    if goal_id is not None:
        conditions.append(Progress.goal_id == goal_id)
    if module_id:
        conditions.append(Progress.module_id == module_id)

    total = (await db.execute(select(func.count(Progress.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Progress)
        .where(*conditions)
        .order_by(Progress.recorded_at.desc(), Progress.id.desc())
        .limit(per_page)
        .offset((page - 1) * per_page)
    )
    return list(result.scalars().all()), total


async def record_progress(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    data: ProgressCreateRequest,
) -> ProgressOutcome:
    """
    Append a progress entry, award XP and complete the goal when its target is reached.

    A repeated ``idempotency_key`` returns the stored entry without side effects.

    Raises:
        GoalNotFoundError: Goal missing or owned by someone else.
        ValueError: Archived goal, disabled module or unknown action.
    """
    if data.idempotency_key:
        existing = await find_by_key(db, user.id, data.idempotency_key)
        if existing is not None:
            return ProgressOutcome(progress=existing, duplicate=True)

    goal = await get_goal(db, user.id, data.goal_id)
    if goal.status == "archived":
        msg = "Cannot record progress on an archived goal"
        raise ValueError(msg)
    module = enabled_module(registry, goal.module_id)
    action = resolve_action(module, data.action)

    entry = Progress(
        user_id=user.id,
        goal_id=goal.id,
        module_id=goal.module_id,
        action=action,
        value=data.value,
        max_value=data.max_value,
        note=data.note,
        entry_data=data.entry_data,
        idempotency_key=data.idempotency_key,
        recorded_at=ensure_utc(data.recorded_at) if data.recorded_at else utcnow(),
    )
    try:
        async with db.begin_nested():
            db.add(entry)
    except IntegrityError:
        # Concurrent request with the same key won the insert.
        existing = await find_by_key(db, user.id, data.idempotency_key or "")
        if existing is None:
            raise
        return ProgressOutcome(progress=existing, duplicate=True)

    goal.current_value = (goal.current_value or 0) + data.value

    engine = GamificationEngine(db, registry)
    result = await engine.process_action(
        user,
        action,
        idempotency_key=f"progress:{entry.id}",
        module_id=goal.module_id,
        difficulty=goal.difficulty,
        source_id=str(goal.id),
        description=f'Progress on "{goal.title}"',
    )
    entry.xp_awarded = result.xp_awarded
    outcome = ProgressOutcome(
        progress=entry,
        xp_awarded=result.xp_awarded,
        leveled_up=result.leveled_up,
        achievements=list(result.achievements),
    )

    if goal.status != "completed" and reaches_target(goal, data.value, data.max_value):
        completion = await complete_goal(db, registry, user, goal)
        outcome.goal_completed = True
        outcome.xp_awarded += completion.xp_awarded
        outcome.leveled_up = outcome.leveled_up or completion.leveled_up
        outcome.achievements.extend(completion.achievements)

    await db.commit()
    await db.refresh(entry)
    logger.info(
        "User %s recorded %s on goal %s (+%s XP)", user.id, action, goal.id, outcome.xp_awarded
    )
    return outcome
