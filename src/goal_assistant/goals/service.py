"""Goal business logic: CRUD, hierarchy checks and gamification hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Goal, User
from goal_assistant.gamification.engine import ActionResult, GamificationEngine
from goal_assistant.goals.schemas import GoalBulkRequest, GoalCreateRequest, GoalUpdateRequest
from goal_assistant.modules.base import LifeAreaModule
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.modules.service import validate_module_data
from goal_assistant.timeutils import utcnow

logger = logging.getLogger(__name__)


class GoalNotFoundError(LookupError):
    pass


class GoalsNotFoundError(GoalNotFoundError):
    def __init__(self, missing_ids: list[int]) -> None:
        self.missing_ids = missing_ids
        super().__init__(f"Goals not found: {', '.join(str(i) for i in missing_ids)}")


class GoalHasSubGoalsError(ValueError):
    def __init__(self, goal_id: int, sub_goal_count: int) -> None:
        self.goal_id = goal_id
        self.sub_goal_count = sub_goal_count
        super().__init__(
            f"Goal has {sub_goal_count} sub-goal(s). Add ?cascade=true to delete them as well."
        )


def progress_percent(goal: Goal) -> float:
    if not goal.target_value:
        return 0.0
    return round(min(goal.current_value / goal.target_value * 100, 100.0), 2)


def enabled_module(registry: ModuleRegistry, module_id: str) -> LifeAreaModule:
    """Return the module, or raise ValueError unless it is registered and enabled."""
    module = registry.get(module_id)
    if module is None:
        msg = f"Unknown module: {module_id}"
        raise ValueError(msg)
    if not registry.is_enabled(module_id):
        msg = f"Module '{module_id}' is disabled"
        raise ValueError(msg)
    return module


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_goal(db: AsyncSession, user_id: int, goal_id: int) -> Goal:
    """Fetch one of the user's goals. Other users' goals are reported as missing."""
    result = await db.execute(select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id))
    goal = result.scalar_one_or_none()
    if goal is None:
        msg = f"Goal {goal_id} not found"
        raise GoalNotFoundError(msg)
    return goal


async def list_goals(
    db: AsyncSession,
    user_id: int,
    *,
    module_id: str | None = None,
    status: str | None = None,
    parent_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Goal], int]:
    conditions: list[Any] = [Goal.user_id == user_id]
    if module_id:
        conditions.append(Goal.module_id == module_id)
    if status:
        conditions.append(Goal.status == status)
    if parent_id is not None:
        conditions.append(Goal.parent_id == parent_id)
    if search:
        pattern = f"%{search.lower()}%"
        conditions.append(
            or_(func.lower(Goal.title).like(pattern), func.lower(Goal.description).like(pattern))
        )

    total = (await db.execute(select(func.count(Goal.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Goal)
        .where(*conditions)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .limit(per_page)
        .offset((page - 1) * per_page)
    )
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------


async def _check_parent(db: AsyncSession, user_id: int, parent_id: int, goal_id: int | None = None) -> None:
    """Parent must be the user's own goal and must not be ``goal_id`` or one of its descendants."""
    try:
        parent = await get_goal(db, user_id, parent_id)
    except GoalNotFoundError as e:
        msg = "Parent goal not found"
        raise ValueError(msg) from e

    seen: set[int] = set()
    node: Goal | None = parent
    while node is not None:
        if goal_id is not None and node.id == goal_id:
            msg = "A goal cannot be its own ancestor"
            raise ValueError(msg)
        if node.id in seen:
            break
        seen.add(node.id)
        node = await db.get(Goal, node.parent_id) if node.parent_id is not None else None


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_goal(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    data: GoalCreateRequest,
) -> tuple[Goal, ActionResult]:
    """
    Create a goal and award the module's goal-created XP.

    Raises:
        ValueError: Unknown/disabled module, invalid parent or module data.
    """
    module = enabled_module(registry, data.module_id)
    module_data = validate_module_data(module.goal_fields, data.module_data)
    if data.parent_id is not None:
        await _check_parent(db, user.id, data.parent_id)

    goal = Goal(
        user_id=user.id,
        module_id=module.id,
        parent_id=data.parent_id,
        title=data.title,
        description=data.description,
        difficulty=data.difficulty,
        priority=data.priority,
        target_value=data.target_value,
        unit=data.unit,
        target_date=data.target_date,
        module_data=module_data,
        status="active",
        current_value=0,
    )
    db.add(goal)
    await db.flush()

    engine = GamificationEngine(db, registry)
    result = await engine.process_action(
        user,
        module.goal_created_action,
        idempotency_key=f"goal:{goal.id}:create",
        module_id=module.id,
        difficulty=goal.difficulty,
        source_id=str(goal.id),
        description=f'Created goal "{goal.title}"',
    )
    await db.commit()
    await db.refresh(goal)
    logger.info("User %s created goal %s in %s", user.id, goal.id, module.id)
    return goal, result


async def complete_goal(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    goal: Goal,
) -> ActionResult:
    """Mark a goal completed and award completion XP once per goal. Does not commit."""
    goal.status = "completed"
    if goal.completed_at is None:
        goal.completed_at = utcnow()
    await db.flush()

    module = registry.get(goal.module_id)
    action = module.goal_completed_action if module is not None else "complete_goal"
    engine = GamificationEngine(db, registry)
    return await engine.process_action(
        user,
        action,
        idempotency_key=f"goal:{goal.id}:complete",
        module_id=goal.module_id,
        difficulty=goal.difficulty,
        source_id=str(goal.id),
        description=f'Completed goal "{goal.title}"',
    )


async def update_goal(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    goal_id: int,
    data: GoalUpdateRequest,
) -> tuple[Goal, ActionResult | None]:
    """
    Apply a partial update. Setting status to ``completed`` awards completion XP
    the first time only.

    Raises:
        GoalNotFoundError: Goal missing or owned by someone else.
        ValueError: Disabled module, invalid parent or module data.
    """
    goal = await get_goal(db, user.id, goal_id)
    module = enabled_module(registry, goal.module_id)
    changes = data.model_dump(exclude_unset=True)

    if "parent_id" in changes and changes["parent_id"] is not None:
        await _check_parent(db, user.id, changes["parent_id"], goal_id=goal.id)
    if changes.get("module_data") is not None:
        changes["module_data"] = validate_module_data(module.goal_fields, changes["module_data"])
    elif "module_data" in changes:
        changes["module_data"] = {}

    new_status = changes.pop("status", None)
    for key, value in changes.items():
        if key in ("title", "difficulty", "priority", "target_value") and value is None:
            continue
        setattr(goal, key, value)

    result: ActionResult | None = None
    if new_status == "completed" and goal.status != "completed":
        result = await complete_goal(db, registry, user, goal)
    elif new_status is not None and new_status != goal.status:
        goal.status = new_status
        if new_status == "active":
            goal.completed_at = None

    await db.commit()
    await db.refresh(goal)
    return goal, result


async def _child_ids(db: AsyncSession, user_id: int, parent_ids: list[int]) -> list[int]:
    result = await db.execute(
        select(Goal.id).where(Goal.user_id == user_id, Goal.parent_id.in_(parent_ids)).order_by(Goal.id)
    )
    return list(result.scalars().all())


async def descendant_ids(db: AsyncSession, user_id: int, goal_id: int) -> list[int]:
    """Ids of every goal below ``goal_id``, one level at a time, nearest first."""
    found: list[int] = []
    seen = {goal_id}
    frontier = [goal_id]
    while frontier:
        frontier = [i for i in await _child_ids(db, user_id, frontier) if i not in seen]
        seen.update(frontier)
        found.extend(frontier)
    return found


async def _remove_goal(db: AsyncSession, user_id: int, goal: Goal, *, cascade: bool) -> list[int]:
    """Delete ``goal`` (and its sub-goals when ``cascade``). Returns the deleted ids. Does not commit."""
    children = await _child_ids(db, user_id, [goal.id])
    if children and not cascade:
        raise GoalHasSubGoalsError(goal.id, len(children))

    doomed = await descendant_ids(db, user_id, goal.id) if children else []
    for sub_id in reversed(doomed):
        sub = await db.get(Goal, sub_id)
        if sub is not None:
            await db.delete(sub)
    await db.delete(goal)
    await db.flush()
    return [goal.id, *doomed]


async def delete_goal(db: AsyncSession, user_id: int, goal_id: int, *, cascade: bool = False) -> int:
    """
    Delete a goal with its progress entries. XP already earned is kept.

    A goal with sub-goals is only deleted together with them, when ``cascade``
    is set. Returns the number of goals deleted.

    Raises:
        GoalNotFoundError: Goal missing or owned by someone else.
        GoalHasSubGoalsError: Sub-goals exist and ``cascade`` is false.
    """
    goal = await get_goal(db, user_id, goal_id)
    removed = await _remove_goal(db, user_id, goal, cascade=cascade)
    await db.commit()
    logger.info("User %s deleted goal %s (%d goals removed)", user_id, goal_id, len(removed))
    return len(removed)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


@dataclass
class BulkOutcome:
    action: str
    succeeded: list[int] = field(default_factory=list)
    errors: list[tuple[int, str]] = field(default_factory=list)
    xp_awarded: int = 0
    achievements: list[str] = field(default_factory=list)

    def add(self, result: ActionResult | None) -> None:
        if result is None:
            return
        self.xp_awarded += result.xp_awarded
        self.achievements.extend(a.slug for a in result.achievements)


async def _complete_with_children(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    goal: Goal,
    outcome: BulkOutcome,
    *,
    include_sub_goals: bool,
) -> None:
    if goal.status == "archived":
        msg = "Cannot complete an archived goal"
        raise ValueError(msg)
    enabled_module(registry, goal.module_id)
    if goal.status != "completed":
        outcome.add(await complete_goal(db, registry, user, goal))
    if not include_sub_goals:
        return
    for sub_id in await descendant_ids(db, user.id, goal.id):
        sub = await db.get(Goal, sub_id)
        if sub is not None and sub.status == "active":
            outcome.add(await complete_goal(db, registry, user, sub))


async def bulk_update_goals(
    db: AsyncSession,
    registry: ModuleRegistry,
    user: User,
    data: GoalBulkRequest,
) -> BulkOutcome:
    """
    Apply one action to up to 100 goals. Each goal succeeds or fails on its
    own; checks run before any change so a failed goal is left untouched.

    Raises:
        GoalsNotFoundError: Some ids are missing or owned by someone else.
        ValueError: ``bulk-update-status`` without a status.
    """
    if data.action == "bulk-update-status" and data.status is None:
        msg = "status is required for bulk-update-status"
        raise ValueError(msg)

    ids = list(dict.fromkeys(data.goal_ids))
    result = await db.execute(select(Goal).where(Goal.user_id == user.id, Goal.id.in_(ids)))
    goals = {g.id: g for g in result.scalars().all()}
    missing = [i for i in ids if i not in goals]
    if missing:
        raise GoalsNotFoundError(missing)

    outcome = BulkOutcome(action=data.action)
    removed: set[int] = set()
    for goal_id in ids:
        goal = goals[goal_id]
        try:
            if data.action == "bulk-delete":
                if goal_id not in removed:
                    removed.update(await _remove_goal(db, user.id, goal, cascade=data.cascade))
            elif data.action == "bulk-complete" or data.status == "completed":
                await _complete_with_children(
                    db, registry, user, goal, outcome, include_sub_goals=data.complete_sub_goals
                )
            else:
                enabled_module(registry, goal.module_id)
                goal.status = "archived" if data.action == "bulk-archive" else data.status
                if goal.status == "active":
                    goal.completed_at = None
        except ValueError as e:
            outcome.errors.append((goal_id, str(e)))
            continue
        outcome.succeeded.append(goal_id)

    await db.commit()
    logger.info(
        "User %s ran %s on %d goals (%d failed)",
        user.id, data.action, len(ids), len(outcome.errors),
    )
    return outcome
