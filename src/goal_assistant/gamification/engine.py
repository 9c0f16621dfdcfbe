"""Gamification engine: turns user actions into XP, streaks and achievements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.config import Settings, get_settings
from goal_assistant.db.models import Achievement, User
from goal_assistant.gamification.achievement_service import check_achievements
from goal_assistant.gamification.streak_service import record_activity
from goal_assistant.gamification.xp_service import compute_action_xp, grant_xp
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.timeutils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    action: str
    xp_awarded: int = 0
    duplicate: bool = False
    level_before: int = 1
    level_after: int = 1
    streak: int = 0
    achievements: list[Achievement] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


class GamificationEngine:
    """Applies one user action: streak update, XP grant, achievement check.

    The engine flushes but never commits; the caller commits together with
    the domain write that triggered the action.
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: ModuleRegistry,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.registry = registry
        self.settings = settings or get_settings()

    async def process_action(
        self,
        user: User,
        action: str,
        *,
        idempotency_key: str,
        module_id: str | None = None,
        difficulty: str = "medium",
        source_id: str | None = None,
        description: str | None = None,
    ) -> ActionResult:
        """Award XP for ``action`` once per ``idempotency_key`` and unlock achievements.

        Raises ValueError for an action unknown to both the module and the
        global table.
        """
        module = self.registry.get(module_id) if module_id else None
        result = ActionResult(action=action, level_before=user.current_level)

        if record_activity(user):
            today = utcnow().date().isoformat()
            await grant_xp(
                db=self.db,
                user_id=user.id,
                amount=compute_action_xp("daily_login"),
                source="daily_login",
                source_id=today,
                description="Daily activity",
                idempotency_key=f"daily_login:{user.id}:{today}",
            )

        amount = compute_action_xp(
            action,
            difficulty=difficulty,
            streak=user.streak_count,
            module=module,
            streak_bonus_percentage=self.settings.streak_bonus_percentage,
            streak_cap_days=self.settings.streak_bonus_cap_days,
        )
        granted = await grant_xp(
            db=self.db,
            user_id=user.id,
            amount=amount,
            source=action,
            source_id=source_id,
            description=description or action.replace("_", " ").capitalize(),
            idempotency_key=idempotency_key,
            module_id=module_id,
        )
        result.duplicate = not granted
        result.xp_awarded = amount if granted else 0

        result.achievements = await check_achievements(
            self.db, user, module_id, context={"action": action, "source_id": source_id}
        )
        result.streak = user.streak_count
        result.level_after = user.current_level

        logger.debug(
            "Action %s for user %s: +%s XP, %d achievements",
            action, user.id, result.xp_awarded, len(result.achievements),
        )
        return result
