"""Achievement catalog seeding: global achievements plus those each module declares."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Achievement
from goal_assistant.modules.registry import ModuleRegistry

logger = logging.getLogger(__name__)

GLOBAL_ACHIEVEMENTS: list[dict] = [
    {
        "slug": "first_goal",
        "name": "Getting Started",
        "description": "Create your first goal",
        "icon": "target",
        "category": "bronze",
        "xp_reward": 10,
        "criteria": {"type": "count", "metric": "goals_created", "target": 1},
        "sort_order": 1,
    },
    {
        "slug": "goal_creator",
        "name": "Goal Creator",
        "description": "Create 5 goals",
        "icon": "plus-circle",
        "category": "bronze",
        "xp_reward": 25,
        "criteria": {"type": "count", "metric": "goals_created", "target": 5},
        "sort_order": 2,
    },
    {
        "slug": "streak_week",
        "name": "Weekly Warrior",
        "description": "Maintain a 7-day activity streak",
        "icon": "fire",
        "category": "silver",
        "xp_reward": 50,
        "criteria": {"type": "streak", "target": 7},
        "sort_order": 3,
    },
    {
        "slug": "streak_month",
        "name": "Monthly Master",
        "description": "Maintain a 30-day activity streak",
        "icon": "flame",
        "category": "gold",
        "xp_reward": 200,
        "criteria": {"type": "streak", "target": 30},
        "sort_order": 4,
    },
    {
        "slug": "first_completion",
        "name": "Finish Line",
        "description": "Complete your first goal",
        "icon": "flag",
        "category": "bronze",
        "xp_reward": 20,
        "criteria": {"type": "count", "metric": "goals_completed", "target": 1},
        "sort_order": 5,
    },
    {
        "slug": "goal_finisher",
        "name": "Goal Finisher",
        "description": "Complete 5 goals",
        "icon": "check-circle",
        "category": "silver",
        "xp_reward": 75,
        "criteria": {"type": "count", "metric": "goals_completed", "target": 5},
        "sort_order": 6,
    },
    {
        "slug": "goal_master",
        "name": "Goal Master",
        "description": "Complete 25 goals",
        "icon": "crown",
        "category": "gold",
        "xp_reward": 200,
        "criteria": {"type": "count", "metric": "goals_completed", "target": 25},
        "sort_order": 7,
    },
    {
        "slug": "goal_legend",
        "name": "Goal Legend",
        "description": "Complete 100 goals",
        "icon": "trophy",
        "category": "platinum",
        "xp_reward": 500,
        "criteria": {"type": "count", "metric": "goals_completed", "target": 100},
        "sort_order": 8,
    },
    {
        "slug": "xp_collector",
        "name": "XP Collector",
        "description": "Earn 1,000 XP",
        "icon": "star",
        "category": "silver",
        "xp_reward": 100,
        "criteria": {"type": "xp", "target": 1000},
        "sort_order": 9,
    },
    {
        "slug": "level_five",
        "name": "Rising Star",
        "description": "Reach level 5",
        "icon": "trending-up",
        "category": "silver",
        "xp_reward": 50,
        "criteria": {"type": "level", "target": 5},
        "sort_order": 10,
    },
    {
        "slug": "closer",
        "name": "Closer",
        "description": "Complete at least 80% of your goals (minimum 5)",
        "icon": "percent",
        "category": "gold",
        "xp_reward": 150,
        "criteria": {"type": "completion", "target": 80, "min_goals": 5},
        "sort_order": 11,
    },
]


def module_achievement_slug(module_id: str, achievement_id: str) -> str:
    return f"{module_id}.{achievement_id}"


def catalog_entries(registry: ModuleRegistry) -> list[dict]:
    """Global achievements followed by every registered module's achievements."""
    entries = [{**data, "module_id": None} for data in GLOBAL_ACHIEVEMENTS]
    for module in registry.list_modules():
        for order, ach in enumerate(module.achievements, start=1):
            entries.append({
                "slug": module_achievement_slug(module.id, ach.id),
                "module_id": module.id,
                "name": ach.name,
                "description": ach.description,
                "icon": ach.icon,
                "category": ach.tier,
                "xp_reward": ach.xp_reward,
                "criteria": dict(ach.criteria),
                "sort_order": 100 + order,
            })
    return entries


async def seed_achievements(db: AsyncSession, registry: ModuleRegistry) -> int:
    """Insert or update the achievement catalog. Returns number of entries seeded."""
    existing = {
        a.slug: a for a in (await db.execute(select(Achievement))).scalars().all()
    }
    seeded = 0
    for data in catalog_entries(registry):
        row = existing.get(data["slug"])
        if row is None:
            db.add(Achievement(**data))
        else:
            for key, value in data.items():
                setattr(row, key, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievements", seeded)
    return seeded
