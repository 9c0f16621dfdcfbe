"""Pydantic response models for module endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from goal_assistant.modules.base import LifeAreaModule
from goal_assistant.modules.registry import ModuleState


class GoalFieldResponse(BaseModel):
    name: str
    type: str
    required: bool = False
    choices: list[str] = []
    description: str = ""


class PointsActionResponse(BaseModel):
    action: str
    base_points: int
    description: str
    difficulty_multiplier: bool
    streak_bonus: bool


class ModuleAchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    tier: str
    xp_reward: int


class ModuleSummary(BaseModel):
    id: str
    name: str
    version: str
    icon: str
    color: str
    description: str
    status: str
    enabled: bool


class ModuleDetail(ModuleSummary):
    author: str
    keywords: list[str]
    license: str
    homepage: str | None = None
    dependencies: dict[str, str] = {}
    dependents: list[str] = []
    components: dict[str, str]
    goal_fields: list[GoalFieldResponse]
    achievements: list[ModuleAchievementResponse]
    actions: list[PointsActionResponse]
    difficulty_multipliers: dict[str, float]
    streak_bonus_percentage: float
    permissions: list[str]
    capabilities: list[dict[str, Any]]
    config: dict[str, Any]


class ModuleListResponse(BaseModel):
    modules: list[ModuleSummary]
    total: int


class ModuleConfigRequest(BaseModel):
    config: dict[str, Any]


def module_summary(module: LifeAreaModule, state: ModuleState) -> ModuleSummary:
    return ModuleSummary(
        id=module.id,
        name=module.name,
        version=module.version,
        icon=module.icon,
        color=module.color,
        description=module.metadata.description,
        status=state.status.value,
        enabled=state.enabled,
    )


def module_detail(module: LifeAreaModule, state: ModuleState) -> ModuleDetail:
    summary = module_summary(module, state)
    return ModuleDetail(
        **summary.model_dump(),
        author=module.metadata.author,
        keywords=list(module.metadata.keywords),
        license=module.metadata.license,
        homepage=module.metadata.homepage,
        dependencies=dict(module.metadata.dependencies),
        dependents=list(state.dependents),
        components={
            "dashboard": module.components.dashboard,
            "mobile_quick_add": module.components.mobile_quick_add,
            "desktop_detail": module.components.desktop_detail,
            "settings": module.components.settings,
        },
        goal_fields=[
            GoalFieldResponse(
                name=f.name,
                type=f.type,
                required=f.required,
                choices=list(f.choices),
                description=f.description,
            )
            for f in module.goal_fields
        ],
        achievements=[
            ModuleAchievementResponse(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                tier=a.tier,
                xp_reward=a.xp_reward,
            )
            for a in module.achievements
        ],
        actions=[
            PointsActionResponse(
                action=name,
                base_points=a.base_points,
                description=a.description,
                difficulty_multiplier=a.difficulty_multiplier,
                streak_bonus=a.streak_bonus,
            )
            for name, a in module.points.actions.items()
        ],
        difficulty_multipliers=dict(module.points.difficulty_multipliers),
        streak_bonus_percentage=module.points.streak_bonus_percentage,
        permissions=list(module.permissions),
        capabilities=[
            {"id": c.id, "name": c.name, "description": c.description, "required": c.required}
            for c in module.capabilities
        ],
        config=dict(state.config),
    )
