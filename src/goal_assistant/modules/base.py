"""Capability contract every life-area module implements.

A module is a plain Python class registered explicitly at startup. It
declares metadata, UI component slots, the extra fields its goals carry,
its achievements and points table, and optional async lifecycle hooks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class ModuleKind(str, Enum):
    """The fixed set of life-area module kinds."""

    FITNESS = "fitness"
    HOME_PROJECTS = "home_projects"
    LEARNING = "learning"


class ModuleStatus(str, Enum):
    INSTALLED = "installed"
    ENABLED = "enabled"
    DISABLED = "disabled"
    ERROR = "error"


DIFFICULTY_MULTIPLIERS: dict[str, float] = {
    "easy": 1.0,
    "medium": 1.5,
    "hard": 2.0,
    "expert": 3.0,
}


@dataclass(frozen=True)
class ModuleMetadata:
    author: str
    description: str
    keywords: tuple[str, ...] = ()
    license: str = "MIT"
    homepage: str | None = None
    # module id -> minimum version
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ModuleComponents:
    """Identifiers of the client-side components a module contributes."""

    dashboard: str
    mobile_quick_add: str
    desktop_detail: str
    settings: str


@dataclass(frozen=True)
class ModuleCapability:
    id: str
    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class GoalField:
    """One module-specific field stored in ``Goal.module_data``.

    ``type`` is one of ``string``, ``number``, ``integer``, ``boolean``.
    """

    name: str
    type: str
    required: bool = False
    choices: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class ModuleAchievement:
    """Achievement contributed by a module.

    ``criteria`` uses the same shape as the global catalog, e.g.
    ``{"type": "count", "metric": "action:log_workout", "target": 7}``.
    """

    id: str
    name: str
    description: str
    icon: str
    tier: str
    xp_reward: int
    criteria: dict[str, Any]


@dataclass(frozen=True)
class PointsAction:
    base_points: int
    description: str
    difficulty_multiplier: bool = True
    streak_bonus: bool = True


@dataclass(frozen=True)
class PointsConfig:
    actions: dict[str, PointsAction]
    difficulty_multipliers: dict[str, float] = field(default_factory=lambda: dict(DIFFICULTY_MULTIPLIERS))
    streak_bonus_percentage: float = 10.0


class LifeAreaModule:
    """Base class for life-area modules.

    Subclasses set the class attributes below. Lifecycle hooks default to
    no-ops and may be overridden.
    """

    kind: ClassVar[ModuleKind]
    name: ClassVar[str]
    version: ClassVar[str]
    icon: ClassVar[str]
    color: ClassVar[str]
    metadata: ClassVar[ModuleMetadata]
    components: ClassVar[ModuleComponents]
    goal_fields: ClassVar[tuple[GoalField, ...]] = ()
    achievements: ClassVar[tuple[ModuleAchievement, ...]] = ()
    points: ClassVar[PointsConfig]
    permissions: ClassVar[tuple[str, ...]] = ()
    capabilities: ClassVar[tuple[ModuleCapability, ...]] = ()
    default_config: ClassVar[dict[str, Any]] = {}
    # actions awarded when a goal in this module is created or completed
    goal_created_action: ClassVar[str] = "create_goal"
    goal_completed_action: ClassVar[str] = "complete_goal"

    @property
    def id(self) -> str:
        return self.kind.value

    # --- Lifecycle hooks ---

    async def on_install(self) -> None:
        return None

    async def on_uninstall(self) -> None:
        return None

    async def on_enable(self) -> None:
        return None

    async def on_disable(self) -> None:
        return None

    async def on_config_change(self, old: dict[str, Any], new: dict[str, Any]) -> None:
        return None

    def goal_field(self, name: str) -> GoalField | None:
        for f in self.goal_fields:
            if f.name == name:
                return f
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} version={self.version!r}>"
