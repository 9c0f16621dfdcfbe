"""Built-in life-area modules."""

from goal_assistant.modules.base import LifeAreaModule, ModuleKind
from goal_assistant.modules.builtin.fitness import FitnessModule
from goal_assistant.modules.builtin.home_projects import HomeProjectsModule
from goal_assistant.modules.builtin.learning import LearningModule
from goal_assistant.modules.registry import ModuleRegistry

BUILTIN_MODULES: dict[ModuleKind, type[LifeAreaModule]] = {
    ModuleKind.FITNESS: FitnessModule,
    ModuleKind.HOME_PROJECTS: HomeProjectsModule,
    ModuleKind.LEARNING: LearningModule,
}


async def build_default_registry() -> ModuleRegistry:
    """Register and enable every built-in module, in ModuleKind order."""
    registry = ModuleRegistry()
    for kind in ModuleKind:
        await registry.register(BUILTIN_MODULES[kind](), auto_enable=True)
    return registry


__all__ = [
    "BUILTIN_MODULES",
    "FitnessModule",
    "HomeProjectsModule",
    "LearningModule",
    "build_default_registry",
]
