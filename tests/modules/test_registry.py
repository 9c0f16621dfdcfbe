"""ModuleRegistry behaviour without a database."""

import pytest

from goal_assistant.modules.base import ModuleMetadata, ModuleStatus
from goal_assistant.modules.builtin import FitnessModule, HomeProjectsModule, LearningModule, build_default_registry
from goal_assistant.modules.registry import (
    DuplicateModuleError,
    ModuleDependencyError,
    ModuleRegistry,
    ModuleValidationError,
    UnknownModuleError,
)


class NewerFitness(FitnessModule):
    version = "2.0.0"


class LearningNeedsFitness(LearningModule):
    metadata = ModuleMetadata(
        author="Goal Assistant Team",
        description="Learning with workout breaks",
        keywords=("learning",),
        dependencies={"fitness": "1.0.0"},
    )


class LearningNeedsNewFitness(LearningModule):
    metadata = ModuleMetadata(
        author="Goal Assistant Team",
        description="Learning with workout breaks",
        keywords=("learning",),
        dependencies={"fitness": "3.0.0"},
    )


class TestRegistration:
    async def test_register_and_get(self):
        registry = ModuleRegistry()
        state = await registry.register(FitnessModule())
        assert state.status is ModuleStatus.INSTALLED
        assert registry.get("fitness").name == "Fitness Tracker"
        assert "fitness" in registry
        assert len(registry) == 1

    async def test_get_unknown_returns_none(self):
        assert ModuleRegistry().get("fitness") is None

    async def test_require_unknown_raises(self):
        with pytest.raises(UnknownModuleError):
            ModuleRegistry().require("fitness")

    async def test_duplicate_leaves_existing_entry(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule(), auto_enable=True)
        with pytest.raises(DuplicateModuleError):
            await registry.register(NewerFitness())
        assert registry.get("fitness").version == "1.0.0"
        assert registry.is_enabled("fitness")
        assert len(registry) == 1

    async def test_config_defaults_merged_with_overrides(self):
        registry = ModuleRegistry()
        state = await registry.register(FitnessModule(), config={"units": "imperial"})
        assert state.config["units"] == "imperial"
        assert state.config["weekly_workout_target"] == 3

    async def test_default_registry_enables_all_builtins(self):
        registry = await build_default_registry()
        assert [m.id for m in registry.list_enabled()] == ["fitness", "home_projects", "learning"]


class TestEnabledOrdering:
    async def test_list_enabled_in_registration_order(self):
        registry = ModuleRegistry()
        await registry.register(LearningModule(), auto_enable=True)
        await registry.register(FitnessModule(), auto_enable=True)
        await registry.register(HomeProjectsModule(), auto_enable=True)
        assert [m.id for m in registry.list_enabled()] == ["learning", "fitness", "home_projects"]

    async def test_disabled_modules_excluded(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule(), auto_enable=True)
        await registry.register(LearningModule(), auto_enable=True)
        await registry.disable("fitness")
        assert [m.id for m in registry.list_enabled()] == ["learning"]
        assert registry.list_modules(enabled=False)[0].id == "fitness"

    async def test_search(self):
        registry = await build_default_registry()
        assert [m.id for m in registry.list_modules(search="WORKOUT")] == ["fitness"]


class TestDependencies:
    async def test_missing_dependency(self):
        with pytest.raises(ModuleDependencyError, match="not registered"):
            await ModuleRegistry().register(LearningNeedsFitness())

    async def test_dependency_too_old(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule())
        with pytest.raises(ModuleDependencyError, match=">= 3.0.0"):
            await registry.register(LearningNeedsNewFitness())

    async def test_skip_dependency_check(self):
        registry = ModuleRegistry()
        await registry.register(LearningNeedsFitness(), skip_dependency_check=True)
        assert registry.is_registered("learning")

    async def test_dependency_registered_later_tracks_dependents(self):
        registry = ModuleRegistry()
        await registry.register(LearningNeedsFitness(), skip_dependency_check=True)
        await registry.register(FitnessModule())
        assert registry.state("fitness").dependents == ["learning"]
        with pytest.raises(ModuleDependencyError):
            await registry.unregister("fitness")

    async def test_enable_requires_enabled_dependency(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule())
        await registry.register(LearningNeedsFitness())
        with pytest.raises(ModuleDependencyError):
            await registry.enable("learning")

    async def test_dependency_cannot_be_removed_or_disabled(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule(), auto_enable=True)
        await registry.register(LearningNeedsFitness(), auto_enable=True)
        assert registry.state("fitness").dependents == ["learning"]
        with pytest.raises(ModuleDependencyError):
            await registry.disable("fitness")
        with pytest.raises(ModuleDependencyError):
            await registry.unregister("fitness")

    async def test_unregister_dependent_first(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule(), auto_enable=True)
        await registry.register(LearningNeedsFitness(), auto_enable=True)
        await registry.unregister("learning")
        await registry.unregister("fitness")
        assert len(registry) == 0


class TestEventsAndConfig:
    async def test_lifecycle_events(self):
        registry = ModuleRegistry()
        events: list[str] = []
        registry.add_listener(lambda event: events.append(event.type))
        await registry.register(FitnessModule(), auto_enable=True)
        assert events == ["module:installing", "module:installed", "module:enabling", "module:enabled"]

    async def test_async_listener_and_failures_isolated(self):
        registry = ModuleRegistry()
        seen: list[str] = []

        def broken(_event):
            raise RuntimeError("boom")

        async def recorder(event):
            seen.append(event.module_id)

        registry.add_listener(broken)
        registry.add_listener(recorder)
        await registry.register(FitnessModule())
        assert seen == ["fitness", "fitness"]

    async def test_removed_listener_is_not_called(self):
        registry = ModuleRegistry()
        events: list[str] = []

        def listener(event):
            events.append(event.type)

        registry.add_listener(listener)
        registry.remove_listener(listener)
        await registry.register(FitnessModule())
        assert events == []

    async def test_update_config_merges(self):
        registry = ModuleRegistry()
        await registry.register(FitnessModule())
        state = await registry.update_config("fitness", {"reminders_enabled": True})
        assert state.config["reminders_enabled"] is True
        assert state.config["units"] == "metric"

    async def test_failing_enable_hook_marks_error(self):
        class Flaky(FitnessModule):
            async def on_enable(self):
                raise RuntimeError("cannot start")

        registry = ModuleRegistry()
        await registry.register(Flaky())
        with pytest.raises(RuntimeError):
            await registry.enable("fitness")
        assert registry.state("fitness").status is ModuleStatus.ERROR
        assert registry.state("fitness").last_error == "cannot start"


class TestValidationOnRegister:
    async def test_invalid_module_rejected(self):
        class BadVersion(FitnessModule):
            version = "1.0"

        with pytest.raises(ModuleValidationError, match="semantic versioning"):
            await ModuleRegistry().register(BadVersion())
