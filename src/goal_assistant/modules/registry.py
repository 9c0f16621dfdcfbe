"""Registry of life-area modules.

One ``ModuleRegistry`` is built per application and handed to request
handlers through a dependency. Registration happens once at startup;
afterwards the registry is read-mostly (enable/disable/config updates).
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from goal_assistant.modules.base import LifeAreaModule, ModuleStatus
from goal_assistant.modules.validator import parse_version, validate_module
from goal_assistant.timeutils import utcnow

logger = structlog.get_logger()


class ModuleError(Exception):
    """Base class for module registry errors."""


class DuplicateModuleError(ModuleError, ValueError):
    """A module with the same id is already registered."""


class UnknownModuleError(ModuleError, LookupError):
    """No module is registered under the requested id."""


class ModuleDependencyError(ModuleError):
    """A dependency is missing, too old, disabled, or still needed."""


class ModuleValidationError(ModuleError, ValueError):
    """The module declaration failed validation."""

    def __init__(self, module_id: str, errors: list[str]) -> None:
        self.module_id = module_id
        self.errors = errors
        super().__init__(f"Module '{module_id}' failed validation: {'; '.join(errors)}")


@dataclass
class ModuleState:
    id: str
    status: ModuleStatus
    version: str
    config: dict[str, Any] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    last_error: str | None = None

    @property
    def enabled(self) -> bool:
        return self.status is ModuleStatus.ENABLED


@dataclass(frozen=True)
class ModuleEvent:
    type: str
    module_id: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)


ModuleListener = Callable[[ModuleEvent], Awaitable[None] | None]


class ModuleRegistry:
    """Table of registered modules keyed by module id, in registration order."""

    def __init__(self) -> None:
        self._modules: dict[str, LifeAreaModule] = {}
        self._states: dict[str, ModuleState] = {}
        self._listeners: list[ModuleListener] = []

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_listener(self, listener: ModuleListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ModuleListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, event_type: str, module_id: str, **data: Any) -> None:
        event = ModuleEvent(
            type=event_type,
            module_id=module_id,
            timestamp=utcnow(),
            data=data,
        )
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("module_listener_failed", event=event_type, module_id=module_id)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        module: LifeAreaModule,
        *,
        auto_enable: bool = False,
        config: dict[str, Any] | None = None,
        skip_dependency_check: bool = False,
    ) -> ModuleState:
        """Install a module.

        Raises DuplicateModuleError if the id is taken (the existing entry is
        left untouched), ModuleValidationError if the declaration is invalid,
        and ModuleDependencyError if a declared dependency is not satisfied.
        """
        validation = validate_module(module)
        if not validation.valid:
            raise ModuleValidationError(validation.module_id, validation.errors)
        for warning in validation.warnings:
            logger.warning("module_validation_warning", module_id=module.id, warning=warning)

        if module.id in self._modules:
            msg = f"Module '{module.id}' is already registered"
            raise DuplicateModuleError(msg)

        dependencies = list(module.metadata.dependencies)
        if not skip_dependency_check:
            self._check_dependencies(module)

        await self._emit("module:installing", module.id)
        await module.on_install()

        state = ModuleState(
            id=module.id,
            status=ModuleStatus.INSTALLED,
            version=module.version,
            config={**module.default_config, **(config or {})},
            dependencies=dependencies,
        )
        self._modules[module.id] = module
        self._states[module.id] = state
        for dep_id in dependencies:
            dep_state = self._states.get(dep_id)
            if dep_state is not None and module.id not in dep_state.dependents:
                dep_state.dependents.append(module.id)
        # modules registered earlier without a dependency check
        for other_id, other in self._states.items():
            if module.id in other.dependencies and other_id not in state.dependents:
                state.dependents.append(other_id)

        logger.info("module_registered", module_id=module.id, version=module.version)
        await self._emit("module:installed", module.id, version=module.version)

        if auto_enable:
            await self.enable(module.id)
        return state

    def _check_dependencies(self, module: LifeAreaModule) -> None:
        for dep_id, min_version in module.metadata.dependencies.items():
            dep = self._modules.get(dep_id)
            if dep is None:
                msg = f"Module '{module.id}' requires '{dep_id}' which is not registered"
                raise ModuleDependencyError(msg)
            if parse_version(dep.version) < parse_version(min_version):
                msg = f"Module '{module.id}' requires '{dep_id}' >= {min_version}, found {dep.version}"
                raise ModuleDependencyError(msg)

    async def unregister(self, module_id: str) -> None:
        """Remove a module. Fails while other registered modules depend on it."""
        module = self.require(module_id)
        state = self._states[module_id]
        if state.dependents:
            msg = f"Cannot uninstall '{module_id}': modules {', '.join(state.dependents)} depend on it"
            raise ModuleDependencyError(msg)

        await self._emit("module:uninstalling", module_id)
        if state.enabled:
            await self.disable(module_id)
        await module.on_uninstall()

        del self._modules[module_id]
        del self._states[module_id]
        for dep_id in state.dependencies:
            dep_state = self._states.get(dep_id)
            if dep_state is not None and module_id in dep_state.dependents:
                dep_state.dependents.remove(module_id)

        logger.info("module_unregistered", module_id=module_id)
        await self._emit("module:uninstalled", module_id)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, module_id: str) -> LifeAreaModule | None:
        return self._modules.get(module_id)

    def require(self, module_id: str) -> LifeAreaModule:
        module = self._modules.get(module_id)
        if module is None:
            msg = f"Module '{module_id}' is not registered"
            raise UnknownModuleError(msg)
        return module

    def is_registered(self, module_id: str) -> bool:
        return module_id in self._modules

    def is_enabled(self, module_id: str) -> bool:
        state = self._states.get(module_id)
        return state is not None and state.enabled

    def state(self, module_id: str) -> ModuleState:
        self.require(module_id)
        return self._states[module_id]

    def list_enabled(self) -> list[LifeAreaModule]:
        """Enabled modules in registration order."""
        return [m for mid, m in self._modules.items() if self._states[mid].enabled]

    def list_modules(self, *, enabled: bool | None = None, search: str | None = None) -> list[LifeAreaModule]:
        """Registered modules, optionally filtered by enabled flag or a search term.

        The search term matches name, description and keywords, case-insensitively.
        """
        needle = search.lower() if search else None
        out = []
        for module_id, module in self._modules.items():
            if enabled is not None and self._states[module_id].enabled != enabled:
                continue
            if needle:
                haystack = [module.name, module.metadata.description, *module.metadata.keywords]
                if not any(needle in text.lower() for text in haystack):
                    continue
            out.append(module)
        return out

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    async def enable(self, module_id: str) -> ModuleState:
        module = self.require(module_id)
        state = self._states[module_id]
        if state.enabled:
            return state

        missing = [d for d in state.dependencies if not self.is_enabled(d)]
        if missing:
            msg = f"Dependencies not enabled: {', '.join(missing)}"
            raise ModuleDependencyError(msg)

        await self._emit("module:enabling", module_id)
        try:
            await module.on_enable()
        except Exception as exc:
            state.status = ModuleStatus.ERROR
            state.last_error = str(exc)
            await self._emit("module:error", module_id, error=str(exc))
            raise
        state.status = ModuleStatus.ENABLED
        state.last_error = None
        logger.info("module_enabled", module_id=module_id)
        await self._emit("module:enabled", module_id)
        return state

    async def disable(self, module_id: str) -> ModuleState:
        module = self.require(module_id)
        state = self._states[module_id]
        if state.status is ModuleStatus.DISABLED:
            return state

        still_enabled = [d for d in state.dependents if self.is_enabled(d)]
        if still_enabled:
            msg = f"Cannot disable '{module_id}': dependent modules still enabled: {', '.join(still_enabled)}"
            raise ModuleDependencyError(msg)

        await self._emit("module:disabling", module_id)
        try:
            await module.on_disable()
        except Exception as exc:
            state.status = ModuleStatus.ERROR
            state.last_error = str(exc)
            await self._emit("module:error", module_id, error=str(exc))
            raise
        state.status = ModuleStatus.DISABLED
        logger.info("module_disabled", module_id=module_id)
        await self._emit("module:disabled", module_id)
        return state

    async def update_config(self, module_id: str, config: dict[str, Any]) -> ModuleState:
        """Merge ``config`` into the module's config and run its change hook."""
        module = self.require(module_id)
        state = self._states[module_id]
        old = dict(state.config)
        new = {**old, **config}
        await module.on_config_change(old, new)
        state.config = new
        await self._emit("module:config-changed", module_id, old=old, new=new)
        return state
