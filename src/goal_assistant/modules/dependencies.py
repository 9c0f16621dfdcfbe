"""FastAPI dependency giving handlers the application's module registry."""

from __future__ import annotations

from fastapi import Request

from goal_assistant.modules.registry import ModuleRegistry


def get_module_registry(request: Request) -> ModuleRegistry:
    registry: ModuleRegistry | None = getattr(request.app.state, "module_registry", None)
    if registry is None:
        msg = "Module registry not initialized"
        raise RuntimeError(msg)
    return registry
