"""Module API endpoints: list, inspect, enable/disable and configure life-area modules."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.dependencies import get_current_user
from goal_assistant.database import get_session
from goal_assistant.db.models import User
from goal_assistant.modules.base import LifeAreaModule
from goal_assistant.modules.dependencies import get_module_registry
from goal_assistant.modules.registry import ModuleDependencyError, ModuleRegistry, UnknownModuleError
from goal_assistant.modules.schemas import (
    ModuleConfigRequest,
    ModuleDetail,
    ModuleListResponse,
    module_detail,
    module_summary,
)
from goal_assistant.modules.service import save_state

router = APIRouter(prefix="/api/v1/modules", tags=["Modules"])


def _require(registry: ModuleRegistry, module_id: str) -> LifeAreaModule:
    try:
        return registry.require(module_id)
    except UnknownModuleError as e:
        raise HTTPException(status_code=404, detail="Module not found") from e


@router.get("", response_model=ModuleListResponse)
async def list_modules(
    enabled: bool | None = Query(None),
    search: str | None = Query(None, max_length=100),
    _user: User = Depends(get_current_user),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> ModuleListResponse:
    """Registered modules in registration order."""
    modules = registry.list_modules(enabled=enabled, search=search)
    return ModuleListResponse(
        modules=[module_summary(m, registry.state(m.id)) for m in modules],
        total=len(modules),
    )


@router.get("/{module_id}", response_model=ModuleDetail)
async def get_module(
    module_id: str,
    _user: User = Depends(get_current_user),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> ModuleDetail:
    module = _require(registry, module_id)
    return module_detail(module, registry.state(module_id))


@router.post("/{module_id}/enable", response_model=ModuleDetail)
async def enable_module(
    module_id: str,
    _user: User = Depends(get_current_user),
    registry: ModuleRegistry = Depends(get_module_registry),
    db: AsyncSession = Depends(get_session),
) -> ModuleDetail:
    module = _require(registry, module_id)
    try:
        await registry.enable(module_id)
    except ModuleDependencyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await save_state(db, registry, module_id)
    return module_detail(module, registry.state(module_id))


@router.post("/{module_id}/disable", response_model=ModuleDetail)
async def disable_module(
    module_id: str,
    _user: User = Depends(get_current_user),
    registry: ModuleRegistry = Depends(get_module_registry),
    db: AsyncSession = Depends(get_session),
) -> ModuleDetail:
    module = _require(registry, module_id)
    try:
        await registry.disable(module_id)
    except ModuleDependencyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await save_state(db, registry, module_id)
    return module_detail(module, registry.state(module_id))


@router.put("/{module_id}/config", response_model=ModuleDetail)
async def update_module_config(
    module_id: str,
    body: ModuleConfigRequest,
    _user: User = Depends(get_current_user),
    registry: ModuleRegistry = Depends(get_module_registry),
    db: AsyncSession = Depends(get_session),
) -> ModuleDetail:
    """Merge the given keys into the module's config."""
    module = _require(registry, module_id)
    try:
        await registry.update_config(module_id, body.config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await save_state(db, registry, module_id)
    return module_detail(module, registry.state(module_id))
