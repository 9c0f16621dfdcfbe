"""Persistence of module state in the ``modules`` table."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Module
from goal_assistant.modules.base import GoalField
from goal_assistant.modules.registry import ModuleDependencyError, ModuleRegistry

logger = structlog.get_logger()


async def sync_registry(db: AsyncSession, registry: ModuleRegistry) -> None:
    """Reconcile registered modules with stored rows.

    Stored enabled flags and config win for modules already known to the
    database; new modules get a row reflecting their registry state.
    """
    rows = {m.id: m for m in (await db.execute(select(Module))).scalars().all()}
    for module in registry.list_modules():
        row = rows.get(module.id)
        state = registry.state(module.id)
        if row is None:
            db.add(Module(
                id=module.id,
                name=module.name,
                version=module.version,
                enabled=state.enabled,
                config=dict(state.config),
            ))
            logger.info("module_row_created", module_id=module.id)
            continue

        row.name = module.name
        row.version = module.version
        if row.config:
            await registry.update_config(module.id, row.config)
        try:
            if row.enabled and not state.enabled:
                await registry.enable(module.id)
            elif not row.enabled and state.enabled:
                await registry.disable(module.id)
        except ModuleDependencyError:
            logger.warning("module_state_not_applied", module_id=module.id, enabled=row.enabled)
            row.enabled = registry.is_enabled(module.id)
    await db.commit()


async def save_state(db: AsyncSession, registry: ModuleRegistry, module_id: str) -> Module:
    """Write the registry's current state for one module."""
    state = registry.state(module_id)
    module = registry.require(module_id)
    row = (await db.execute(select(Module).where(Module.id == module_id))).scalar_one_or_none()
    if row is None:
        row = Module(id=module_id, name=module.name, version=module.version)
        db.add(row)
    row.enabled = state.enabled
    row.config = dict(state.config)
    await db.commit()
    return row


# ---------------------------------------------------------------------------
# Goal data validation
# ---------------------------------------------------------------------------

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
}


def validate_module_data(fields: tuple[GoalField, ...], data: dict[str, Any]) -> dict[str, Any]:
    """Check goal ``module_data`` against one module's declared fields.

    Only the goal's own module is consulted; fields are never merged across
    modules. Raises ValueError for unknown fields, wrong types, values
    outside ``choices`` or missing required fields.
    """
    declared = {f.name: f for f in fields}
    unknown = sorted(set(data) - set(declared))
    if unknown:
        msg = f"Unknown module fields: {', '.join(unknown)}"
        raise ValueError(msg)

    for name, field in declared.items():
        if name not in data or data[name] is None:
            if field.required:
                msg = f"Module field '{name}' is required"
                raise ValueError(msg)
            continue
        value = data[name]
        if not _TYPE_CHECKS[field.type](value):
            msg = f"Module field '{name}' must be of type {field.type}"
            raise ValueError(msg)
        if field.choices and value not in field.choices:
            msg = f"Module field '{name}' must be one of: {', '.join(field.choices)}"
            raise ValueError(msg)
    return {k: v for k, v in data.items() if v is not None}
