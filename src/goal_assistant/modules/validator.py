"""Structural validation of life-area modules before registration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from goal_assistant.gamification.xp_service import GLOBAL_ACTIONS
from goal_assistant.modules.base import LifeAreaModule

MODULE_ID_RE = re.compile(r"^[a-z][a-z0-9_]*$")
SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(?:-[a-zA-Z0-9-]+)?(?:\+[a-zA-Z0-9-]+)?$")
HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")

VALID_TIERS = {"bronze", "silver", "gold", "platinum"}
VALID_CRITERIA = {"count", "streak", "level", "xp", "completion"}
VALID_FIELD_TYPES = {"string", "number", "integer", "boolean"}


@dataclass
class ValidationResult:
    module_id: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def parse_version(version: str) -> tuple[int, int, int]:
    """Return the numeric core of a semantic version string."""
    core = re.split(r"[-+]", version, maxsplit=1)[0]
    major, minor, patch = (int(p) for p in core.split("."))
    return major, minor, patch


def validate_module(module: LifeAreaModule) -> ValidationResult:
    """Check a module's declaration. Never raises; collects errors instead."""
    module_id = getattr(module, "id", "") or ""
    result = ValidationResult(module_id=module_id)
    errors = result.errors

    if not MODULE_ID_RE.match(module_id):
        errors.append(
            "Module ID must be lowercase, start with a letter, and contain only letters, numbers, and underscores"
        )
    if not getattr(module, "name", ""):
        errors.append("Module name is required")
    version = getattr(module, "version", "")
    if not version or not SEMVER_RE.match(version):
        errors.append("Module version must follow semantic versioning (e.g., 1.0.0)")
    if not getattr(module, "icon", ""):
        errors.append("Module icon is required")
    if not HEX_COLOR_RE.match(getattr(module, "color", "") or ""):
        errors.append("Module color must be a hex color")

    metadata = getattr(module, "metadata", None)
    if metadata is None:
        errors.append("Module metadata is required")
    else:
        if not metadata.author:
            errors.append("Module metadata.author is required")
        if not metadata.description:
            errors.append("Module metadata.description is required")
        for dep_id, dep_version in metadata.dependencies.items():
            if dep_id == module_id:
                errors.append("Module cannot depend on itself")
            if not SEMVER_RE.match(dep_version):
                errors.append(f"Dependency '{dep_id}' version must follow semantic versioning")
        if not metadata.keywords:
            result.warnings.append("Module metadata.keywords should not be empty")

    if getattr(module, "components", None) is None:
        errors.append("Module components are required")

    seen_fields: set[str] = set()
    for goal_field in module.goal_fields:
        if goal_field.name in seen_fields:
            errors.append(f"Goal field '{goal_field.name}' is declared twice")
        seen_fields.add(goal_field.name)
        if goal_field.type not in VALID_FIELD_TYPES:
            errors.append(f"Goal field '{goal_field.name}' has unknown type '{goal_field.type}'")

    points = getattr(module, "points", None)
    actions = set(points.actions) if points is not None else set()
    if points is None:
        errors.append("Module points configuration is required")
    else:
        for name, action in points.actions.items():
            if action.base_points < 0:
                errors.append(f"Action '{name}' base_points must be non-negative")
    for hook in ("goal_created_action", "goal_completed_action"):
        action_name = getattr(module, hook, "")
        if action_name not in actions and action_name not in GLOBAL_ACTIONS:
            errors.append(f"{hook} references unknown action '{action_name}'")

    seen_achievements: set[str] = set()
    for i, ach in enumerate(module.achievements):
        path = f"achievements[{i}]"
        if ach.id in seen_achievements:
            errors.append(f"{path}.id '{ach.id}' is not unique")
        seen_achievements.add(ach.id)
        if ach.tier not in VALID_TIERS:
            errors.append(f"{path}.tier must be one of: {', '.join(sorted(VALID_TIERS))}")
        if ach.xp_reward < 0:
            errors.append(f"{path}.xp_reward must be a non-negative number")
        ctype = ach.criteria.get("type")
        if ctype not in VALID_CRITERIA:
            errors.append(f"{path}.criteria.type must be one of: {', '.join(sorted(VALID_CRITERIA))}")
        if "target" not in ach.criteria:
            errors.append(f"{path}.criteria.target is required")
        if ctype == "completion" and int(ach.criteria.get("min_goals", 1)) < 1:
            errors.append(f"{path}.criteria.min_goals must be at least 1")
        metric = ach.criteria.get("metric", "")
        if metric.startswith(("action:", "value:")):
            action_name = metric.split(":", 1)[1]
            if action_name not in actions and action_name not in GLOBAL_ACTIONS:
                errors.append(f"{path}.criteria references unknown action '{action_name}'")
        elif metric.startswith("distinct:") and metric.split(":", 1)[1] not in seen_fields:
            errors.append(f"{path}.criteria references unknown goal field '{metric.split(':', 1)[1]}'")

    return result
