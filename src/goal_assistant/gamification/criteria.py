"""Achievement criteria evaluation.

Criteria are small JSON objects stored on each achievement:

    {"type": "count", "metric": "goals_completed", "target": 5}
    {"type": "count", "metric": "action:log_workout", "target": 7, "window_days": 7}
    {"type": "streak", "target": 30}
    {"type": "level", "target": 5}
    {"type": "xp", "target": 1000}
    {"type": "completion", "target": 80, "min_goals": 5}

Count metrics:
    goals_created, goals_completed, progress_entries
    action:<name>    number of progress entries recorded with that action
    value:<name>     sum of progress values recorded with that action
    distinct:<field> distinct values of a goal module_data field

Evaluation is pure: callers collect a UserStats snapshot first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class UserStats:
    """Snapshot of a user's state, optionally scoped to one module."""

    total_xp: int = 0
    level: int = 1
    streak: int = 0
    longest_streak: int = 0
    goals_created: int = 0
    goals_completed: int = 0
    progress_entries: int = 0
    # keyed by metric_key(metric, window_days)
    metrics: dict[str, float] = field(default_factory=dict)

    def metric(self, name: str, window_days: int | None = None) -> float:
        if window_days is None and name in ("goals_created", "goals_completed", "progress_entries"):
            return float(getattr(self, name))
        return self.metrics.get(metric_key(name, window_days), 0.0)


def metric_key(name: str, window_days: int | None = None) -> str:
    return f"{name}@{window_days}d" if window_days else name


def required_metrics(criteria_list: list[dict[str, Any]]) -> set[tuple[str, int | None]]:
    """(metric, window_days) pairs a batch of count criteria needs."""
    needed: set[tuple[str, int | None]] = set()
    for criteria in criteria_list:
        if criteria.get("type") == "count" and criteria.get("metric"):
            needed.add((criteria["metric"], criteria.get("window_days")))
    return needed


def evaluate_criteria(criteria: dict[str, Any], stats: UserStats) -> tuple[bool, float]:
    """Return (met, progress) where progress is in [0, 1].

    Unknown criteria types are never met.
    """
    ctype = criteria.get("type")
    target = float(criteria.get("target", 1) or 1)

    if ctype == "count":
        current = stats.metric(criteria.get("metric", ""), criteria.get("window_days"))
    elif ctype == "streak":
        current = float(max(stats.streak, stats.longest_streak) if criteria.get("longest") else stats.streak)
    elif ctype == "level":
        current = float(stats.level)
    elif ctype == "xp":
        current = float(stats.total_xp)
    elif ctype == "completion":
        if stats.goals_created == 0 or stats.goals_created < int(criteria.get("min_goals", 1)):
            return False, 0.0
        current = 100.0 * stats.goals_completed / stats.goals_created
    else:
        return False, 0.0

    progress = min(current / target, 1.0) if target > 0 else 1.0
    return current >= target, progress
