"""Level thresholds and computation.

Cumulative XP needed to reach each level. Level 21 is the cap.
"""

from __future__ import annotations

_CUMULATIVE = [
    0, 100, 250, 500, 1000, 1750, 2750, 4000, 5500, 7250,
    9250, 11500, 14000, 16750, 19750, 23000, 26500, 30250, 34250, 38500,
    43000,
]

_TITLES = {
    1: "Starter",
    2: "Planner",
    3: "Doer",
    5: "Habit Builder",
    8: "Achiever",
    12: "Goal Getter",
    16: "Pathfinder",
    21: "Life Architect",
}


def _title_for(level: int) -> str:
    title = _TITLES[1]
    for lvl, name in _TITLES.items():
        if level >= lvl:
            title = name
    return title


LEVEL_THRESHOLDS: list[dict] = [
    {
        "level": i + 1,
        "title": _title_for(i + 1),
        "xp_required": cumulative - (_CUMULATIVE[i - 1] if i else 0),
        "cumulative": cumulative,
    }
    for i, cumulative in enumerate(_CUMULATIVE)
]

MAX_LEVEL = LEVEL_THRESHOLDS[-1]["level"]


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    current = LEVEL_THRESHOLDS[0]
    next_level = LEVEL_THRESHOLDS[1]

    for i in range(len(LEVEL_THRESHOLDS) - 1):
        if total_xp >= LEVEL_THRESHOLDS[i]["cumulative"]:
            current = LEVEL_THRESHOLDS[i]
            next_level = LEVEL_THRESHOLDS[i + 1]

    # Handle XP beyond max level
    if total_xp >= LEVEL_THRESHOLDS[-1]["cumulative"]:
        current = LEVEL_THRESHOLDS[-1]
        next_level = LEVEL_THRESHOLDS[-1]

    xp_into_level = total_xp - current["cumulative"]
    xp_for_level = next_level["cumulative"] - current["cumulative"]

    # At max level, avoid division by zero
    if xp_for_level == 0:
        xp_for_level = 1

    return {
        "level": current["level"],
        "title": current["title"],
        "xp_into_level": xp_into_level,
        "xp_for_level": xp_for_level,
        "progress": min(xp_into_level / xp_for_level, 1.0) if current is not next_level else 1.0,
        "next_level": next_level["level"],
        "next_title": next_level["title"],
    }
