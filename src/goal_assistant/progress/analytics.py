"""Progress charts for one goal and activity analytics for one user.

Both look back over a window of at most ``MAX_WINDOW_DAYS`` days. Days are
UTC calendar days.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import Goal, Progress, User
from goal_assistant.gamification.level_thresholds import compute_level
from goal_assistant.gamification.streak_service import streak_is_active
from goal_assistant.progress.service import list_progress
from goal_assistant.timeutils import ensure_utc, utcnow

MAX_WINDOW_DAYS = 365

Aggregation = Literal["daily", "weekly", "monthly"]


def clamp_days(days: int) -> int:
    return max(1, min(days, MAX_WINDOW_DAYS))


def _window_start(days: int) -> tuple[date, datetime]:
    midnight = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    since = midnight - timedelta(days=days - 1)
    return since.date(), since


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------


def _bucket(day: date, aggregation: Aggregation) -> date:
    if aggregation == "weekly":
        # weeks start on Sunday
        return day - timedelta(days=(day.weekday() + 1) % 7)
    if aggregation == "monthly":
        return day.replace(day=1)
    return day


def aggregate(points: list[dict[str, Any]], aggregation: Aggregation) -> list[dict[str, Any]]:
    """Merge daily points into buckets: highest progress, summed XP."""
    if aggregation == "daily":
        return points
    buckets: dict[date, dict[str, Any]] = {}
    for point in points:
        key = _bucket(point["date"], aggregation)
        bucket = buckets.setdefault(key, {"date": key, "progress": 0.0, "xp_earned": 0})
        bucket["progress"] = max(bucket["progress"], point["progress"])
        bucket["xp_earned"] += point["xp_earned"]
    return list(buckets.values())


def trend_line(points: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Least-squares line through the progress values, clamped to 0..100."""
    n = len(points)
    if n < 2:
        return []
    sum_x = sum(range(n))
    sum_y = sum(p["progress"] for p in points)
    sum_xy = sum(i * p["progress"] for i, p in enumerate(points))
    sum_xx = sum(i * i for i in range(n))
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return [
        {"date": p["date"], "trend": round(max(0.0, min(100.0, slope * i + intercept)), 2)}
        for i, p in enumerate(points)
    ]


def chart_stats(points: list[dict[str, Any]]) -> dict[str, Any]:
    values = [p["progress"] for p in points]
    trend = "stable"
    if len(values) > 1 and values[-1] != values[0]:
        trend = "increasing" if values[-1] > values[0] else "decreasing"
    return {
        "total_data_points": len(points),
        "average_progress": round(sum(values) / len(values), 2) if values else 0.0,
        "max_progress": max(values, default=0.0),
        "total_xp": sum(p["xp_earned"] for p in points),
        "progress_trend": trend,
    }


async def daily_series(db: AsyncSession, goal: Goal, days: int) -> list[dict[str, Any]]:
    """One point per day of the window, oldest first; days without entries are zero."""
    start, since = _window_start(days)
    result = await db.execute(
        select(Progress.value, Progress.xp_awarded, Progress.recorded_at)
        .where(Progress.goal_id == goal.id, Progress.recorded_at >= since)
        .order_by(Progress.recorded_at)
    )
    by_day: dict[date, dict[str, Any]] = {}
    for value, xp, recorded_at in result.all():
        day = ensure_utc(recorded_at).date()
        point = by_day.setdefault(day, {"date": day, "progress": 0.0, "xp_earned": 0})
        point["progress"] = max(point["progress"], value)
        point["xp_earned"] += xp or 0

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        series.append(by_day.get(day, {"date": day, "progress": 0.0, "xp_earned": 0}))
    return series


async def goal_chart(
    db: AsyncSession,
    goal: Goal,
    *,
    days: int = 30,
    aggregation: Aggregation = "daily",
    include_xp: bool = False,
    include_trend: bool = False,
) -> dict[str, Any]:
    days = clamp_days(days)
    points = aggregate(await daily_series(db, goal, days), aggregation)
    return {
        "goal_id": goal.id,
        "goal": {"title": goal.title, "difficulty": goal.difficulty, "status": goal.status},
        "config": {
            "aggregation": aggregation,
            "days": days,
            "include_xp": include_xp,
            "include_trend": include_trend,
        },
        "points": [
            {
                "date": p["date"],
                "progress": round(p["progress"], 2),
                "xp_earned": p["xp_earned"] if include_xp else None,
            }
            for p in points
        ],
        "stats": chart_stats(points),
        "trend_line": trend_line(points) if include_trend else None,
    }


# ---------------------------------------------------------------------------
# User analytics
# ---------------------------------------------------------------------------


def progress_trend(recent_values: list[float]) -> str:
    """Compare the newer half of the latest entries against the older half (newest first)."""
    if len(recent_values) < 5:
        return "stable"
    half = len(recent_values) // 2
    recent_avg = sum(recent_values[:half]) / half
    older = recent_values[half:]
    older_avg = sum(older) / len(older)
    if recent_avg > older_avg * 1.05:
        return "increasing"
    if recent_avg < older_avg * 0.95:
        return "decreasing"
    return "stable"


def active_day_streak(active_days: set[date], today: date) -> int:
    streak = 0
    day = today
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def streak_health(current_streak: int) -> str:
    if current_streak >= 7:
        return "excellent"
    if current_streak >= 3:
        return "good"
    if current_streak >= 1:
        return "fair"
    return "needs_attention"


def consistency_grade(score: int) -> str:
    for floor, grade in ((80, "A"), (60, "B"), (40, "C"), (20, "D")):
        if score >= floor:
            return grade
    return "F"


async def user_analytics(db: AsyncSession, user: User, days: int = 30) -> dict[str, Any]:
    """Entry counts, XP, trend and consistency over the window, plus level and streak."""
    days = clamp_days(days)
    start, since = _window_start(days)
    window = [Progress.user_id == user.id, Progress.recorded_at >= since]

    total, xp_total, average, peak = (
        await db.execute(
            select(
                func.count(Progress.id),
                func.coalesce(func.sum(Progress.xp_awarded), 0),
                func.avg(Progress.value),
                func.max(Progress.value),
            ).where(*window)
        )
    ).one()
    recent_values = (
        await db.execute(
            select(Progress.value)
            .where(*window)
            .order_by(Progress.recorded_at.desc(), Progress.id.desc())
            .limit(10)
        )
    ).scalars().all()
    recorded = (await db.execute(select(Progress.recorded_at).where(*window))).scalars().all()
    active_days = {ensure_utc(r).date() for r in recorded}

    today = utcnow().date()
    consistency = round(len(active_days) / days * 100)
    active = streak_is_active(user, today)
    current_streak = user.streak_count if active else 0
    level_info = compute_level(user.total_xp)
    recent, _ = await list_progress(db, user.id, per_page=10)

    return {
        "user_id": user.id,
        "timeframe": {"days": days, "start_date": start, "end_date": today},
        "analytics": {
            "total_entries": total,
            "total_xp_earned": int(xp_total),
            "average_progress": round(float(average or 0), 2),
            "peak_progress": float(peak or 0),
            "progress_trend": progress_trend(list(recent_values)),
            "active_day_streak": active_day_streak(active_days, today),
            "consistency_score": consistency,
        },
        "gamification": {
            "total_xp": user.total_xp,
            "level": level_info["level"],
            "level_title": level_info["title"],
            "current_streak": current_streak,
            "longest_streak": user.longest_streak,
            "streak_active": active,
        },
        "insights": {
            "daily_average": round(total / days, 2),
            "xp_per_entry": round(int(xp_total) / total) if total else 0,
            "streak_health": streak_health(current_streak),
            "consistency_grade": consistency_grade(consistency),
        },
        "recent_progress": recent,
    }
