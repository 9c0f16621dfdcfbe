"""Chart aggregation and analytics scoring."""

from datetime import date

from goal_assistant.progress.analytics import (
    active_day_streak,
    aggregate,
    chart_stats,
    clamp_days,
    consistency_grade,
    progress_trend,
    streak_health,
    trend_line,
)


def point(day: date, progress: float, xp: int = 0) -> dict:
    return {"date": day, "progress": progress, "xp_earned": xp}


def test_clamp_days():
    assert clamp_days(30) == 30
    assert clamp_days(366) == 365
    assert clamp_days(0) == 1


def test_weekly_buckets_start_on_sunday():
    # 2026-10-18 is a Sunday
    points = [point(date(2026, 10, 17), 5, 1), point(date(2026, 10, 18), 8, 2), point(date(2026, 10, 20), 3, 4)]
    weeks = aggregate(points, "weekly")
    assert weeks == [point(date(2026, 10, 11), 5, 1), point(date(2026, 10, 18), 8, 6)]


def test_monthly_buckets():
    points = [point(date(2026, 9, 30), 2, 1), point(date(2026, 10, 1), 4, 1), point(date(2026, 10, 2), 1, 1)]
    assert aggregate(points, "monthly") == [point(date(2026, 9, 1), 2, 1), point(date(2026, 10, 1), 4, 2)]


def test_trend_line_is_clamped():
    points = [point(date(2026, 10, d), v) for d, v in ((1, 0), (2, 80), (3, 160))]
    assert [p["trend"] for p in trend_line(points)] == [0.0, 80.0, 100.0]
    assert trend_line(points[:1]) == []


def test_chart_stats_decreasing():
    stats = chart_stats([point(date(2026, 10, 1), 9, 3), point(date(2026, 10, 2), 3, 2)])
    assert stats == {
        "total_data_points": 2,
        "average_progress": 6.0,
        "max_progress": 9,
        "total_xp": 5,
        "progress_trend": "decreasing",
    }


def test_progress_trend_needs_five_entries():
    assert progress_trend([10, 1, 1, 1]) == "stable"
    # newest first
    assert progress_trend([10, 10, 1, 1, 1]) == "increasing"
    assert progress_trend([1, 1, 10, 10, 10]) == "decreasing"
    assert progress_trend([5, 5, 5, 5, 5, 5]) == "stable"


def test_active_day_streak_counts_back_from_today():
    today = date(2026, 10, 18)
    assert active_day_streak({today, date(2026, 10, 17), date(2026, 10, 15)}, today) == 2
    assert active_day_streak({date(2026, 10, 17)}, today) == 0


def test_grades():
    assert [streak_health(s) for s in (0, 1, 3, 7)] == ["needs_attention", "fair", "good", "excellent"]
    assert [consistency_grade(s) for s in (100, 60, 45, 20, 19)] == ["A", "B", "C", "D", "F"]
