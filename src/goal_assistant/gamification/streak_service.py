"""Daily activity streak tracking."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from goal_assistant.db.models import User
from goal_assistant.timeutils import utcnow

logger = logging.getLogger(__name__)


def next_streak(current: int, last_activity: date | None, today: date) -> int:
    """Streak after activity on ``today``.

    First activity starts at 1, same day is unchanged, the next day adds
    one, and any longer gap resets to 1.
    """
    if last_activity is None or current <= 0:
        return 1
    if today <= last_activity:
        return current
    if today - last_activity == timedelta(days=1):
        return current + 1
    return 1


def record_activity(user: User, today: date | None = None) -> bool:
    """Update the user's streak for activity today. Returns True on the first activity of a day."""
    if today is None:
        today = utcnow().date()

    first_today = user.last_activity_date is None or user.last_activity_date < today
    new_streak = next_streak(user.streak_count, user.last_activity_date, today)
    if new_streak != user.streak_count:
        logger.debug("Streak for user %s: %s -> %s", user.id, user.streak_count, new_streak)

    user.streak_count = new_streak
    user.longest_streak = max(user.longest_streak or 0, new_streak)
    if first_today:
        user.last_activity_date = today
    return first_today


def streak_is_active(user: User, today: date | None = None) -> bool:
    """A streak stays alive until a full day passes without activity."""
    if today is None:
        today = utcnow().date()
    if user.last_activity_date is None or user.streak_count <= 0:
        return False
    return today - user.last_activity_date <= timedelta(days=1)
