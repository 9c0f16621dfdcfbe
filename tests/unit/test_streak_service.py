"""Daily streak transitions."""

from datetime import date, datetime, timedelta, timezone

from goal_assistant.db.models import User
from goal_assistant.gamification import streak_service
from goal_assistant.gamification.streak_service import next_streak, record_activity, streak_is_active

TODAY = date(2026, 3, 10)


def _user(streak: int = 0, longest: int = 0, last: date | None = None) -> User:
    return User(id=1, streak_count=streak, longest_streak=longest, last_activity_date=last)


class TestNextStreak:
    def test_first_activity(self):
        assert next_streak(0, None, TODAY) == 1

    def test_same_day_unchanged(self):
        assert next_streak(4, TODAY, TODAY) == 4

    def test_next_day_increments(self):
        assert next_streak(4, TODAY - timedelta(days=1), TODAY) == 5

    def test_gap_resets(self):
        assert next_streak(9, TODAY - timedelta(days=2), TODAY) == 1


class TestRecordActivity:
    def test_first_activity_of_day(self):
        user = _user()
        assert record_activity(user, TODAY) is True
        assert user.streak_count == 1
        assert user.last_activity_date == TODAY

    def test_second_activity_same_day(self):
        user = _user(streak=3, longest=3, last=TODAY)
        assert record_activity(user, TODAY) is False
        assert user.streak_count == 3

    def test_longest_streak_tracked(self):
        user = _user(streak=6, longest=6, last=TODAY - timedelta(days=1))
        record_activity(user, TODAY)
        assert user.streak_count == 7
        assert user.longest_streak == 7

    def test_reset_keeps_longest(self):
        user = _user(streak=12, longest=12, last=TODAY - timedelta(days=5))
        record_activity(user, TODAY)
        assert user.streak_count == 1
        assert user.longest_streak == 12


class TestStreakIsActive:
    def test_active_until_a_day_is_missed(self):
        assert streak_is_active(_user(streak=2, last=TODAY - timedelta(days=1)), TODAY)
        assert not streak_is_active(_user(streak=2, last=TODAY - timedelta(days=2)), TODAY)

    def test_no_activity(self):
        assert not streak_is_active(_user(), TODAY)

    def test_defaults_to_current_utc_day(self, monkeypatch):
        # 23:30 in New York is already the next day in UTC
        monkeypatch.setattr(streak_service, "utcnow", lambda: datetime(2026, 3, 11, 3, 30, tzinfo=timezone.utc))
        user = _user(streak=4, last=TODAY)
        assert streak_is_active(user)
        assert record_activity(user)
        assert user.streak_count == 5
        assert user.last_activity_date == date(2026, 3, 11)
