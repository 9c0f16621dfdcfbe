"""UTC normalisation helpers."""

from datetime import datetime, timedelta, timezone

from goal_assistant.timeutils import ensure_utc, utcnow


def test_none_passes_through():
    assert ensure_utc(None) is None


def test_naive_is_treated_as_utc():
    value = ensure_utc(datetime(2026, 10, 18, 12, 0))
    assert value == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    assert value.utcoffset() == timedelta(0)


def test_offset_is_converted_to_utc():
    central = timezone(timedelta(hours=-5))
    value = ensure_utc(datetime(2026, 10, 18, 23, 0, tzinfo=central))
    assert value.tzinfo == timezone.utc
    assert (value.year, value.month, value.day, value.hour) == (2026, 10, 19, 4)


def test_utcnow_is_aware():
    assert utcnow().tzinfo == timezone.utc
