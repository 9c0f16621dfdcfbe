"""Timezone helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalise to an aware UTC datetime.

    Naive values are assumed to be UTC already (SQLite drops tzinfo on the
    way back); aware values in other zones are converted so the stored wall
    clock is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
