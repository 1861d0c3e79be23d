from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    """Calendar date used for classification (UTC, no time-of-day)."""

    return utcnow().date()


def get_today() -> date:
    # FastAPI dependency; tests override it to pin "today".
    return today()
