"""Utility functions for time handling.

All timestamps should be UTC and timezone-aware. Serialize them as ISO-8601
strings with timezone offsets (e.g., "+00:00") via iso_now() or isoformat().
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

# "Never" for timestamps that have not been set yet.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def iso_or_none(dt: datetime | None) -> str | None:
    """ISO string for a timestamp, None for missing or never-set (epoch) values."""
    if dt is None or dt == EPOCH:
        return None
    return dt.isoformat()
