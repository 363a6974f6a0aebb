"""
Timezone-aware date and time helpers.

MongoDB returns naive datetimes unless the client is created with
``tz_aware=True``; every comparison in the auth flow goes through
``ensure_utc`` so naive values are treated as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_until(moment: datetime, now: datetime) -> int:
    """Whole seconds from *now* until *moment*, never negative (rounded up)."""
    delta = (ensure_utc(moment) - ensure_utc(now)).total_seconds()
    if delta <= 0:
        return 0
    whole = int(delta)
    return whole if whole == delta else whole + 1
