"""
Compact relative-age labels ("45s", "5m", "3h", "3d", "2mo", "1y").
"""
from datetime import datetime, timezone
from typing import Optional

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
MONTH = 30 * DAY
YEAR = 365 * DAY

_UNITS = (
    (YEAR, "y"),
    (MONTH, "mo"),
    (DAY, "d"),
    (HOUR, "h"),
    (MINUTE, "m"),
)


def as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def age_label(moment: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now) if now else datetime.now(timezone.utc)
    seconds = max(0, int((now - as_utc(moment)).total_seconds()))
    for size, suffix in _UNITS:
        if seconds >= size:
            return f"{seconds // size}{suffix}"
    return f"{seconds}s"
