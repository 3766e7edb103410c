"""Display formatting for archive sizes, timestamps and ages.

Key conversions:
1. Byte counts → "512 B", "1.5 MB", "2.25 GB" (1024-based units)
2. Timestamps → "YYYY-MM-DD HH:MM:SS"
3. Elapsed time → relative phrases like "3 hours ago"
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_BACKUPS_TEXT = "No backups present"

# (unit, seconds per unit), largest first
_AGE_UNITS = [
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("week", 7 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
]


def human_readable_size(size_in_bytes: float) -> str:
    """Format a byte count with 1024-based units.

    Zero is reported as "0 KB". Values are rounded to two decimals and
    trailing zeros are dropped ("1 KB", "1.5 MB").
    """
    size = float(size_in_bytes)
    if size == 0:
        return f"0 {SIZE_UNITS[1]}"

    index = 0
    while size > 1024 and index < len(SIZE_UNITS) - 1:
        size /= 1024
        index += 1
    return f"{round(size, 2):g} {SIZE_UNITS[index]}"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as YYYY-MM-DD HH:MM:SS."""
    return value.strftime(TIMESTAMP_FORMAT)


def format_age(created_at: datetime, now: Optional[datetime] = None) -> str:
    """Describe how long ago ``created_at`` was, e.g. "2 days ago".

    Naive datetimes are treated as UTC.
    """
    now = now or datetime.now(timezone.utc)
    elapsed = _as_utc(now) - _as_utc(created_at)
    return f"{_format_elapsed(elapsed)} ago"


def _format_elapsed(elapsed: timedelta) -> str:
    seconds = max(1, int(elapsed.total_seconds()))
    for unit, unit_seconds in _AGE_UNITS:
        count = seconds // unit_seconds
        if count >= 1:
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
