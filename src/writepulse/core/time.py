"""Calendar-date keys, time-of-day bucket alignment, and label formatting.

All bucket logic operates on local wall-clock datetimes.  Timezone-aware
inputs are converted to the system local zone first, so a bucket always
reflects the time of day the writer actually saw on the clock.

Date keys are ``YYYY-MM-DD`` strings and bucket keys are ``HH:MM`` strings
naming the bucket start.  The bucket width is fixed by
:data:`~writepulse.core.defaults.BUCKET_MINUTES`.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from pathlib import PurePosixPath
from typing import Final

from writepulse.core.defaults import BUCKET_MINUTES

_FILENAME_DATE_RE: Final[re.Pattern[str]] = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def _to_local(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def align_to_bucket(
    ts: datetime,
    bucket_minutes: int = BUCKET_MINUTES,
) -> datetime:
    """Floor *ts* to the start of its time-of-day bucket.

    Args:
        ts: Timestamp to align.
        bucket_minutes: Bucket width in minutes (default 30).

    Returns:
        A naive local datetime on the same calendar day whose minute of
        day is a multiple of *bucket_minutes*.
    """
    ts = _to_local(ts)
    minute_of_day = ts.hour * 60 + ts.minute
    aligned = (minute_of_day // bucket_minutes) * bucket_minutes
    return ts.replace(hour=aligned // 60, minute=aligned % 60, second=0, microsecond=0)


def bucket_key(ts: datetime, bucket_minutes: int = BUCKET_MINUTES) -> str:
    """Return the ``HH:MM`` key of the bucket containing *ts*."""
    return align_to_bucket(ts, bucket_minutes).strftime("%H:%M")


def bucket_keys(bucket_minutes: int = BUCKET_MINUTES) -> list[str]:
    """Enumerate every bucket key of a day, in time order."""
    return [
        f"{m // 60:02d}:{m % 60:02d}"
        for m in range(0, 24 * 60, bucket_minutes)
    ]


def empty_day(bucket_minutes: int = BUCKET_MINUTES) -> dict[str, int]:
    """A day vector with every bucket present and set to zero."""
    return dict.fromkeys(bucket_keys(bucket_minutes), 0)


def date_key(value: datetime | date) -> str:
    """Format *value* as a ``YYYY-MM-DD`` date key."""
    if isinstance(value, datetime):
        value = _to_local(value).date()
    return value.isoformat()


def window_dates(today: date, days: int) -> list[str]:
    """Date keys for the *days* calendar days ending at *today* (inclusive).

    Uses calendar-day subtraction, so month/year boundaries and DST
    changes never skip or repeat a day.  The newest date comes first.

    Raises:
        ValueError: If *days* is less than 1.
    """
    if days < 1:
        raise ValueError(f"window must cover at least one day, got {days}")
    return [(today - timedelta(days=n)).isoformat() for n in range(days)]


def format_bucket_label(key: str) -> str:
    """Render an ``HH:MM`` bucket key as a 12-hour clock label.

    On-the-hour buckets omit the minutes: ``"00:00" -> "12am"``,
    ``"09:00" -> "9am"``, ``"14:30" -> "2:30pm"``.
    """
    hour_str, minute_str = key.split(":")
    hour, minute = int(hour_str), int(minute_str)
    suffix = "am" if hour < 12 else "pm"
    display_hour = hour % 12 or 12
    if minute == 0:
        return f"{display_hour}{suffix}"
    return f"{display_hour}:{minute:02d}{suffix}"


def date_from_filename(path: str) -> str | None:
    """Extract the leading ``YYYY-MM-DD`` of a file's base name, if any.

    Only the base name without extension is inspected, so a dated
    parent folder never counts.
    """
    match = _FILENAME_DATE_RE.match(PurePosixPath(path).stem)
    return match.group(1) if match else None
