"""Accumulate-only bucket store over ``TrackingState.daily_data``."""

from __future__ import annotations

from writepulse.core.time import bucket_keys, empty_day
from writepulse.core.types import DayBucketVector


class BucketStore:
    """Mapping ``(date, bucket) -> signed int`` backed by a plain dict.

    The store mutates the dict it was given in place, so the owning
    :class:`~writepulse.core.types.TrackingState` always sees the latest
    values.  Day vectors are created lazily on the first delta for that
    day and are never created by reads.

    Args:
        days: The ``daily_data`` mapping to operate on.
    """

    def __init__(self, days: dict[str, DayBucketVector]) -> None:
        self._days = days
        self._keys = frozenset(bucket_keys())

    def accumulate(self, date: str, bucket: str, delta: int) -> int:
        """Add *delta* to ``(date, bucket)`` and return the new value.

        Raises:
            ValueError: If *bucket* is not a configured bucket key.
        """
        if bucket not in self._keys:
            raise ValueError(f"Unknown bucket key {bucket!r}")
        day = self._days.get(date)
        if day is None:
            day = self._days[date] = empty_day()
        day[bucket] += delta
        return day[bucket]

    def read(self, date: str) -> DayBucketVector:
        """Return a copy of the day vector, or an all-zero vector if absent."""
        day = self._days.get(date)
        return dict(day) if day is not None else empty_day()

    def has_day(self, date: str) -> bool:
        return date in self._days

    def has_any_data(self) -> bool:
        return bool(self._days)

    def has_nonzero(self, date: str) -> bool:
        """True if any bucket of *date* holds a nonzero value."""
        day = self._days.get(date)
        return day is not None and any(v != 0 for v in day.values())

    def clear(self) -> None:
        self._days.clear()
