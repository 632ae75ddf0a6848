"""Per-day vectors, rolling averages, and peak-bucket detection.

Pure functions over the bucket store.  Nothing here mutates state.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping

from pydantic import BaseModel, Field

from writepulse.core.defaults import DEFAULT_PEAK_COUNT
from writepulse.core.time import bucket_keys, empty_day, format_bucket_label, window_dates
from writepulse.core.types import DayBucketVector
from writepulse.tracker.buckets import BucketStore


class DayView(BaseModel, frozen=True):
    """A bucket vector ready for display, with its peaks and net total."""

    title: str = Field(description="Human-readable heading, e.g. the date or '7-day average'.")
    buckets: dict[str, int] = Field(description="Bucket key -> value, every bucket present.")
    peaks: list[str] = Field(description="12-hour labels of the highest positive buckets.")
    total: int = Field(description="Net sum over all buckets.")


def _round_half_away(numerator: int, denominator: int) -> int:
    """Integer ``round(numerator / denominator)`` with halves away from zero."""
    q = (2 * abs(numerator) + denominator) // (2 * denominator)
    return q if numerator >= 0 else -q


def day_vector(store: BucketStore, day: str) -> DayBucketVector:
    """The bucket vector of *day*; all zeros if nothing was recorded."""
    return store.read(day)


def rolling_average(store: BucketStore, window_days: int, today: date) -> DayBucketVector:
    """Per-bucket mean over the *window_days* calendar days ending *today*.

    Only nonzero values count toward a bucket's mean: a day whose bucket
    is exactly zero is treated the same as a day with no data.  A bucket
    with no nonzero value in the window reports 0.

    Args:
        store: Source of day vectors.
        window_days: Number of calendar days, including *today*.
        today: Last day of the window.

    Returns:
        Day vector of rounded means (halves rounded away from zero).
    """
    sums = empty_day()
    counts = empty_day()
    for day in window_dates(today, window_days):
        if not store.has_day(day):
            continue
        for key, value in store.read(day).items():
            if value != 0:
                sums[key] += value
                counts[key] += 1

    return {
        key: _round_half_away(sums[key], counts[key]) if counts[key] else 0
        for key in bucket_keys()
    }


def peak_buckets(vector: Mapping[str, int], top_n: int = DEFAULT_PEAK_COUNT) -> list[str]:
    """Labels of the *top_n* highest strictly positive buckets.

    Sorted by value descending; ties keep bucket order.  Fewer than
    *top_n* labels come back when fewer buckets are positive.
    """
    positive = [(key, value) for key, value in vector.items() if value > 0]
    positive.sort(key=lambda kv: kv[1], reverse=True)
    return [format_bucket_label(key) for key, _ in positive[:top_n]]


def total_words(vector: Mapping[str, int]) -> int:
    """Net word change across a vector."""
    return sum(vector.values())


def build_day_view(
    title: str,
    vector: Mapping[str, int],
    *,
    top_n: int = DEFAULT_PEAK_COUNT,
) -> DayView:
    """Bundle *vector* with its peaks and total for display."""
    return DayView(
        title=title,
        buckets=dict(vector),
        peaks=peak_buckets(vector, top_n),
        total=total_words(vector),
    )
