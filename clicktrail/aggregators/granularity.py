"""Re-aggregation of hourly click buckets into coarser time buckets."""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from clicktrail.schemas.analytics import Granularity, TimeBucket

HOURS_PER_DAY = 24
DAY_MAX_HOURS = 30 * HOURS_PER_DAY
WEEK_MAX_HOURS = 180 * HOURS_PER_DAY


def select_granularity(bucket_count: int) -> Granularity:
    """Pick a granularity from the number of hourly buckets a range spans.

    <= 24 buckets -> hour, <= 30 days -> day, <= 180 days -> week, else month.
    """
    if bucket_count <= HOURS_PER_DAY:
        return Granularity.HOUR
    if bucket_count <= DAY_MAX_HOURS:
        return Granularity.DAY
    if bucket_count <= WEEK_MAX_HOURS:
        return Granularity.WEEK
    return Granularity.MONTH


def hours_in_range(start: datetime, end: datetime) -> int:
    """Number of hourly buckets between two instants (partial hours count)."""
    return max(0, math.ceil((end - start).total_seconds() / 3600))


def bucket_start(timestamp: datetime, granularity: Granularity) -> datetime:
    """Floor a timestamp to the start of its bucket. Weeks start on Sunday."""
    hour = timestamp.replace(minute=0, second=0, microsecond=0)
    if granularity == Granularity.HOUR:
        return hour
    midnight = hour.replace(hour=0)
    if granularity == Granularity.DAY:
        return midnight
    if granularity == Granularity.WEEK:
        days_since_sunday = (midnight.weekday() + 1) % 7
        return midnight - timedelta(days=days_since_sunday)
    return midnight.replace(day=1)


def bucket_key(start: datetime, granularity: Granularity) -> str:
    if granularity == Granularity.HOUR:
        return start.strftime("%Y-%m-%d %H:00")
    if granularity == Granularity.MONTH:
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")


def rebucket(
    points: Iterable[Mapping[str, Any]],
    granularity: Granularity,
) -> list[TimeBucket]:
    """Sum hourly ``{"timestamp", "clicks"}`` rows into ``granularity`` buckets.

    Hourly input passes through one to one. Coarser output is sorted by
    bucket start.
    """
    if granularity == Granularity.HOUR:
        return [
            TimeBucket(
                timestamp=point["timestamp"],
                bucket=bucket_key(point["timestamp"], granularity),
                clicks=int(point["clicks"]),
            )
            for point in points
        ]

    totals: dict[datetime, int] = {}
    for point in points:
        start = bucket_start(point["timestamp"], granularity)
        totals[start] = totals.get(start, 0) + int(point["clicks"])

    return [
        TimeBucket(timestamp=start, bucket=bucket_key(start, granularity), clicks=clicks)
        for start, clicks in sorted(totals.items())
    ]


def auto_rebucket(
    points: list[Mapping[str, Any]],
    start: datetime | None = None,
    end: datetime | None = None,
    granularity: Granularity | None = None,
) -> tuple[Granularity, list[TimeBucket]]:
    """Re-aggregate with a pinned granularity, or choose one automatically.

    With both range bounds the bucket count is the hours spanned; otherwise
    it is the number of hourly rows.
    """
    if granularity is None:
        if start is not None and end is not None:
            bucket_count = hours_in_range(start, end)
        else:
            bucket_count = len(points)
        granularity = select_granularity(bucket_count)
    return granularity, rebucket(points, granularity)
