# backend/portfolio_engine/services/aggregation/ranges.py
"""
Bucketing of a date range by aggregation frequency.

Buckets partition [from, to] exactly: the first starts at `from`, each
next one starts where the previous ended, and the last one is clipped to
`to`. Interior boundaries are calendar aligned, so the first and last
bucket may be shorter than the nominal width.

Example (DAY):
    [2022-01-01 10:00, 2022-01-03 06:00] ->
        [2022-01-01 10:00, 2022-01-02 00:00]
        [2022-01-02 00:00, 2022-01-03 00:00]
        [2022-01-03 00:00, 2022-01-03 06:00]
"""

from datetime import timedelta

from portfolio_engine.models import AggregationFrequency, DateRange
from portfolio_engine.services.constants import (
    DAILY_RANGE_LIMIT,
    FIVE_MINUTE_RANGE_LIMIT,
    HOURLY_RANGE_LIMIT,
    MONTHLY_RANGE_LIMIT,
    WEEKLY_RANGE_LIMIT,
    YEARLY_RANGE_LIMIT,
)
from portfolio_engine.utils.date_utils import next_bucket_boundary


RANGE_LIMITS: dict[AggregationFrequency, timedelta] = {
    AggregationFrequency.FIVE_MINUTES: FIVE_MINUTE_RANGE_LIMIT,
    AggregationFrequency.HOUR: HOURLY_RANGE_LIMIT,
    AggregationFrequency.DAY: DAILY_RANGE_LIMIT,
    AggregationFrequency.WEEK: WEEKLY_RANGE_LIMIT,
    AggregationFrequency.MONTH: MONTHLY_RANGE_LIMIT,
    AggregationFrequency.YEAR: YEARLY_RANGE_LIMIT,
}


def get_aggregated_ranges(
        date_range: DateRange,
        frequency: AggregationFrequency,
) -> list[DateRange]:
    """
    Split a date range into consecutive calendar-aligned buckets.

    Args:
        date_range: Range to partition
        frequency: Bucket width

    Returns:
        Buckets in chronological order. An empty range (from == to)
        yields no buckets.
    """
    ranges: list[DateRange] = []
    current = date_range.from_time

    while current < date_range.to_time:
        end = min(next_bucket_boundary(current, frequency), date_range.to_time)
        ranges.append(DateRange(current, end))
        current = end

    return ranges


def limit_range_for_frequency(
        date_range: DateRange,
        frequency: AggregationFrequency,
) -> DateRange:
    """
    Move the range start forward so the range does not exceed the maximum
    span charted at this frequency.

    Example:
        A 1-year range at FIVE_MINUTES becomes the last 14 days.
    """
    limit = RANGE_LIMITS[frequency]
    if date_range.length <= limit:
        return date_range
    return date_range.with_start(date_range.to_time - limit)
