# backend/portfolio_engine/utils/date_utils.py
"""
Date utility functions for the analytics engine.

Calendar arithmetic shared by the time-series aggregator and the
statistics windows. All functions take and return aware UTC datetimes.

Usage:
    from portfolio_engine.utils.date_utils import add_months, next_bucket_boundary

    month_ago = add_months(now, -1)
"""

import calendar
from datetime import datetime, timedelta

from portfolio_engine.models import AggregationFrequency


def round_down_to_minutes(value: datetime, minutes: int) -> datetime:
    """
    Truncate a datetime to a multiple of `minutes` within its hour.

    Example:
        >>> round_down_to_minutes(datetime(2022, 1, 1, 10, 7, 30), 5)
        datetime(2022, 1, 1, 10, 5)
    """
    return value.replace(minute=value.minute - value.minute % minutes, second=0, microsecond=0)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def sunday_based_weekday(value: datetime) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return (value.weekday() + 1) % 7


def add_months(value: datetime, months: int) -> datetime:
    """
    Add (or subtract) calendar months, clamping the day to the month end.

    Example:
        >>> add_months(datetime(2022, 3, 31), -1)
        datetime(2022, 2, 28)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_bucket_boundary(value: datetime, frequency: AggregationFrequency) -> datetime:
    """
    Get the first calendar-aligned bucket boundary strictly after `value`.

    Boundaries:
        FIVE_MINUTES - next multiple of 5 minutes
        HOUR         - next full hour
        DAY          - next midnight
        WEEK         - next Sunday midnight
        MONTH        - first day of the next month
        YEAR         - January 1st of the next year

    Args:
        value: Current bucket start
        frequency: Aggregation frequency

    Returns:
        Start of the next bucket
    """
    if frequency == AggregationFrequency.FIVE_MINUTES:
        return round_down_to_minutes(value, 5) + timedelta(minutes=5)
    if frequency == AggregationFrequency.HOUR:
        return value.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    if frequency == AggregationFrequency.DAY:
        return start_of_day(value) + timedelta(days=1)
    if frequency == AggregationFrequency.WEEK:
        return start_of_day(value) + timedelta(days=7 - sunday_based_weekday(value))
    if frequency == AggregationFrequency.MONTH:
        return add_months(start_of_day(value).replace(day=1), 1)
    if frequency == AggregationFrequency.YEAR:
        return start_of_day(value).replace(year=value.year + 1, month=1, day=1)
    raise ValueError(f"Unsupported aggregation frequency: {frequency!r}")
