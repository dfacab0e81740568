# backend/portfolio_engine/services/aggregation/__init__.py
"""
Time-series aggregation package.

Usage:
    from portfolio_engine.services.aggregation import (
        TimeSeriesAggregator,
        PositionChartGenerator,
        get_aggregated_ranges,
    )

    buckets = get_aggregated_ranges(date_range, AggregationFrequency.WEEK)

Architecture:
    aggregation/
    ├── __init__.py       # This file - package exports
    ├── ranges.py         # Calendar-aligned buckets, per-frequency range limits
    ├── aggregator.py     # TimeSeriesAggregator (lazy per-bucket evaluation)
    └── charts.py         # Position/portfolio and instrument chart generators
"""

from portfolio_engine.services.aggregation.ranges import (
    RANGE_LIMITS,
    get_aggregated_ranges,
    limit_range_for_frequency,
)
from portfolio_engine.services.aggregation.aggregator import BucketFunction, TimeSeriesAggregator
from portfolio_engine.services.aggregation.charts import (
    InstrumentChartGenerator,
    PositionChartGenerator,
)

__all__ = [
    "RANGE_LIMITS",
    "get_aggregated_ranges",
    "limit_range_for_frequency",
    "BucketFunction",
    "TimeSeriesAggregator",
    "InstrumentChartGenerator",
    "PositionChartGenerator",
]
