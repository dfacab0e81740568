# backend/portfolio_engine/services/aggregation/aggregator.py
"""
Lazy evaluation of a per-bucket calculation over a date range.

The caller supplies the calculation as a plain function of a DateRange;
the aggregator decides which ranges it is called with and in what order.
Buckets are evaluated strictly in chronological order, one fully before
the next, and only as the resulting iterator is consumed.
"""

import logging
from datetime import datetime
from typing import Callable, Iterator

from portfolio_engine.models import AggregationFrequency, ChartPoint, DateRange
from portfolio_engine.services.aggregation.ranges import get_aggregated_ranges

logger = logging.getLogger(__name__)

# Computes one chart point for one bucket, or None to omit the bucket
BucketFunction = Callable[[DateRange], ChartPoint | None]


class TimeSeriesAggregator:
    """
    Builds chart series by applying a bucket function to every bucket.

    Stateless: one instance can serve any number of aggregations.

    Example:
        aggregator = TimeSeriesAggregator()
        points = aggregator.aggregate_calculations(
            date_range=DateRange(start, end),
            frequency=AggregationFrequency.DAY,
            bucket_fn=lambda r: ChartPoint(r.to_time, profit_over(r)),
        )
        for point in points:  # buckets are computed here, one by one
            ...
    """

    def aggregate_calculations(
            self,
            date_range: DateRange,
            frequency: AggregationFrequency,
            bucket_fn: BucketFunction,
            data_start: datetime | None = None,
    ) -> Iterator[ChartPoint]:
        """
        Evaluate `bucket_fn` over every bucket of `date_range`.

        Args:
            date_range: Requested range
            frequency: Bucket width
            bucket_fn: Calculation for one bucket; returning None omits it
            data_start: First instant with data (first transaction or price).
                        The range start is clamped forward to it; a range
                        entirely before it yields nothing.

        Yields:
            One ChartPoint per bucket that produced one, in bucket order
        """
        effective = date_range.clamp_start(data_start)
        if effective is None:
            logger.debug(
                f"Range ending {date_range.to_time.isoformat()} lies before first data "
                f"at {data_start.isoformat() if data_start else None}, nothing to aggregate"
            )
            return

        for bucket in get_aggregated_ranges(effective, frequency):
            point = bucket_fn(bucket)
            if point is None:
                continue
            yield point
