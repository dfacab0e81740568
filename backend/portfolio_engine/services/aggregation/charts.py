# backend/portfolio_engine/services/aggregation/charts.py
"""
Chart series generators.

Each chart kind is a bucket function handed to TimeSeriesAggregator.
What differs between kinds is how a bucket is measured and whether the
series starts with a baseline point:

    kind                    measured over            first point
    ----------------------  -----------------------  ---------------------
    value / price           instant at bucket end    real value at start
    profit / performance    chart start..bucket end  synthetic 0 at start
    aggregated profit/perf  bucket start..bucket end none

Profit and performance are relative to the chart start, so they begin at
zero by definition. Value and price are absolute, so their first point is
evaluated like any other.

Ranges are first limited to the maximum span of the frequency, then
clamped forward to the first transaction (positions) or first price
(instruments). Buckets in which no position has both a transaction and a
price are omitted, as are buckets whose performance is undefined.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable

from portfolio_engine.models import (
    AggregationFrequency,
    ChartPoint,
    DateRange,
    PositionPriceData,
    PriceHistory,
)
from portfolio_engine.services.aggregation.aggregator import TimeSeriesAggregator
from portfolio_engine.services.aggregation.ranges import limit_range_for_frequency
from portfolio_engine.services.calculators.instrument import (
    calculate_price_performance,
    calculate_price_profit,
    get_range_prices,
)
from portfolio_engine.services.calculators.irr import calculate_money_weighted_performance
from portfolio_engine.services.calculators.position import calculate_profit, calculate_value
from portfolio_engine.services.constants import ZERO
from portfolio_engine.services.currency.converter import CurrencyConverter

logger = logging.getLogger(__name__)


def _has_data_at(data: PositionPriceData, time: datetime) -> bool:
    """A position takes part in a bucket once it has a transaction and a price."""
    return (
        data.first_transaction_time is not None
        and data.first_transaction_time <= time
        and data.prices.price_at(time) is not None
    )


# =============================================================================
# POSITION / PORTFOLIO CHARTS
# =============================================================================

class PositionChartGenerator:
    """
    Generates value, profit and performance series for one or more positions.

    Passing several positions produces the combined line of a portfolio;
    they must all be expressed in the same currency (see
    PortfolioAggregator, which converts them first).

    Example:
        generator = PositionChartGenerator()
        points = generator.chart_profit(
            [position_data],
            DateRange(datetime(2022, 1, 1), datetime(2022, 12, 31)),
            AggregationFrequency.MONTH,
        )
    """

    def __init__(self, aggregator: TimeSeriesAggregator | None = None) -> None:
        self._aggregator = aggregator or TimeSeriesAggregator()

    def chart_value(
            self,
            positions: Iterable[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Holding value at every bucket end, starting with the value at the chart start."""
        positions = list(positions)

        def bucket_value(bucket: DateRange) -> ChartPoint | None:
            active = [p for p in positions if _has_data_at(p, bucket.to_time)]
            if not active:
                return None
            value = sum(
                (
                    calculate_value(p.transactions, p.prices.price_at(bucket.to_time), bucket.to_time)
                    for p in active
                ),
                ZERO,
            )
            return ChartPoint(bucket.to_time, value)

        return self._build(positions, date_range, frequency, bucket_value, baseline=None)

    def chart_profit(
            self,
            positions: Iterable[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Cumulative profit from the chart start to every bucket end."""
        positions = list(positions)
        return self._build_cumulative(positions, date_range, frequency, self._profit_between)

    def chart_performance(
            self,
            positions: Iterable[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Cumulative money-weighted performance from the chart start to every bucket end."""
        positions = list(positions)
        return self._build_cumulative(positions, date_range, frequency, self._performance_between)

    def chart_aggregated_profit(
            self,
            positions: Iterable[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Profit made within each bucket."""
        positions = list(positions)

        def bucket_profit(bucket: DateRange) -> ChartPoint | None:
            return self._profit_between(positions, bucket)

        return self._build(positions, date_range, frequency, bucket_profit, baseline=False)

    def chart_aggregated_performance(
            self,
            positions: Iterable[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Money-weighted performance within each bucket."""
        positions = list(positions)

        def bucket_performance(bucket: DateRange) -> ChartPoint | None:
            return self._performance_between(positions, bucket)

        return self._build(positions, date_range, frequency, bucket_performance, baseline=False)

    # =========================================================================
    # BUCKET MEASURES
    # =========================================================================

    @staticmethod
    def _profit_between(
            positions: list[PositionPriceData],
            measured: DateRange,
    ) -> ChartPoint | None:
        active = [p for p in positions if _has_data_at(p, measured.to_time)]
        if not active:
            return None

        total = ZERO
        for data in active:
            profit_range = measured.with_start(data.valuation_start(measured))
            total += calculate_profit(
                data.transactions,
                data.prices.price_at(profit_range.from_time),
                data.prices.price_at(measured.to_time),
                profit_range,
            )
        return ChartPoint(measured.to_time, total)

    @staticmethod
    def _performance_between(
            positions: list[PositionPriceData],
            measured: DateRange,
    ) -> ChartPoint | None:
        active = [p for p in positions if _has_data_at(p, measured.to_time)]
        if not active:
            return None

        performance = calculate_money_weighted_performance(active, measured)
        if performance is None:
            return None
        return ChartPoint(measured.to_time, performance)

    # =========================================================================
    # SERIES ASSEMBLY
    # =========================================================================

    def _build_cumulative(
            self,
            positions: list[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
            measure: Callable[[list[PositionPriceData], DateRange], ChartPoint | None],
    ) -> list[ChartPoint]:
        chart_start = self._chart_range(positions, date_range, frequency)
        if chart_start is None:
            return []

        def bucket_cumulative(bucket: DateRange) -> ChartPoint | None:
            return measure(positions, bucket.with_start(chart_start.from_time))

        return self._build(positions, date_range, frequency, bucket_cumulative, baseline=True)

    def _build(
            self,
            positions: list[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
            bucket_fn: Callable[[DateRange], ChartPoint | None],
            baseline: bool | None,
    ) -> list[ChartPoint]:
        """
        Run the aggregation and add the first point.

        Args:
            baseline: True for a synthetic zero at the chart start,
                      None to evaluate bucket_fn at the chart start,
                      False for no first point
        """
        chart_range = self._chart_range(positions, date_range, frequency)
        if chart_range is None:
            return []

        points: list[ChartPoint] = []
        if baseline is True:
            points.append(ChartPoint(chart_range.from_time, ZERO))
        elif baseline is None:
            start_point = bucket_fn(DateRange(chart_range.from_time, chart_range.from_time))
            if start_point is not None:
                points.append(start_point)

        points.extend(self._aggregator.aggregate_calculations(
            limit_range_for_frequency(date_range, frequency),
            frequency,
            bucket_fn,
            data_start=chart_range.from_time,
        ))

        logger.debug(
            f"Generated {len(points)} chart points for {len(positions)} positions "
            f"at {frequency.value} frequency"
        )
        return points

    @staticmethod
    def _chart_range(
            positions: list[PositionPriceData],
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> DateRange | None:
        first_times = [p.first_transaction_time for p in positions if p.first_transaction_time]
        if not first_times:
            return None
        limited = limit_range_for_frequency(date_range, frequency)
        return limited.clamp_start(min(first_times))


# =============================================================================
# INSTRUMENT CHARTS
# =============================================================================

class InstrumentChartGenerator:
    """
    Generates price, profit and performance series of an instrument.

    Money series (prices, profit) can be converted into another currency
    when a CurrencyConverter is supplied; performance is unitless and
    never converted.

    Example:
        generator = InstrumentChartGenerator(converter)
        points = generator.chart_prices(
            history, "EUR", date_range, AggregationFrequency.DAY, target_currency="USD"
        )
    """

    def __init__(
            self,
            converter: CurrencyConverter | None = None,
            aggregator: TimeSeriesAggregator | None = None,
    ) -> None:
        self._converter = converter
        self._aggregator = aggregator or TimeSeriesAggregator()

    def chart_prices(
            self,
            prices: PriceHistory,
            currency: str,
            date_range: DateRange,
            frequency: AggregationFrequency,
            target_currency: str | None = None,
    ) -> list[ChartPoint]:
        """Price in effect at every bucket end, starting with the price at the chart start."""

        def bucket_price(bucket: DateRange) -> ChartPoint | None:
            price = prices.price_at(bucket.to_time)
            if price is None:
                return None
            return ChartPoint(bucket.to_time, price)

        points = self._build(prices, date_range, frequency, bucket_price, baseline=None)
        if target_currency is None:
            return points
        return self._require_converter().convert_series(points, currency, target_currency)

    def chart_profit(
            self,
            prices: PriceHistory,
            currency: str,
            date_range: DateRange,
            frequency: AggregationFrequency,
            target_currency: str | None = None,
    ) -> list[ChartPoint]:
        """Cumulative profit of one unit from the chart start to every bucket end."""
        points = self._build_cumulative(prices, date_range, frequency, calculate_price_profit)
        return self._convert_points(points, currency, target_currency)

    def chart_performance(
            self,
            prices: PriceHistory,
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Cumulative performance of one unit from the chart start to every bucket end."""
        return self._build_cumulative(prices, date_range, frequency, calculate_price_performance)

    def chart_aggregated_profit(
            self,
            prices: PriceHistory,
            currency: str,
            date_range: DateRange,
            frequency: AggregationFrequency,
            target_currency: str | None = None,
    ) -> list[ChartPoint]:
        """Profit of one unit within each bucket."""
        points = self._build(
            prices, date_range, frequency,
            self._measure(prices, calculate_price_profit),
            baseline=False,
        )
        return self._convert_points(points, currency, target_currency)

    def chart_aggregated_performance(
            self,
            prices: PriceHistory,
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> list[ChartPoint]:
        """Performance of one unit within each bucket."""
        return self._build(
            prices, date_range, frequency,
            self._measure(prices, calculate_price_performance),
            baseline=False,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _measure(
            prices: PriceHistory,
            formula: Callable[[Decimal, Decimal], Decimal],
    ) -> Callable[[DateRange], ChartPoint | None]:
        def bucket_fn(measured: DateRange) -> ChartPoint | None:
            range_prices = get_range_prices(prices, measured)
            if range_prices is None:
                return None
            return ChartPoint(measured.to_time, formula(*range_prices))
        return bucket_fn

    def _build_cumulative(
            self,
            prices: PriceHistory,
            date_range: DateRange,
            frequency: AggregationFrequency,
            formula: Callable[[Decimal, Decimal], Decimal],
    ) -> list[ChartPoint]:
        chart_range = self._chart_range(prices, date_range, frequency)
        if chart_range is None:
            return []

        measure = self._measure(prices, formula)

        def bucket_cumulative(bucket: DateRange) -> ChartPoint | None:
            return measure(bucket.with_start(chart_range.from_time))

        return self._build(prices, date_range, frequency, bucket_cumulative, baseline=True)

    def _build(
            self,
            prices: PriceHistory,
            date_range: DateRange,
            frequency: AggregationFrequency,
            bucket_fn: Callable[[DateRange], ChartPoint | None],
            baseline: bool | None,
    ) -> list[ChartPoint]:
        chart_range = self._chart_range(prices, date_range, frequency)
        if chart_range is None:
            return []

        points: list[ChartPoint] = []
        if baseline is True:
            points.append(ChartPoint(chart_range.from_time, ZERO))
        elif baseline is None:
            start_point = bucket_fn(DateRange(chart_range.from_time, chart_range.from_time))
            if start_point is not None:
                points.append(start_point)

        points.extend(self._aggregator.aggregate_calculations(
            limit_range_for_frequency(date_range, frequency),
            frequency,
            bucket_fn,
            data_start=chart_range.from_time,
        ))
        return points

    @staticmethod
    def _chart_range(
            prices: PriceHistory,
            date_range: DateRange,
            frequency: AggregationFrequency,
    ) -> DateRange | None:
        if prices.first_time is None:
            return None
        return limit_range_for_frequency(date_range, frequency).clamp_start(prices.first_time)

    def _convert_points(
            self,
            points: list[ChartPoint],
            currency: str,
            target_currency: str | None,
    ) -> list[ChartPoint]:
        if target_currency is None:
            return points
        converter = self._require_converter()
        return [converter.convert_chart_point(currency, target_currency, p) for p in points]

    def _require_converter(self) -> CurrencyConverter:
        if self._converter is None:
            raise ValueError("A CurrencyConverter is required to chart in another currency")
        return self._converter
