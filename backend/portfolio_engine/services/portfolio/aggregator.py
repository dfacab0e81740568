# backend/portfolio_engine/services/portfolio/aggregator.py
"""
Portfolio Aggregator - rolls position figures up to portfolio level.

Every position is first converted into the portfolio currency, so no
arithmetic below ever mixes currencies. Per-position work is independent
and fans out over a thread pool; results are consumed in input order, so
sums are deterministic regardless of completion order.

Conversion failures are logged with the position they belong to and
re-raised. A missing exchange rate never turns into a zero total.

Usage:
    aggregator = PortfolioAggregator(converter)
    statistics = aggregator.get_portfolio_statistics(
        portfolio_id=1,
        positions=[position_a, position_b],
        portfolio_currency="EUR",
        now=datetime.now(timezone.utc),
    )
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from datetime import datetime
from typing import Callable, Iterable, TypeVar

from portfolio_engine.config import settings
from portfolio_engine.models import (
    AggregationFrequency,
    ChartPoint,
    DateRange,
    PositionPriceData,
    ensure_utc,
    normalize_currency_code,
)
from portfolio_engine.services.aggregation.charts import PositionChartGenerator
from portfolio_engine.services.calculators.irr import calculate_money_weighted_performance
from portfolio_engine.services.calculators.position import calculate_snapshot
from portfolio_engine.services.constants import ZERO
from portfolio_engine.services.currency.converter import CurrencyConverter
from portfolio_engine.services.exceptions import FXRateError
from portfolio_engine.services.portfolio.types import (
    ChartKind,
    PortfolioSnapshot,
    PortfolioStatistics,
    PositionStatistics,
    StatisticsWindow,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")
_R = TypeVar("_R")


class PortfolioAggregator:
    """
    Combines positions into portfolio value, profit, performance,
    statistics and charts.

    Attributes:
        converter: Converter used to normalize positions
        max_workers: Thread pool size for per-position work
    """

    def __init__(
            self,
            converter: CurrencyConverter,
            max_workers: int | None = None,
            chart_generator: PositionChartGenerator | None = None,
    ) -> None:
        self.converter = converter
        self.max_workers = max_workers or settings.max_workers
        self._chart_generator = chart_generator or PositionChartGenerator()

    # =========================================================================
    # CURRENCY NORMALIZATION
    # =========================================================================

    def convert_positions(
            self,
            positions: Iterable[PositionPriceData],
            currency: str,
    ) -> list[PositionPriceData]:
        """
        Convert every position into `currency`, keeping input order.

        Raises:
            FXRateError: The first conversion failure, after logging it
        """
        def convert(data: PositionPriceData) -> PositionPriceData:
            try:
                return self.converter.convert_position_data(data, currency)
            except FXRateError as e:
                logger.error(
                    f"Cannot convert position {data.position_id} from {data.currency} "
                    f"to {currency}: {e}",
                    extra={"position_id": data.position_id},
                )
                raise

        return self._map(convert, positions)

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def aggregate(
            self,
            positions: Iterable[PositionPriceData],
            portfolio_currency: str,
            date_range: DateRange,
            portfolio_id: int | None = None,
    ) -> PortfolioSnapshot:
        """
        Sum position figures over a date range in the portfolio currency.

        Args:
            positions: Positions in their own currencies
            portfolio_currency: Currency of the result
            date_range: Range profit and performance are measured over
            portfolio_id: Identity carried into the result

        Returns:
            PortfolioSnapshot with per-position snapshots in input order
        """
        converted = self.convert_positions(positions, portfolio_currency)
        snapshots = self._map(lambda data: calculate_snapshot(data, date_range), converted)

        return PortfolioSnapshot(
            portfolio_id=portfolio_id,
            currency=normalize_currency_code(portfolio_currency),
            value=sum((s.value for s in snapshots), ZERO),
            profit=sum((s.profit for s in snapshots), ZERO),
            performance=calculate_money_weighted_performance(converted, date_range),
            positions=tuple(snapshots),
        )

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_position_statistics(
            self,
            data: PositionPriceData,
            now: datetime,
    ) -> PositionStatistics:
        """
        Calculate one position's profit and performance over the four
        fixed windows ending at `now`, plus its break-even point.

        Figures are in data.currency.
        """
        now = ensure_utc(now)
        snapshots = {
            window: calculate_snapshot(data, DateRange(window.start(now), now))
            for window in StatisticsWindow
        }

        return PositionStatistics(
            entity_id=data.position_id,
            currency=data.currency,
            total_profit=snapshots[StatisticsWindow.TOTAL].profit,
            last_month_profit=snapshots[StatisticsWindow.LAST_MONTH].profit,
            last_week_profit=snapshots[StatisticsWindow.LAST_WEEK].profit,
            last_day_profit=snapshots[StatisticsWindow.LAST_DAY].profit,
            total_performance=snapshots[StatisticsWindow.TOTAL].performance,
            last_month_performance=snapshots[StatisticsWindow.LAST_MONTH].performance,
            last_week_performance=snapshots[StatisticsWindow.LAST_WEEK].performance,
            last_day_performance=snapshots[StatisticsWindow.LAST_DAY].performance,
            break_even_point=snapshots[StatisticsWindow.TOTAL].break_even_point,
        )

    def get_portfolio_statistics(
            self,
            portfolio_id: int,
            positions: Iterable[PositionPriceData],
            portfolio_currency: str,
            now: datetime,
    ) -> PortfolioStatistics:
        """
        Calculate dashboard statistics of a portfolio and its positions.

        Steps:
            1. Convert every position into the portfolio currency
            2. Per position (concurrently): statistics over the 4 windows
            3. Portfolio profit per window = Σ position profits
            4. Portfolio performance per window = money-weighted return
               of all positions' pooled cash flows

        Args:
            portfolio_id: Portfolio identity
            positions: Positions in their own currencies
            portfolio_currency: Currency of every figure in the result
            now: End of all windows

        Returns:
            PortfolioStatistics; position statistics are in input order
            and in the portfolio currency

        Raises:
            FXRateError: A position could not be converted
        """
        now = ensure_utc(now)
        converted = self.convert_positions(positions, portfolio_currency)
        position_statistics = self._map(
            lambda data: self.get_position_statistics(data, now), converted
        )

        profits = {
            window: sum((s.profit_for(window) for s in position_statistics), ZERO)
            for window in StatisticsWindow
        }
        performances = {
            window: calculate_money_weighted_performance(converted, DateRange(window.start(now), now))
            for window in StatisticsWindow
        }

        logger.info(
            f"Statistics computed for portfolio {portfolio_id}: "
            f"{len(position_statistics)} positions in {normalize_currency_code(portfolio_currency)}",
            extra={"portfolio_id": portfolio_id},
        )

        return PortfolioStatistics(
            entity_id=portfolio_id,
            currency=normalize_currency_code(portfolio_currency),
            total_profit=profits[StatisticsWindow.TOTAL],
            last_month_profit=profits[StatisticsWindow.LAST_MONTH],
            last_week_profit=profits[StatisticsWindow.LAST_WEEK],
            last_day_profit=profits[StatisticsWindow.LAST_DAY],
            total_performance=performances[StatisticsWindow.TOTAL],
            last_month_performance=performances[StatisticsWindow.LAST_MONTH],
            last_week_performance=performances[StatisticsWindow.LAST_WEEK],
            last_day_performance=performances[StatisticsWindow.LAST_DAY],
            positions=tuple(position_statistics),
        )

    # =========================================================================
    # CHARTS
    # =========================================================================

    def chart_portfolio(
            self,
            positions: Iterable[PositionPriceData],
            portfolio_currency: str,
            date_range: DateRange,
            frequency: AggregationFrequency,
            kind: ChartKind,
    ) -> list[ChartPoint]:
        """Chart the combined line of all positions in the portfolio currency."""
        converted = self.convert_positions(positions, portfolio_currency)
        chart = {
            ChartKind.VALUE: self._chart_generator.chart_value,
            ChartKind.PROFIT: self._chart_generator.chart_profit,
            ChartKind.PERFORMANCE: self._chart_generator.chart_performance,
            ChartKind.AGGREGATED_PROFIT: self._chart_generator.chart_aggregated_profit,
            ChartKind.AGGREGATED_PERFORMANCE: self._chart_generator.chart_aggregated_performance,
        }[kind]
        return chart(converted, date_range, frequency)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _map(self, fn: Callable[[_T], _R], items: Iterable[_T]) -> list[_R]:
        """
        Apply `fn` to every item on the thread pool, results in input order.

        Each task runs in a copy of the caller's context so the
        correlation ID reaches worker-thread log records.
        """
        items = list(items)
        if len(items) <= 1:
            return [fn(item) for item in items]

        contexts = [copy_context() for _ in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda ctx, item: ctx.run(fn, item), contexts, items))
