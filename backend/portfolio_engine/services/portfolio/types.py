# backend/portfolio_engine/services/portfolio/types.py
"""
Data types for portfolio aggregation.

Architecture:
    - StatisticsWindow: The four fixed dashboard windows
    - ChartKind: Series a portfolio chart can show
    - EntityStatistics: Profit/performance per window
    - PositionStatistics: EntityStatistics + break-even point
    - PortfolioStatistics: EntityStatistics + per-position statistics
    - PortfolioSnapshot: Summed figures over one range
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from portfolio_engine.services.calculators.types import PositionSnapshot
from portfolio_engine.services.constants import (
    EARLIEST_SUPPORTED_TIME,
    STATISTICS_DAY_WINDOW,
    STATISTICS_MONTH_WINDOW_MONTHS,
    STATISTICS_WEEK_WINDOW,
)
from portfolio_engine.utils.date_utils import add_months


class StatisticsWindow(str, Enum):
    """
    Lookback windows of the dashboard statistics.

    Attributes:
        TOTAL: Since the beginning of the data
        LAST_MONTH: Since the same instant one calendar month ago
        LAST_WEEK: The last 7 days
        LAST_DAY: The last 24 hours
    """
    TOTAL = "total"
    LAST_MONTH = "last_month"
    LAST_WEEK = "last_week"
    LAST_DAY = "last_day"

    def start(self, now: datetime) -> datetime:
        """Start of this window for a given "now"."""
        if self is StatisticsWindow.TOTAL:
            return EARLIEST_SUPPORTED_TIME
        if self is StatisticsWindow.LAST_MONTH:
            return add_months(now, -STATISTICS_MONTH_WINDOW_MONTHS)
        if self is StatisticsWindow.LAST_WEEK:
            return now - STATISTICS_WEEK_WINDOW
        return now - STATISTICS_DAY_WINDOW


class ChartKind(str, Enum):
    """Series a portfolio chart can show."""
    VALUE = "value"
    PROFIT = "profit"
    PERFORMANCE = "performance"
    AGGREGATED_PROFIT = "aggregated_profit"
    AGGREGATED_PERFORMANCE = "aggregated_performance"


# =============================================================================
# STATISTICS
# =============================================================================

@dataclass(frozen=True)
class EntityStatistics:
    """
    Profit and performance of an entity over the four fixed windows.

    Performance values are None when undefined for that window.

    Attributes:
        entity_id: Position or portfolio identity
        currency: Currency of the profit figures
    """
    entity_id: int
    currency: str
    total_profit: Decimal
    last_month_profit: Decimal
    last_week_profit: Decimal
    last_day_profit: Decimal
    total_performance: Decimal | None
    last_month_performance: Decimal | None
    last_week_performance: Decimal | None
    last_day_performance: Decimal | None

    def profit_for(self, window: StatisticsWindow) -> Decimal:
        return getattr(self, f"{window.value}_profit")

    def performance_for(self, window: StatisticsWindow) -> Decimal | None:
        return getattr(self, f"{window.value}_performance")


@dataclass(frozen=True)
class PositionStatistics(EntityStatistics):
    """
    Statistics of one position.

    Attributes:
        break_even_point: Average cost per unit held at "now"
    """
    break_even_point: Decimal = Decimal("0")


@dataclass(frozen=True)
class PortfolioStatistics(EntityStatistics):
    """
    Statistics of a portfolio, with its positions' statistics in input order.

    Portfolio profit is the sum of position profits. Portfolio performance
    is the money-weighted return of all positions' pooled cash flows, not
    a sum or average of position performances.
    """
    positions: tuple[PositionStatistics, ...] = field(default_factory=tuple)


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Portfolio figures over one date range, in the portfolio currency.

    Attributes:
        portfolio_id: Portfolio identity, if known
        currency: Portfolio currency
        value: Summed position values at the range end
        profit: Summed position profits over the range
        performance: Money-weighted return of the pooled flows, or None
        positions: Per-position snapshots, in input order
    """
    portfolio_id: int | None
    currency: str
    value: Decimal
    profit: Decimal
    performance: Decimal | None
    positions: tuple[PositionSnapshot, ...] = field(default_factory=tuple)
