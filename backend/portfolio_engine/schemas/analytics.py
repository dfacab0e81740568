# backend/portfolio_engine/schemas/analytics.py
"""
Pydantic schemas for analytics results.

These schemas define the serialized form of the engine's results for
whatever outer layer exposes them (HTTP API, job output, cache):
- Chart series
- Position and portfolio snapshots
- Dashboard statistics (total / month / week / day)

Design decisions:
- All numeric values are serialized as STRINGS to preserve Decimal precision
- Performance values are in decimal form (0.155 = 15.5%), quantized to 8 places
- Null is returned when a performance is undefined for a window
- Money values carry the currency they are expressed in
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel, ConfigDict, Field

from portfolio_engine.models import ChartPoint
from portfolio_engine.services.calculators.types import PositionSnapshot
from portfolio_engine.services.constants import RATE_PRECISION
from portfolio_engine.services.portfolio.types import (
    EntityStatistics,
    PortfolioSnapshot,
    PortfolioStatistics,
    PositionStatistics,
)


def _money(value: Decimal) -> str:
    return str(value)


def _rate(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(value.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP))


# =============================================================================
# CHART SCHEMAS
# =============================================================================

class ChartPointResponse(BaseModel):
    """A single chart point."""

    model_config = ConfigDict(from_attributes=True)

    time: datetime = Field(..., description="Point instant (UTC)")
    value: str = Field(..., description="Point value as decimal string")

    @classmethod
    def from_point(cls, point: ChartPoint) -> "ChartPointResponse":
        return cls(time=point.time, value=_money(point.value))


class ChartResponse(BaseModel):
    """A chart series with its unit."""

    currency: str | None = Field(None, description="Currency of the values; null for performance")
    points: list[ChartPointResponse] = Field(default_factory=list)

    @classmethod
    def from_points(cls, points: list[ChartPoint], currency: str | None = None) -> "ChartResponse":
        return cls(currency=currency, points=[ChartPointResponse.from_point(p) for p in points])


# =============================================================================
# SNAPSHOT SCHEMAS
# =============================================================================

class PositionSnapshotResponse(BaseModel):
    """Value, profit, performance and break-even point of one position."""

    model_config = ConfigDict(from_attributes=True)

    position_id: int
    currency: str
    value: str
    profit: str
    performance: str | None = Field(None, description="Money-weighted return; null if undefined")
    break_even_point: str

    @classmethod
    def from_result(cls, snapshot: PositionSnapshot) -> "PositionSnapshotResponse":
        return cls(
            position_id=snapshot.position_id,
            currency=snapshot.currency,
            value=_money(snapshot.value),
            profit=_money(snapshot.profit),
            performance=_rate(snapshot.performance),
            break_even_point=_money(snapshot.break_even_point),
        )


class PortfolioSnapshotResponse(BaseModel):
    """Summed portfolio figures over one range."""

    portfolio_id: int | None = None
    currency: str
    value: str
    profit: str
    performance: str | None = None
    positions: list[PositionSnapshotResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, snapshot: PortfolioSnapshot) -> "PortfolioSnapshotResponse":
        return cls(
            portfolio_id=snapshot.portfolio_id,
            currency=snapshot.currency,
            value=_money(snapshot.value),
            profit=_money(snapshot.profit),
            performance=_rate(snapshot.performance),
            positions=[PositionSnapshotResponse.from_result(p) for p in snapshot.positions],
        )


# =============================================================================
# STATISTICS SCHEMAS
# =============================================================================

class StatisticsResponse(BaseModel):
    """
    Profit and performance over the four dashboard windows.

    All values are strings to preserve precision.
    """

    id: int
    currency: str
    total_profit: str
    last_month_profit: str
    last_week_profit: str
    last_day_profit: str
    total_performance: str | None = None
    last_month_performance: str | None = None
    last_week_performance: str | None = None
    last_day_performance: str | None = None

    @staticmethod
    def _fields(statistics: EntityStatistics) -> dict:
        return {
            "id": statistics.entity_id,
            "currency": statistics.currency,
            "total_profit": _money(statistics.total_profit),
            "last_month_profit": _money(statistics.last_month_profit),
            "last_week_profit": _money(statistics.last_week_profit),
            "last_day_profit": _money(statistics.last_day_profit),
            "total_performance": _rate(statistics.total_performance),
            "last_month_performance": _rate(statistics.last_month_performance),
            "last_week_performance": _rate(statistics.last_week_performance),
            "last_day_performance": _rate(statistics.last_day_performance),
        }


class PositionStatisticsResponse(StatisticsResponse):
    """Position statistics, including the break-even point."""

    break_even_point: str

    @classmethod
    def from_result(cls, statistics: PositionStatistics) -> "PositionStatisticsResponse":
        return cls(
            **cls._fields(statistics),
            break_even_point=_money(statistics.break_even_point),
        )


class PortfolioStatisticsResponse(StatisticsResponse):
    """Portfolio statistics with per-position statistics."""

    positions: list[PositionStatisticsResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, statistics: PortfolioStatistics) -> "PortfolioStatisticsResponse":
        return cls(
            **cls._fields(statistics),
            positions=[PositionStatisticsResponse.from_result(p) for p in statistics.positions],
        )
