# backend/portfolio_engine/__init__.py
"""
Portfolio analytics engine.

Turns already-fetched transaction, price and exchange-rate records into
value, profit, performance, break-even point and charted series, across
currencies, date ranges and aggregation frequencies.

Usage:
    from portfolio_engine import (
        CurrencyConverter,
        InMemoryExchangeRateSource,
        PortfolioAggregator,
    )

    converter = CurrencyConverter(InMemoryExchangeRateSource(rates), "USD")
    statistics = PortfolioAggregator(converter).get_portfolio_statistics(
        portfolio_id=1, positions=positions, portfolio_currency="EUR", now=now,
    )
"""

from portfolio_engine.models import (
    AggregationFrequency,
    ChartPoint,
    DateRange,
    ExchangeRate,
    PositionPriceData,
    PriceHistory,
    PricePoint,
    Transaction,
)
from portfolio_engine.services.currency import CurrencyConverter, InMemoryExchangeRateSource
from portfolio_engine.services.aggregation import (
    InstrumentChartGenerator,
    PositionChartGenerator,
    TimeSeriesAggregator,
)
from portfolio_engine.services.portfolio import PortfolioAggregator

__all__ = [
    "AggregationFrequency",
    "ChartPoint",
    "DateRange",
    "ExchangeRate",
    "PositionPriceData",
    "PriceHistory",
    "PricePoint",
    "Transaction",
    "CurrencyConverter",
    "InMemoryExchangeRateSource",
    "InstrumentChartGenerator",
    "PositionChartGenerator",
    "TimeSeriesAggregator",
    "PortfolioAggregator",
]
