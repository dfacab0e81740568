# backend/portfolio_engine/services/portfolio/__init__.py
"""
Portfolio aggregation package.

Usage:
    from portfolio_engine.services.portfolio import PortfolioAggregator

    aggregator = PortfolioAggregator(converter)
    statistics = aggregator.get_portfolio_statistics(1, positions, "EUR", now)

Architecture:
    portfolio/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Statistics and snapshot result types
    └── aggregator.py     # PortfolioAggregator
"""

from portfolio_engine.services.portfolio.types import (
    ChartKind,
    EntityStatistics,
    PortfolioSnapshot,
    PortfolioStatistics,
    PositionStatistics,
    StatisticsWindow,
)
from portfolio_engine.services.portfolio.aggregator import PortfolioAggregator

__all__ = [
    "ChartKind",
    "EntityStatistics",
    "PortfolioSnapshot",
    "PortfolioStatistics",
    "PositionStatistics",
    "StatisticsWindow",
    "PortfolioAggregator",
]
