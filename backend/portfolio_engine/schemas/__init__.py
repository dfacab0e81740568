# backend/portfolio_engine/schemas/__init__.py
"""
Pydantic schemas for serializing analytics results.

Usage:
    from portfolio_engine.schemas import PortfolioStatisticsResponse

    payload = PortfolioStatisticsResponse.from_result(statistics).model_dump()
"""

from portfolio_engine.schemas.analytics import (
    ChartPointResponse,
    ChartResponse,
    PositionSnapshotResponse,
    PortfolioSnapshotResponse,
    StatisticsResponse,
    PositionStatisticsResponse,
    PortfolioStatisticsResponse,
)

__all__ = [
    "ChartPointResponse",
    "ChartResponse",
    "PositionSnapshotResponse",
    "PortfolioSnapshotResponse",
    "StatisticsResponse",
    "PositionStatisticsResponse",
    "PortfolioStatisticsResponse",
]
