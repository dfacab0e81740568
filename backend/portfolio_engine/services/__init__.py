# backend/portfolio_engine/services/__init__.py
"""
Service layer of the analytics engine.

Services:
- Have NO knowledge of transport or persistence
- Raise domain-specific exceptions (see exceptions.py)
- Receive already-fetched records and collaborators as parameters

Architecture:
    services/
    ├── __init__.py          # This file
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants and limits
    ├── protocols.py         # Collaborator interfaces (Protocol classes)
    ├── currency/            # Currency conversion
    │   ├── converter.py     # CurrencyConverter (single-pivot triangulation)
    │   └── rate_source.py   # In-memory ExchangeRateSource
    ├── aggregation/         # Time-series generation
    │   ├── ranges.py        # Calendar-aligned buckets, range limits
    │   ├── aggregator.py    # TimeSeriesAggregator
    │   └── charts.py        # Position and instrument chart generators
    ├── calculators/         # Pure calculators
    │   ├── types.py         # CashFlow, PositionSnapshot
    │   ├── position.py      # Value, profit, performance, BEP
    │   ├── instrument.py    # Price-only profit and performance
    │   └── irr.py           # Money-weighted return solver
    └── portfolio/           # Portfolio roll-up
        ├── types.py         # Statistics result types
        └── aggregator.py    # PortfolioAggregator

Only the exceptions are re-exported here; the domain records in
portfolio_engine.models depend on them.
"""

from portfolio_engine.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidRangeError,
    FXRateError,
    FXConversionError,
    ConversionUnavailableError,
    NoExchangeRateAvailableError,
    MissingDefaultCurrencyError,
    AnalyticsError,
    PerformanceUndefinedError,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidRangeError",
    "FXRateError",
    "FXConversionError",
    "ConversionUnavailableError",
    "NoExchangeRateAvailableError",
    "MissingDefaultCurrencyError",
    "AnalyticsError",
    "PerformanceUndefinedError",
]
