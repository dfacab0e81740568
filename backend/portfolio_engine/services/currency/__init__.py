# backend/portfolio_engine/services/currency/__init__.py
"""
Currency conversion package.

Usage:
    from portfolio_engine.services.currency import (
        CurrencyConverter,
        InMemoryExchangeRateSource,
    )

    converter = CurrencyConverter(InMemoryExchangeRateSource(rates), "USD")
    converter.convert(Decimal("100"), "EUR", "USD", now)

Architecture:
    currency/
    ├── __init__.py       # This file - package exports
    ├── converter.py      # CurrencyConverter
    └── rate_source.py    # InMemoryExchangeRateSource
"""

from portfolio_engine.services.currency.converter import CurrencyConverter
from portfolio_engine.services.currency.rate_source import InMemoryExchangeRateSource

__all__ = [
    "CurrencyConverter",
    "InMemoryExchangeRateSource",
]
