# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Exchange rate source and converter fixtures
- Sample positions with hand-verifiable figures
- Record factories
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from portfolio_engine.models import (
    ExchangeRate,
    PositionPriceData,
    PriceHistory,
    PricePoint,
    Transaction,
)
from portfolio_engine.services.currency import CurrencyConverter, InMemoryExchangeRateSource
from portfolio_engine.utils.context import clear_correlation_id


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


# =============================================================================
# FACTORIES
# =============================================================================

def make_transaction(
        amount: str,
        price: str,
        time: datetime,
        position_id: int = 1,
) -> Transaction:
    """Create a transaction from string amounts."""
    return Transaction(
        position_id=position_id,
        amount=Decimal(amount),
        price=Decimal(price),
        time=time,
    )


def make_prices(points: list[tuple[datetime, str]], instrument_id: int = 1) -> PriceHistory:
    """Create a price history from (time, price) pairs."""
    return PriceHistory(
        PricePoint(instrument_id=instrument_id, time=time, price=Decimal(price))
        for time, price in points
    )


def make_position(
        transactions: list[Transaction],
        prices: PriceHistory,
        currency: str = "USD",
        position_id: int = 1,
) -> PositionPriceData:
    return PositionPriceData(
        position_id=position_id,
        currency=currency,
        transactions=tuple(transactions),
        prices=prices,
        instrument_id=position_id,
    )


# =============================================================================
# AUTOUSE
# =============================================================================

@pytest.fixture(autouse=True)
def reset_correlation_id():
    """Make sure no correlation ID leaks between tests."""
    clear_correlation_id()
    yield
    clear_correlation_id()


# =============================================================================
# CURRENCY FIXTURES
# =============================================================================

@pytest.fixture
def rate_source() -> InMemoryExchangeRateSource:
    """
    USD is the pivot. Rates are quoted from USD only:

        USD -> EUR: 1.01 from 2022-01-01, 1.02 from 2022-02-01
        USD -> GBP: 0.80 from 2022-01-01
    """
    return InMemoryExchangeRateSource([
        ExchangeRate("USD", "EUR", utc(2022, 1, 1), Decimal("1.01")),
        ExchangeRate("USD", "EUR", utc(2022, 2, 1), Decimal("1.02")),
        ExchangeRate("USD", "GBP", utc(2022, 1, 1), Decimal("0.80")),
    ])


@pytest.fixture
def converter(rate_source) -> CurrencyConverter:
    """Converter with USD as the default currency."""
    return CurrencyConverter(rate_source, default_currency="USD")


# =============================================================================
# POSITION FIXTURES
# =============================================================================

@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """
    Buy 10 @ 100, buy 5 @ 120, sell 5 @ 130.

    Cost basis after all three: 1000 + 600 - 650 = 950 for 10 units.
    """
    return [
        make_transaction("10", "100", utc(2022, 1, 1)),
        make_transaction("5", "120", utc(2022, 1, 10)),
        make_transaction("-5", "130", utc(2022, 1, 20)),
    ]


@pytest.fixture
def sample_prices() -> PriceHistory:
    """Price climbs from 100 to 140 over January 2022."""
    return make_prices([
        (utc(2022, 1, 1), "100"),
        (utc(2022, 1, 5), "110"),
        (utc(2022, 1, 10), "120"),
        (utc(2022, 1, 20), "130"),
        (utc(2022, 1, 31), "140"),
    ])


@pytest.fixture
def sample_position(sample_transactions, sample_prices) -> PositionPriceData:
    """USD position built from sample_transactions and sample_prices."""
    return make_position(sample_transactions, sample_prices)
