# backend/tests/services/test_instrument_calculators.py
"""
Unit tests for instrument (price-only) calculations.
"""

from decimal import Decimal

from portfolio_engine.models import DateRange
from portfolio_engine.services.calculators import (
    calculate_price_performance,
    calculate_price_profit,
    get_range_prices,
)
from tests.conftest import utc


class TestPriceProfit:
    """Tests for calculate_price_profit."""

    def test_gain(self):
        assert calculate_price_profit(Decimal("100"), Decimal("120")) == Decimal("20")

    def test_loss(self):
        assert calculate_price_profit(Decimal("100"), Decimal("95.5")) == Decimal("-4.5")


class TestPricePerformance:
    """Tests for calculate_price_performance."""

    def test_gain(self):
        assert calculate_price_performance(Decimal("100"), Decimal("120")) == Decimal("0.2")

    def test_zero_start_price(self):
        assert calculate_price_performance(Decimal("0"), Decimal("5")) == Decimal("1")
        assert calculate_price_performance(Decimal("0"), Decimal("0")) == Decimal("0")


class TestGetRangePrices:
    """Tests for get_range_prices."""

    def test_as_of_prices_at_both_ends(self, sample_prices):
        result = get_range_prices(sample_prices, DateRange(utc(2022, 1, 7), utc(2022, 1, 25)))
        assert result == (Decimal("110"), Decimal("130"))

    def test_start_before_history_is_none(self, sample_prices):
        assert get_range_prices(sample_prices, DateRange(utc(2021, 12, 1), utc(2022, 1, 25))) is None
