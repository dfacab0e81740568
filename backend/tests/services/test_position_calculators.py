# backend/tests/services/test_position_calculators.py
"""
Unit tests for position calculations.

These tests verify the pure calculation logic. All tests use known values
that can be verified by hand, mostly on the conftest sample position:

    2022-01-01  buy  10 @ 100
    2022-01-10  buy   5 @ 120
    2022-01-20  sell  5 @ 130
    prices: 01-01 100, 01-05 110, 01-10 120, 01-20 130, 01-31 140

Test Coverage:
- calculate_holding / calculate_value
- calculate_net_cash_flow / calculate_profit (boundary convention)
- calculate_performance (zero-start policy)
- calculate_time_weighted_performance
- calculate_break_even_point
- calculate_snapshot
"""

from decimal import Decimal

import pytest

from portfolio_engine.models import DateRange, PositionPriceData
from portfolio_engine.services.calculators import (
    calculate_break_even_point,
    calculate_holding,
    calculate_net_cash_flow,
    calculate_performance,
    calculate_profit,
    calculate_snapshot,
    calculate_time_weighted_performance,
    calculate_value,
)
from tests.conftest import make_position, make_prices, make_transaction, utc


# =============================================================================
# VALUE
# =============================================================================

class TestValue:
    """Tests for calculate_holding and calculate_value."""

    def test_holding_counts_transactions_at_or_before(self, sample_transactions):
        assert calculate_holding(sample_transactions, utc(2021, 12, 31)) == Decimal("0")
        assert calculate_holding(sample_transactions, utc(2022, 1, 1)) == Decimal("10")
        assert calculate_holding(sample_transactions, utc(2022, 1, 10)) == Decimal("15")
        assert calculate_holding(sample_transactions, utc(2022, 1, 31)) == Decimal("10")

    def test_value_is_holding_times_price(self, sample_transactions):
        assert calculate_value(sample_transactions, Decimal("140"), utc(2022, 1, 31)) == Decimal("1400")

    def test_unknown_price_values_at_zero(self, sample_transactions):
        assert calculate_value(sample_transactions, None, utc(2022, 1, 31)) == Decimal("0")

    def test_short_holding_has_negative_value(self):
        transactions = [make_transaction("-2", "50", utc(2022, 1, 1))]
        assert calculate_value(transactions, Decimal("60"), utc(2022, 1, 2)) == Decimal("-120")

    def test_scenario_value_after_price_change(self):
        """+1 @ $100 on 2022-01-01, price $150 on 2022-01-03: value is $150."""
        transactions = [make_transaction("1", "100", utc(2022, 1, 1))]
        assert calculate_value(transactions, Decimal("150"), utc(2022, 1, 3)) == Decimal("150")


# =============================================================================
# PROFIT
# =============================================================================

class TestProfit:
    """Tests for calculate_net_cash_flow and calculate_profit."""

    def test_net_cash_flow_excludes_from_includes_to(self, sample_transactions):
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 10))
        # The buy at 01-01 sits on `from`, the buy at 01-10 on `to`
        assert calculate_net_cash_flow(sample_transactions, date_range) == Decimal("600")

    def test_profit_over_whole_range(self, sample_transactions):
        """
        value_to = 10 * 140 = 1400
        value_from = 10 * 100 = 1000
        net cash flow = 600 - 650 = -50
        profit = 1400 - 1000 + 50 = 450
        """
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 31))

        result = calculate_profit(sample_transactions, Decimal("100"), Decimal("140"), date_range)

        assert result == Decimal("450")

    def test_transaction_at_from_is_in_opening_value(self):
        """
        +1 @ $100 on 2022-01-01, prices $100 on 01-01 and $150 on 01-03.

        profit([01-01, 01-03]) = 150 - 100 - 0 = 50: the purchase at `from`
        is part of value_at_from, not of the cash flow.
        """
        transactions = [make_transaction("1", "100", utc(2022, 1, 1))]
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 3))

        result = calculate_profit(transactions, Decimal("100"), Decimal("150"), date_range)

        assert result == Decimal("50")

    def test_transaction_at_to_is_a_cash_flow(self):
        """A purchase at `to` adds its value and its cash flow: no profit."""
        transactions = [make_transaction("1", "100", utc(2022, 1, 3))]
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 3))

        result = calculate_profit(transactions, Decimal("90"), Decimal("100"), date_range)

        assert result == Decimal("0")

    def test_adjacent_ranges_add_up(self, sample_position):
        """Profits over consecutive ranges sum to the profit over their union."""
        prices = sample_position.prices
        transactions = sample_position.transactions
        boundaries = [utc(2022, 1, 1), utc(2022, 1, 10), utc(2022, 1, 20), utc(2022, 1, 31)]

        parts = [
            calculate_profit(transactions, prices.price_at(start), prices.price_at(end), DateRange(start, end))
            for start, end in zip(boundaries, boundaries[1:])
        ]

        assert parts == [Decimal("200"), Decimal("150"), Decimal("100")]
        assert sum(parts) == Decimal("450")

    def test_no_transactions_no_profit(self):
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 31))
        assert calculate_profit([], Decimal("100"), Decimal("140"), date_range) == Decimal("0")


# =============================================================================
# PERFORMANCE
# =============================================================================

class TestPerformance:
    """Tests for calculate_performance."""

    def test_positive(self):
        assert calculate_performance(Decimal("1000"), Decimal("1200")) == Decimal("0.2")

    def test_negative(self):
        assert calculate_performance(Decimal("1000"), Decimal("800")) == Decimal("-0.2")

    def test_zero_to_zero_is_zero(self):
        assert calculate_performance(Decimal("0"), Decimal("0")) == Decimal("0")

    def test_zero_to_positive_is_one(self):
        assert calculate_performance(Decimal("0"), Decimal("100")) == Decimal("1")

    def test_zero_to_negative_is_minus_one(self):
        assert calculate_performance(Decimal("0"), Decimal("-100")) == Decimal("-1")


class TestTimeWeightedPerformance:
    """Tests for calculate_time_weighted_performance."""

    def test_removes_effect_of_cash_flows(self, sample_position):
        """
        Sub-periods split at 01-10 and 01-20:
            [01-01, 01-10]: (15*120 - 600) / (10*100) = 1.2
            [01-10, 01-20]: (10*130 + 650) / (15*120) = 1950 / 1800
            [01-20, 01-31]: (10*140) / (10*130)       = 1400 / 1300
        Product = 1.4, the same as the price move 100 -> 140.
        """
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 31))

        result = calculate_time_weighted_performance(
            sample_position.transactions, sample_position.prices, date_range
        )

        assert abs(result - Decimal("0.4")) < Decimal("1E-20")

    def test_no_cash_flows_equals_simple_performance(self, sample_position):
        date_range = DateRange(utc(2022, 1, 1), utc(2022, 1, 5))

        result = calculate_time_weighted_performance(
            sample_position.transactions, sample_position.prices, date_range
        )

        assert result == Decimal("0.1")

    def test_position_opened_mid_range_is_measured_from_purchase(self):
        """The empty sub-period before the first purchase is skipped."""
        transactions = [make_transaction("2", "100", utc(2022, 1, 10))]
        prices = make_prices([(utc(2022, 1, 1), "90"), (utc(2022, 1, 10), "100"), (utc(2022, 1, 20), "125")])

        result = calculate_time_weighted_performance(
            transactions, prices, DateRange(utc(2022, 1, 1), utc(2022, 1, 20))
        )

        assert result == Decimal("0.25")

    def test_nothing_held_is_zero(self):
        prices = make_prices([(utc(2022, 1, 1), "90")])
        result = calculate_time_weighted_performance([], prices, DateRange(utc(2022, 1, 1), utc(2022, 1, 20)))
        assert result == Decimal("0")


# =============================================================================
# BREAK-EVEN POINT
# =============================================================================

class TestBreakEvenPoint:
    """Tests for calculate_break_even_point."""

    def test_average_cost_with_sale(self):
        """buy 3 @ 100, sell 2 @ 105, buy 3 @ 110: (300 - 210 + 330) / 4 = 105."""
        transactions = [
            make_transaction("3", "100", utc(2022, 1, 1)),
            make_transaction("-2", "105", utc(2022, 1, 2)),
            make_transaction("3", "110", utc(2022, 1, 3)),
        ]
        assert calculate_break_even_point(transactions) == Decimal("105")

    def test_flat_position_is_zero(self):
        """Zero net holding returns 0, not an error."""
        transactions = [
            make_transaction("2", "100", utc(2022, 1, 1)),
            make_transaction("-2", "120", utc(2022, 1, 2)),
        ]
        assert calculate_break_even_point(transactions) == Decimal("0")

    def test_no_transactions_is_zero(self):
        assert calculate_break_even_point([]) == Decimal("0")

    def test_only_transactions_up_to_time(self, sample_transactions):
        assert calculate_break_even_point(sample_transactions, utc(2022, 1, 10)) == Decimal("1600") / Decimal("15")
        assert calculate_break_even_point(sample_transactions, utc(2022, 1, 31)) == Decimal("95")


# =============================================================================
# SNAPSHOT
# =============================================================================

class TestSnapshot:
    """Tests for calculate_snapshot."""

    def test_sample_position(self, sample_position):
        snapshot = calculate_snapshot(sample_position, DateRange(utc(2022, 1, 1), utc(2022, 1, 31)))

        assert snapshot.position_id == 1
        assert snapshot.currency == "USD"
        assert snapshot.value == Decimal("1400")
        assert snapshot.profit == Decimal("450")
        assert snapshot.break_even_point == Decimal("95")
        # Money-weighted: the extra units bought at 120 earn less than the
        # first ten, so the result sits below the 40% price move
        assert snapshot.performance is not None
        assert abs(snapshot.performance - Decimal("0.3798")) < Decimal("0.002")

    def test_empty_position(self):
        snapshot = calculate_snapshot(
            PositionPriceData(position_id=3, currency="EUR"),
            DateRange(utc(2022, 1, 1), utc(2022, 1, 31)),
        )

        assert snapshot.value == Decimal("0")
        assert snapshot.profit == Decimal("0")
        assert snapshot.performance == Decimal("0")
        assert snapshot.break_even_point == Decimal("0")

    def test_prices_starting_after_purchase(self):
        """
        The profit range starts at the first price, so the purchase is
        valued at that price instead of at zero.
        """
        data = make_position(
            [make_transaction("1", "100", utc(2022, 1, 1))],
            make_prices([(utc(2022, 1, 3), "150"), (utc(2022, 1, 5), "160")]),
        )

        snapshot = calculate_snapshot(data, DateRange(utc(2022, 1, 1), utc(2022, 1, 5)))

        assert snapshot.value == Decimal("160")
        assert snapshot.profit == Decimal("10")

    @pytest.mark.parametrize("end,expected_value", [
        (utc(2022, 1, 5), Decimal("1100")),
        (utc(2022, 1, 10), Decimal("1800")),
        (utc(2022, 1, 20), Decimal("1300")),
    ])
    def test_value_at_range_end(self, sample_position, end, expected_value):
        snapshot = calculate_snapshot(sample_position, DateRange(utc(2022, 1, 1), end))
        assert snapshot.value == expected_value
