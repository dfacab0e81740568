# backend/tests/services/test_portfolio_aggregator.py
"""
Tests for PortfolioAggregator.

Two USD positions with hand-verifiable figures:
    position 1 (conftest sample_position): see test_position_calculators
    position 2: buy 1 @ 50 on 01-16; priced 50 from 01-10, 60 from 01-31

Statistics are taken at now = 2022-01-31, so the windows are:
    total      [0001-01-01, 01-31]
    last month [2021-12-31, 01-31]
    last week  [01-24, 01-31]
    last day   [01-30, 01-31]

Test Coverage:
- aggregate: conversion, input order, sums, pooled performance
- get_position_statistics: the four windows and BEP
- get_portfolio_statistics: sums, pooled performance, currency
- chart_portfolio
- Error propagation and logging
- Fan-out ordering and correlation ID propagation
"""

import logging
from decimal import Decimal

import pytest

from portfolio_engine.config import settings
from portfolio_engine.models import AggregationFrequency, DateRange
from portfolio_engine.services.aggregation import PositionChartGenerator
from portfolio_engine.services.calculators import calculate_money_weighted_performance
from portfolio_engine.services.exceptions import FXRateError, NoExchangeRateAvailableError
from portfolio_engine.services.portfolio import ChartKind, PortfolioAggregator, StatisticsWindow
from portfolio_engine.utils.context import correlation_scope, get_correlation_id
from tests.conftest import make_position, make_prices, make_transaction, utc

NOW = utc(2022, 1, 31)
JANUARY = DateRange(utc(2022, 1, 1), utc(2022, 1, 31))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def aggregator(converter) -> PortfolioAggregator:
    return PortfolioAggregator(converter, max_workers=4)


@pytest.fixture
def second_position():
    return make_position(
        [make_transaction("1", "50", utc(2022, 1, 16), position_id=2)],
        make_prices([(utc(2022, 1, 10), "50"), (utc(2022, 1, 31), "60")], instrument_id=2),
        position_id=2,
    )


@pytest.fixture
def eur_position():
    """Buy 10 @ 50 EUR on 01-01, worth 55 EUR on 01-31."""
    return make_position(
        [make_transaction("10", "50", utc(2022, 1, 1), position_id=3)],
        make_prices([(utc(2022, 1, 1), "50"), (utc(2022, 1, 31), "55")], instrument_id=3),
        currency="EUR",
        position_id=3,
    )


@pytest.fixture
def jpy_position():
    """No rate connects JPY to anything."""
    return make_position(
        [make_transaction("1", "1000", utc(2022, 1, 1), position_id=4)],
        make_prices([(utc(2022, 1, 1), "1000")], instrument_id=4),
        currency="JPY",
        position_id=4,
    )


# =============================================================================
# SNAPSHOT
# =============================================================================

class TestAggregate:
    """Tests for aggregate."""

    def test_same_currency_sums(self, aggregator, sample_position, second_position):
        snapshot = aggregator.aggregate([sample_position, second_position], "USD", JANUARY, portfolio_id=9)

        assert snapshot.portfolio_id == 9
        assert snapshot.currency == "USD"
        assert [p.position_id for p in snapshot.positions] == [1, 2]
        assert snapshot.value == Decimal("1460")
        assert snapshot.profit == Decimal("460")
        assert snapshot.performance == calculate_money_weighted_performance(
            [sample_position, second_position], JANUARY
        )

    def test_positions_are_converted_first(self, aggregator, sample_position, eur_position):
        """500 EUR growing to 550 EUR at 1 USD = 1.01 EUR."""
        snapshot = aggregator.aggregate([sample_position, eur_position], "usd", JANUARY)

        eur_snapshot = snapshot.positions[1]
        assert eur_snapshot.currency == "USD"
        assert abs(eur_snapshot.value - Decimal("550") / Decimal("1.01")) < Decimal("1E-20")
        assert abs(eur_snapshot.profit - Decimal("50") / Decimal("1.01")) < Decimal("1E-20")
        assert snapshot.value == Decimal("1400") + eur_snapshot.value
        assert snapshot.profit == Decimal("450") + eur_snapshot.profit

    def test_empty_portfolio(self, aggregator):
        snapshot = aggregator.aggregate([], "EUR", JANUARY)

        assert snapshot.value == Decimal("0")
        assert snapshot.profit == Decimal("0")
        assert snapshot.performance == Decimal("0")
        assert snapshot.positions == ()

    def test_conversion_failure_propagates_and_is_logged(
            self, aggregator, sample_position, jpy_position, caplog
    ):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(NoExchangeRateAvailableError):
                aggregator.aggregate([sample_position, jpy_position], "USD", JANUARY)

        assert "Cannot convert position 4 from JPY to USD" in caplog.text


# =============================================================================
# STATISTICS
# =============================================================================

class TestPositionStatistics:
    """Tests for get_position_statistics."""

    def test_windows(self, aggregator, sample_position):
        statistics = aggregator.get_position_statistics(sample_position, NOW)

        assert statistics.entity_id == 1
        assert statistics.currency == "USD"
        assert statistics.total_profit == Decimal("450")
        assert statistics.last_month_profit == Decimal("450")
        # 10 units, 130 -> 140
        assert statistics.last_week_profit == Decimal("100")
        assert statistics.last_day_profit == Decimal("100")
        assert statistics.last_week_performance == Decimal("0.07692308")
        assert statistics.last_day_performance == Decimal("0.07692308")
        assert statistics.break_even_point == Decimal("95")

    def test_total_window_matches_money_weighted_performance(self, aggregator, sample_position):
        statistics = aggregator.get_position_statistics(sample_position, NOW)
        assert statistics.total_performance == calculate_money_weighted_performance([sample_position], JANUARY)

    def test_window_accessors(self, aggregator, sample_position):
        statistics = aggregator.get_position_statistics(sample_position, NOW)

        assert statistics.profit_for(StatisticsWindow.LAST_WEEK) == statistics.last_week_profit
        assert statistics.performance_for(StatisticsWindow.TOTAL) == statistics.total_performance


class TestWindowStarts:
    """Tests for StatisticsWindow.start."""

    def test_starts(self):
        assert StatisticsWindow.TOTAL.start(NOW) == utc(1, 1, 1)
        assert StatisticsWindow.LAST_MONTH.start(utc(2022, 3, 31)) == utc(2022, 2, 28)
        assert StatisticsWindow.LAST_WEEK.start(NOW) == utc(2022, 1, 24)
        assert StatisticsWindow.LAST_DAY.start(NOW) == utc(2022, 1, 30)


class TestPortfolioStatistics:
    """Tests for get_portfolio_statistics."""

    def test_profit_is_sum_of_positions(self, aggregator, sample_position, second_position):
        statistics = aggregator.get_portfolio_statistics(1, [sample_position, second_position], "USD", NOW)

        assert statistics.entity_id == 1
        assert statistics.currency == "USD"
        assert statistics.total_profit == Decimal("460")
        assert statistics.last_month_profit == Decimal("460")
        assert statistics.last_week_profit == Decimal("110")
        assert statistics.last_day_profit == Decimal("110")
        assert [p.entity_id for p in statistics.positions] == [1, 2]
        assert statistics.positions[1].total_profit == Decimal("10")

    def test_performance_pools_cash_flows(self, aggregator, sample_position, second_position):
        """Last day: 1350 in, 1460 out, so 110 / 1350."""
        statistics = aggregator.get_portfolio_statistics(1, [sample_position, second_position], "USD", NOW)
        assert statistics.last_day_performance == Decimal("0.08148148")

    def test_figures_in_portfolio_currency(self, aggregator, sample_position, second_position):
        """Every January price is multiplied by 1.01."""
        statistics = aggregator.get_portfolio_statistics(1, [sample_position, second_position], "EUR", NOW)

        assert statistics.currency == "EUR"
        assert statistics.total_profit == Decimal("464.6")
        assert [p.currency for p in statistics.positions] == ["EUR", "EUR"]
        assert statistics.positions[0].total_profit == Decimal("454.5")
        assert statistics.last_day_performance == Decimal("0.08148148")

    def test_naive_now_is_utc(self, aggregator, sample_position):
        statistics = aggregator.get_portfolio_statistics(
            1, [sample_position], "USD", NOW.replace(tzinfo=None)
        )
        assert statistics.last_day_profit == Decimal("100")

    def test_logs_summary(self, aggregator, sample_position, caplog):
        with caplog.at_level(logging.INFO, logger="portfolio_engine.services.portfolio.aggregator"):
            aggregator.get_portfolio_statistics(5, [sample_position], "USD", NOW)

        assert "Statistics computed for portfolio 5: 1 positions in USD" in caplog.text

    def test_conversion_failure_propagates(self, aggregator, sample_position, jpy_position):
        with pytest.raises(FXRateError):
            aggregator.get_portfolio_statistics(1, [sample_position, jpy_position], "USD", NOW)


# =============================================================================
# CHARTS
# =============================================================================

class TestChartPortfolio:
    """Tests for chart_portfolio."""

    def test_value_chart_matches_generator(self, aggregator, sample_position, second_position):
        positions = [sample_position, second_position]

        points = aggregator.chart_portfolio(
            positions, "USD", JANUARY, AggregationFrequency.WEEK, ChartKind.VALUE
        )

        assert points == PositionChartGenerator().chart_value(positions, JANUARY, AggregationFrequency.WEEK)

    def test_profit_chart_in_portfolio_currency(self, aggregator, sample_position):
        points = aggregator.chart_portfolio(
            [sample_position], "EUR", JANUARY, AggregationFrequency.WEEK, ChartKind.PROFIT
        )

        assert points[0].value == Decimal("0")
        assert points[-1].value == Decimal("454.5")


# =============================================================================
# FAN-OUT
# =============================================================================

class TestFanOut:
    """Tests for the thread pool helper."""

    def test_results_keep_input_order(self, aggregator):
        assert aggregator._map(lambda x: x * 2, range(20)) == [x * 2 for x in range(20)]

    def test_correlation_id_reaches_workers(self, aggregator):
        with correlation_scope("stats-1"):
            seen = aggregator._map(lambda _: get_correlation_id(), range(5))

        assert seen == ["stats-1"] * 5

    def test_default_worker_count_from_settings(self, converter):
        assert PortfolioAggregator(converter).max_workers == settings.max_workers
