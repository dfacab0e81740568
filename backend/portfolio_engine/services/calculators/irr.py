# backend/portfolio_engine/services/calculators/irr.py
"""
Money-weighted return (IRR) calculations.

The internal rate of return is the discount rate r that zeroes the net
present value of a cash-flow stream:

    Σ CF_i / (1 + r)^(days_i / 365) = 0

with days_i measured from the start of the period. Flows use the
investor's sign: money put into the investment is positive, money taken
out (sales, and the value still held at the end) is negative.

Solver:
    Instead of r, the solver works on the growth factor G of the whole
    period, so every exponent lies in [0, 1]:

        f(G) = Σ CF_i * G^(-t_i),    t_i = elapsed_i / period_length

    Newton-Raphson runs first, starting from the ratio of money out to
    money in. If it leaves the domain (G <= 0), stalls on a flat
    derivative, or runs out of iterations, a bisection over an expanding
    bracket takes over. All arithmetic stays in Decimal.

    Period return = G - 1
    Annual rate   = G^(365 / period_days) - 1

Undefined cases raise PerformanceUndefinedError:
    - every flow is zero
    - the period has zero length
    - no money was ever put in
    - the flows never change sign within the solver's reach
Money put in with nothing ever coming back is a total loss: -1.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, Overflow, ROUND_HALF_UP
from typing import Iterable

from portfolio_engine.config import settings
from portfolio_engine.models import DateRange, PositionPriceData
from portfolio_engine.services.calculators.types import CashFlow
from portfolio_engine.services.constants import (
    CALENDAR_DAYS_PER_YEAR,
    IRR_MAX_BISECTION_ITERATIONS,
    IRR_MAX_BRACKET_EXPANSIONS,
    ONE,
    RATE_PRECISION,
    SECONDS_PER_DAY,
    ZERO,
)
from portfolio_engine.services.exceptions import PerformanceUndefinedError

logger = logging.getLogger(__name__)

_MICROSECOND = timedelta(microseconds=1)
_TWO = Decimal("2")


# =============================================================================
# CASH FLOW CONSTRUCTION
# =============================================================================

def build_cash_flows(data: PositionPriceData, date_range: DateRange) -> list[CashFlow]:
    """
    Build the investor cash flows of one position over a date range.

    Flows:
        - opening: holding at the valuation start * price there (positive),
          where the valuation start is the range start moved forward to
          the first price point; transactions at exactly that instant are
          part of the opening holding
        - every transaction after the valuation start and at/before the
          range end, as amount * price
        - closing: -(holding at the range end * price there)

    A missing price values the holding at zero. Zero flows are omitted.

    Args:
        data: Position transactions and prices, all in one currency
        date_range: Measured period

    Returns:
        Cash flows sorted by time
    """
    start = data.valuation_start(date_range)
    end = date_range.to_time
    flows: list[CashFlow] = []

    opening_holding = sum((t.amount for t in data.transactions if t.time <= start), ZERO)
    opening_price = data.prices.price_at(start)
    if opening_holding != ZERO and opening_price is not None:
        flows.append(CashFlow(start, opening_holding * opening_price))

    for transaction in data.transactions:
        if start < transaction.time <= end and transaction.cash_flow != ZERO:
            flows.append(CashFlow(transaction.time, transaction.cash_flow))

    closing_holding = sum((t.amount for t in data.transactions if t.time <= end), ZERO)
    closing_price = data.prices.price_at(end)
    if closing_holding != ZERO and closing_price is not None:
        closing_value = closing_holding * closing_price
        if closing_value != ZERO:
            flows.append(CashFlow(end, -closing_value))

    return flows


# =============================================================================
# IRR
# =============================================================================

def calculate_irr(
        cash_flows: Iterable[CashFlow],
        date_range: DateRange,
        tolerance: Decimal | None = None,
        max_iterations: int | None = None,
) -> Decimal:
    """
    Calculate the annualized internal rate of return.

    Args:
        cash_flows: Investor cash flows (positive = money in)
        date_range: Period the flows are discounted over; time is
                    measured from date_range.from_time
        tolerance: Convergence tolerance (default: settings.irr_tolerance)
        max_iterations: Newton iterations (default: settings.irr_max_iterations)

    Returns:
        Annual rate as decimal (e.g., 0.1 = 10% p.a.)

    Raises:
        PerformanceUndefinedError: If no rate can be determined

    Example:
        flows = [
            CashFlow(datetime(2023, 1, 1), Decimal("100")),
            CashFlow(datetime(2024, 1, 1), Decimal("-110")),
        ]
        calculate_irr(flows, DateRange(datetime(2023, 1, 1), datetime(2024, 1, 1)))
        # Decimal("0.10000000")
    """
    growth = _solve_period_growth(cash_flows, date_range, tolerance, max_iterations)
    if growth == ZERO:
        return -ONE

    period_days = Decimal(date_range.length // _MICROSECOND) / Decimal(SECONDS_PER_DAY * 1_000_000)
    try:
        annual = growth ** (Decimal(CALENDAR_DAYS_PER_YEAR) / period_days) - ONE
    except Overflow:
        raise PerformanceUndefinedError(
            f"annualized rate overflows for a {period_days:.4f}-day period"
        )
    return annual.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)


def calculate_period_irr(
        cash_flows: Iterable[CashFlow],
        date_range: DateRange,
        tolerance: Decimal | None = None,
        max_iterations: int | None = None,
) -> Decimal:
    """
    Calculate the money-weighted return over the whole period (not annualized).

    Same root as calculate_irr(), expressed as (1 + r)^(days / 365) - 1.

    Raises:
        PerformanceUndefinedError: If no rate can be determined
    """
    growth = _solve_period_growth(cash_flows, date_range, tolerance, max_iterations)
    return (growth - ONE).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)


def calculate_money_weighted_performance(
        positions: Iterable[PositionPriceData],
        date_range: DateRange,
        tolerance: Decimal | None = None,
        max_iterations: int | None = None,
) -> Decimal | None:
    """
    Calculate the money-weighted performance of one or more positions.

    The cash flows of all positions are pooled, so every position must
    already be expressed in the same currency. The measured period starts
    at the later of the range start and the first flow, so time before
    the first investment does not dilute the return.

    Returns:
        Period return as decimal, ZERO if there are no transactions
        before the range end, None if the return is undefined
    """
    positions = list(positions)
    if not any(p.transactions_until(date_range.to_time) for p in positions):
        return ZERO

    flows = [flow for p in positions for flow in build_cash_flows(p, date_range)]
    if not flows:
        return ZERO

    start = max(date_range.from_time, min(f.time for f in flows))
    try:
        return calculate_period_irr(
            flows, DateRange(start, date_range.to_time), tolerance, max_iterations
        )
    except PerformanceUndefinedError as e:
        logger.debug(
            f"No performance for positions {[p.position_id for p in positions]} "
            f"over {start.isoformat()} - {date_range.to_time.isoformat()}: {e.reason}"
        )
        return None


# =============================================================================
# SOLVER
# =============================================================================

def _solve_period_growth(
        cash_flows: Iterable[CashFlow],
        date_range: DateRange,
        tolerance: Decimal | None,
        max_iterations: int | None,
) -> Decimal:
    """Find G > 0 with Σ CF_i * G^(-t_i) = 0, or 0 for a total loss."""
    tolerance = tolerance if tolerance is not None else settings.irr_tolerance
    max_iterations = max_iterations if max_iterations is not None else settings.irr_max_iterations

    flows = [cf for cf in cash_flows if cf.amount != ZERO]
    if not flows:
        raise PerformanceUndefinedError("all cash flows are zero")
    if date_range.is_empty:
        raise PerformanceUndefinedError("the period has zero length")

    money_in = sum((cf.amount for cf in flows if cf.amount > ZERO), ZERO)
    money_out = -sum((cf.amount for cf in flows if cf.amount < ZERO), ZERO)

    if money_in == ZERO:
        raise PerformanceUndefinedError("no money was invested")
    if money_out == ZERO:
        return ZERO

    points = [(_period_fraction(cf.time, date_range), cf.amount) for cf in flows]
    if len({t for t, _ in points}) == 1:
        raise PerformanceUndefinedError("all cash flows happen at the same instant")

    guess = money_out / money_in
    growth = _newton(points, guess, tolerance, max_iterations)
    if growth is None:
        logger.debug("Newton-Raphson did not converge, falling back to bisection")
        growth = _bisect(points, guess, tolerance)
    return growth


def _period_fraction(time: datetime, date_range: DateRange) -> Decimal:
    elapsed = max(time - date_range.from_time, timedelta(0))
    return Decimal(elapsed // _MICROSECOND) / Decimal(date_range.length // _MICROSECOND)


def _npv(points: list[tuple[Decimal, Decimal]], growth: Decimal) -> Decimal:
    return sum((amount * growth ** -t for t, amount in points), ZERO)


def _npv_slope(points: list[tuple[Decimal, Decimal]], growth: Decimal) -> Decimal:
    # d/dG [CF * G^(-t)] = -t * CF * G^(-t-1)
    return sum((-t * amount * growth ** (-t - ONE) for t, amount in points if t != ZERO), ZERO)


def _newton(
        points: list[tuple[Decimal, Decimal]],
        guess: Decimal,
        tolerance: Decimal,
        max_iterations: int,
) -> Decimal | None:
    growth = guess
    for _ in range(max_iterations):
        slope = _npv_slope(points, growth)
        if slope == ZERO:
            return None

        next_growth = growth - _npv(points, growth) / slope
        if next_growth <= ZERO:
            # Stay inside the domain
            next_growth = growth / _TWO

        if abs(next_growth - growth) <= tolerance:
            return next_growth
        growth = next_growth

    return None


def _bisect(
        points: list[tuple[Decimal, Decimal]],
        guess: Decimal,
        tolerance: Decimal,
) -> Decimal:
    mid_value = _npv(points, guess)
    if mid_value == ZERO:
        return guess

    low, high = guess, guess
    low_value = high_value = mid_value
    for _ in range(IRR_MAX_BRACKET_EXPANSIONS):
        low, high = low / _TWO, high * _TWO
        low_value, high_value = _npv(points, low), _npv(points, high)
        if (low_value > ZERO) != (mid_value > ZERO):
            high, high_value = guess, mid_value
            break
        if (high_value > ZERO) != (mid_value > ZERO):
            low, low_value = guess, mid_value
            break
    else:
        raise PerformanceUndefinedError("cash flows never change sign")

    for _ in range(IRR_MAX_BISECTION_ITERATIONS):
        middle = (low + high) / _TWO
        if high - low <= tolerance:
            return middle
        middle_value = _npv(points, middle)
        if middle_value == ZERO:
            return middle
        if (middle_value > ZERO) == (low_value > ZERO):
            low, low_value = middle, middle_value
        else:
            high = middle

    raise PerformanceUndefinedError("solver did not converge")
