# backend/portfolio_engine/services/calculators/position.py
"""
Position calculators.

Pure functions over a position's transaction stream and price data:
- calculate_holding: Units held at an instant
- calculate_value: Holding * price
- calculate_net_cash_flow: Money moved by transactions inside a range
- calculate_profit: Value change net of money contributed
- calculate_performance: Simple return between two values
- calculate_time_weighted_performance: Chain-linked sub-period returns
- calculate_break_even_point: Average cost per unit held
- calculate_snapshot: All of the above for one position and range

Design Principles:
- Stateless, no I/O, no logging of results
- Decimal for ALL financial calculations
- "No data" yields a defined zero, never an exception

Boundary convention:
    Cash flows belong to a range with `from` EXCLUSIVE and `to` INCLUSIVE.
    A transaction at exactly `from` is part of the opening holding (and
    so of the value at `from`), one at exactly `to` is a cash flow of
    the range. This keeps adjacent ranges from double-counting it.
"""

from datetime import datetime
from decimal import Decimal
from itertools import pairwise
from typing import Iterable

from portfolio_engine.models import DateRange, PositionPriceData, PriceHistory, Transaction
from portfolio_engine.services.calculators.irr import calculate_money_weighted_performance
from portfolio_engine.services.calculators.types import PositionSnapshot
from portfolio_engine.services.constants import ONE, ZERO


# =============================================================================
# VALUE
# =============================================================================

def calculate_holding(transactions: Iterable[Transaction], time: datetime) -> Decimal:
    """
    Units held at `time`: cumulative signed amount of transactions at or
    before it. May be negative (short position).
    """
    return sum((t.amount for t in transactions if t.time <= time), ZERO)


def calculate_value(
        transactions: Iterable[Transaction],
        price: Decimal | None,
        time: datetime,
) -> Decimal:
    """
    Calculate the value of a holding at `time`.

    Args:
        transactions: Position transactions
        price: Instrument price at `time`; None when unknown
        time: Valuation instant

    Returns:
        holding * price, or ZERO when the price is unknown
    """
    if price is None:
        return ZERO
    return calculate_holding(transactions, time) * price


# =============================================================================
# PROFIT
# =============================================================================

def calculate_net_cash_flow(transactions: Iterable[Transaction], date_range: DateRange) -> Decimal:
    """Σ amount * price for transactions with from < time <= to."""
    return sum(
        (t.cash_flow for t in transactions if date_range.contains_flow(t.time)),
        ZERO,
    )


def calculate_profit(
        transactions: Iterable[Transaction],
        price_at_from: Decimal | None,
        price_at_to: Decimal | None,
        date_range: DateRange,
) -> Decimal:
    """
    Calculate profit over a date range.

    Formula:
        profit = value_at_to - value_at_from - net_cash_flow(from, to]

    Realized and unrealized profit combined, net of the money put in
    (purchases) or taken out (sales) during the range.

    Example:
        +1 unit bought at 100 on 2022-01-01, price 150 on 2022-01-03:
        profit([2022-01-01, 2022-01-03]) = 150 - 100 - 0 = 50
        (the purchase sits on the exclusive `from` boundary, so it is
        part of the opening value, not of the cash flow)
    """
    transactions = list(transactions)
    value_at_to = calculate_value(transactions, price_at_to, date_range.to_time)
    value_at_from = calculate_value(transactions, price_at_from, date_range.from_time)
    return value_at_to - value_at_from - calculate_net_cash_flow(transactions, date_range)


# =============================================================================
# PERFORMANCE
# =============================================================================

def calculate_performance(value_at_from: Decimal, value_at_to: Decimal) -> Decimal:
    """
    Calculate simple performance between two values.

    Formula:
        (value_at_to - value_at_from) / value_at_from

    Zero start value:
        to > 0  ->  1  (100%, growth "from nothing")
        to == 0 ->  0
        to < 0  -> -1

    Returns:
        Performance as decimal (e.g., 0.2 = 20%)
    """
    if value_at_from == ZERO:
        if value_at_to > ZERO:
            return ONE
        if value_at_to < ZERO:
            return -ONE
        return ZERO
    return (value_at_to - value_at_from) / value_at_from


def calculate_time_weighted_performance(
        transactions: Iterable[Transaction],
        prices: PriceHistory,
        date_range: DateRange,
) -> Decimal:
    """
    Calculate time-weighted performance, removing the effect of cash flow timing.

    The range is split at every transaction inside it. Each sub-period
    return is computed with the flow at its end, then returns are linked:

        r_i = (V_end - CF) / V_start - 1
        TWR = Π(1 + r_i) - 1

    Sub-periods that start with zero value (nothing held or no price)
    are skipped, so a position opened mid-range is measured from its
    first purchase.

    Returns:
        Performance as decimal, ZERO if no sub-period could be measured
    """
    transactions = list(transactions)
    split_times = sorted({t.time for t in transactions if date_range.contains_flow(t.time)})
    boundaries = [date_range.from_time] + [t for t in split_times if t != date_range.to_time]
    boundaries.append(date_range.to_time)

    growth = ONE
    measured = False

    for start, end in pairwise(boundaries):
        value_start = calculate_value(transactions, prices.price_at(start), start)
        if value_start == ZERO:
            continue

        cash_flow = calculate_net_cash_flow(transactions, DateRange(start, end))
        value_end = calculate_value(transactions, prices.price_at(end), end)

        growth *= (value_end - cash_flow) / value_start
        measured = True

    return growth - ONE if measured else ZERO


# =============================================================================
# BREAK-EVEN POINT
# =============================================================================

def calculate_break_even_point(
        transactions: Iterable[Transaction],
        time: datetime | None = None,
) -> Decimal:
    """
    Calculate the break-even point (average cost per unit held).

    Formula:
        Σ(amount * price) / Σ amount, over transactions at or before `time`

    Sales reduce the cost basis at their own price. A flat position
    (net amount zero) has a break-even point of ZERO.

    Example:
        buy 3 @ 100, sell 2 @ 105, buy 3 @ 110
        (300 - 210 + 330) / 4 = 105
    """
    included = [t for t in transactions if time is None or t.time <= time]
    net_amount = sum((t.amount for t in included), ZERO)
    if net_amount == ZERO:
        return ZERO
    return sum((t.cash_flow for t in included), ZERO) / net_amount


# =============================================================================
# SNAPSHOT
# =============================================================================

def calculate_snapshot(data: PositionPriceData, date_range: DateRange) -> PositionSnapshot:
    """
    Calculate value, profit, performance and BEP of one position.

    The profit range starts at the first price point when the position's
    prices begin after date_range.from_time (see
    PositionPriceData.valuation_start), so earlier purchases are valued
    at the first known price.

    Args:
        data: Position transactions and prices, all in data.currency
        date_range: Range the figures are computed over

    Returns:
        PositionSnapshot in data.currency
    """
    profit_range = date_range.with_start(data.valuation_start(date_range))
    price_at_from = data.prices.price_at(profit_range.from_time)
    price_at_to = data.prices.price_at(date_range.to_time)

    return PositionSnapshot(
        position_id=data.position_id,
        currency=data.currency,
        value=calculate_value(data.transactions, price_at_to, date_range.to_time),
        profit=calculate_profit(data.transactions, price_at_from, price_at_to, profit_range),
        performance=calculate_money_weighted_performance([data], date_range),
        break_even_point=calculate_break_even_point(data.transactions, date_range.to_time),
    )
