# backend/portfolio_engine/services/calculators/instrument.py
"""
Instrument calculators.

An instrument has no transactions, only a price history, so its profit
and performance describe one unit held over the whole range.
"""

from decimal import Decimal

from portfolio_engine.models import DateRange, PriceHistory
from portfolio_engine.services.calculators.position import calculate_performance


def calculate_price_profit(price_at_from: Decimal, price_at_to: Decimal) -> Decimal:
    """Profit of holding one unit: price_at_to - price_at_from."""
    return price_at_to - price_at_from


def calculate_price_performance(price_at_from: Decimal, price_at_to: Decimal) -> Decimal:
    """Simple performance of one unit, with the zero-start policy of calculate_performance."""
    return calculate_performance(price_at_from, price_at_to)


def get_range_prices(
        prices: PriceHistory,
        date_range: DateRange,
) -> tuple[Decimal, Decimal] | None:
    """
    Look up the prices in effect at both ends of a range.

    Returns:
        (price_at_from, price_at_to), or None if either is unknown
    """
    price_at_from = prices.price_at(date_range.from_time)
    price_at_to = prices.price_at(date_range.to_time)
    if price_at_from is None or price_at_to is None:
        return None
    return price_at_from, price_at_to
