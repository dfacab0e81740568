# backend/portfolio_engine/services/calculators/__init__.py
"""
Calculators package.

Pure functions over already-fetched transactions and prices:
- Position figures: value, profit, performance, break-even point
- Instrument figures: price profit and performance
- Money-weighted return (IRR) solver

Usage:
    from portfolio_engine.services.calculators import (
        calculate_profit,
        calculate_irr,
    )

Architecture:
    calculators/
    ├── __init__.py       # This file - package exports
    ├── types.py          # CashFlow, PositionSnapshot
    ├── irr.py            # Money-weighted return
    ├── position.py       # Position calculators
    └── instrument.py     # Instrument calculators

Data Flow:
    Transactions + PriceHistory → position.py → PositionSnapshot
    Transactions + PriceHistory → irr.build_cash_flows → irr.calculate_irr
"""

from portfolio_engine.services.calculators.types import CashFlow, PositionSnapshot
from portfolio_engine.services.calculators.irr import (
    build_cash_flows,
    calculate_irr,
    calculate_period_irr,
    calculate_money_weighted_performance,
)
from portfolio_engine.services.calculators.position import (
    calculate_holding,
    calculate_value,
    calculate_net_cash_flow,
    calculate_profit,
    calculate_performance,
    calculate_time_weighted_performance,
    calculate_break_even_point,
    calculate_snapshot,
)
from portfolio_engine.services.calculators.instrument import (
    calculate_price_profit,
    calculate_price_performance,
    get_range_prices,
)

__all__ = [
    # Types
    "CashFlow",
    "PositionSnapshot",
    # IRR
    "build_cash_flows",
    "calculate_irr",
    "calculate_period_irr",
    "calculate_money_weighted_performance",
    # Position
    "calculate_holding",
    "calculate_value",
    "calculate_net_cash_flow",
    "calculate_profit",
    "calculate_performance",
    "calculate_time_weighted_performance",
    "calculate_break_even_point",
    "calculate_snapshot",
    # Instrument
    "calculate_price_profit",
    "calculate_price_performance",
    "get_range_prices",
]
