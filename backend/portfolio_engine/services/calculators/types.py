# backend/portfolio_engine/services/calculators/types.py
"""
Data types for the calculators.

All types use Decimal for financial precision.

Architecture:
    - CashFlow: Money in/out of an investment, input to the IRR solver
    - PositionSnapshot: Value/profit/performance/BEP of one position
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


# =============================================================================
# INPUT TYPES
# =============================================================================

@dataclass(frozen=True)
class CashFlow:
    """
    Represents a cash flow event for money-weighted return calculations.

    Attributes:
        time: When the cash flow occurred
        amount: Positive = money into the investment (purchase),
                Negative = money out of it (sale)

    Note:
        The value held at the end of the period is treated as a final
        negative cash flow, as if everything were sold at that instant.
    """
    time: datetime
    amount: Decimal


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class PositionSnapshot:
    """
    Figures of one position at/over a date range.

    Created fresh per calculation request; never persisted.

    Attributes:
        position_id: Position identity
        currency: Currency of every money figure below
        value: Holding value at the range end
        profit: Profit over the range (value change net of cash flows)
        performance: Money-weighted return over the range, or None when
                     it is undefined (see PerformanceUndefinedError)
        break_even_point: Average cost per unit held at the range end
    """
    position_id: int
    currency: str
    value: Decimal
    profit: Decimal
    performance: Decimal | None
    break_even_point: Decimal
