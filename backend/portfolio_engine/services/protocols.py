# backend/portfolio_engine/services/protocols.py
"""
Protocol interfaces for the engine's external collaborators.

Using typing.Protocol enables structural subtyping:
- A query-layer repository satisfies the protocol without inheriting it
- Test doubles work without explicit inheritance
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_engine.models import DateRange, ExchangeRate


class ExchangeRateSource(Protocol):
    """Interface required by CurrencyConverter."""

    def get_rate(
        self,
        currency_from: str,
        currency_to: str,
        time: datetime,
    ) -> ExchangeRate | None:
        """Latest directed rate at or before `time`, or None."""
        ...

    def get_rates(
        self,
        currency_from: str,
        currency_to: str,
        date_range: DateRange,
    ) -> list[ExchangeRate]:
        """
        Directed rates covering `date_range`, sorted by time.

        The first element is the rate in effect at date_range.from_time
        (which may be older than the range start), followed by every
        rate with from_time < time <= to_time.
        """
        ...
