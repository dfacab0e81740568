# backend/portfolio_engine/services/currency/rate_source.py
"""
In-memory exchange rate source.

Implements the ExchangeRateSource protocol over a list of already-fetched
ExchangeRate records. Used by embedding callers that load rates up front
and by the test suite.

Lookups follow the fallback convention of the query layer: the rate at
an instant is the latest rate of the pair at or before it. There is no
lookback limit.
"""

import logging
from bisect import bisect_right
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from portfolio_engine.models import DateRange, ExchangeRate, ensure_utc, normalize_currency_code

logger = logging.getLogger(__name__)


class InMemoryExchangeRateSource:
    """
    Exchange rates indexed by directed currency pair.

    Rates are kept sorted by time per pair. Only the directions that were
    supplied exist: adding USD->EUR does not make EUR->USD available.
    Inversion is the converter's job.

    Example:
        source = InMemoryExchangeRateSource([
            ExchangeRate("USD", "EUR", datetime(2022, 1, 1), Decimal("1.01")),
        ])
        source.get_rate("USD", "EUR", datetime(2022, 6, 1)).rate  # Decimal("1.01")
        source.get_rate("EUR", "USD", datetime(2022, 6, 1))       # None
    """

    def __init__(self, rates: Iterable[ExchangeRate] = ()) -> None:
        self._rates: dict[tuple[str, str], list[ExchangeRate]] = defaultdict(list)
        self._times: dict[tuple[str, str], list[datetime]] = {}
        for rate in rates:
            self._rates[(rate.currency_from, rate.currency_to)].append(rate)
        for pair in self._rates:
            self._reindex(pair)

    def get_rate(
            self,
            currency_from: str,
            currency_to: str,
            time: datetime,
    ) -> ExchangeRate | None:
        """
        Get the latest rate of the pair at or before `time`.

        Returns:
            The rate in effect at `time`, or None if the pair is unknown
            or has no rate that early
        """
        pair = (normalize_currency_code(currency_from), normalize_currency_code(currency_to))
        times = self._times.get(pair)
        if not times:
            return None

        index = bisect_right(times, ensure_utc(time))
        if index == 0:
            return None
        return self._rates[pair][index - 1]

    def get_rates(
            self,
            currency_from: str,
            currency_to: str,
            date_range: DateRange,
    ) -> list[ExchangeRate]:
        """
        Get the rates of the pair covering `date_range`.

        Returns:
            The rate in effect at the range start (if any) followed by
            every rate with from_time < time <= to_time, sorted by time
        """
        pair = (normalize_currency_code(currency_from), normalize_currency_code(currency_to))
        times = self._times.get(pair)
        if not times:
            return []

        rates = self._rates[pair]
        start = bisect_right(times, date_range.from_time)
        end = bisect_right(times, date_range.to_time)

        result = rates[start:end]
        if start > 0:
            result = [rates[start - 1]] + result

        logger.debug(
            f"Loaded {len(result)} {pair[0]}/{pair[1]} rates for "
            f"{date_range.from_time.isoformat()} - {date_range.to_time.isoformat()}"
        )
        return result

    def _reindex(self, pair: tuple[str, str]) -> None:
        self._rates[pair].sort(key=lambda r: r.time)
        self._times[pair] = [r.time for r in self._rates[pair]]
