# backend/portfolio_engine/services/currency/converter.py
"""
Currency conversion through a single pivot currency.

Only one currency, the default currency D, is guaranteed to have a rate
to or from every tracked currency. Conversion therefore never searches
the rate graph; it tries at most these paths, in order:

    1. same currency or zero amount   -> unchanged
    2. direct rate  from -> to        -> amount * rate
    3. to == D, inverse rate D -> from -> amount / rate
    4. from != D                      -> from -> D, then D -> to
    5. otherwise                      -> NoExchangeRateAvailableError

Step 4 recurses exactly once: its second call has D as the source, so it
can only succeed through step 2 or fail through step 5.

Rate convention (standard FX notation):
    ExchangeRate(USD, EUR, t, 0.92) means 1 USD = 0.92 EUR at t.
    To convert USD -> EUR, MULTIPLY. To convert EUR -> USD with that
    same record, DIVIDE.

Results are not quantized. Rounding for display happens in the schemas.
"""

import logging
from bisect import bisect_right
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from portfolio_engine.config import Settings, settings as default_settings
from portfolio_engine.models import (
    ChartPoint,
    DateRange,
    ExchangeRate,
    PositionPriceData,
    PriceHistory,
    ensure_utc,
    normalize_currency_code,
)
from portfolio_engine.services.constants import ONE, ZERO
from portfolio_engine.services.exceptions import (
    FXConversionError,
    MissingDefaultCurrencyError,
    NoExchangeRateAvailableError,
)
from portfolio_engine.services.protocols import ExchangeRateSource

logger = logging.getLogger(__name__)


class CurrencyConverter:
    """
    Converts amounts, chart points and rate series between currencies.

    The default currency is passed in explicitly; the converter never
    reads it from global state. A converter without a default currency
    can still use direct rates, but any triangulation raises
    MissingDefaultCurrencyError.

    Example:
        source = InMemoryExchangeRateSource([
            ExchangeRate("USD", "EUR", datetime(2022, 1, 1), Decimal("1.01")),
        ])
        converter = CurrencyConverter(source, default_currency="USD")

        converter.convert(Decimal("100"), "EUR", "USD", datetime(2022, 2, 1))
        # Decimal("99.0099...")  (100 / 1.01 via the inverse of USD->EUR)
    """

    def __init__(
            self,
            rate_source: ExchangeRateSource,
            default_currency: str | None,
    ) -> None:
        self._rate_source = rate_source
        self._default_currency = (
            normalize_currency_code(default_currency) if default_currency else None
        )

    @classmethod
    def from_settings(
            cls,
            rate_source: ExchangeRateSource,
            config: Settings | None = None,
    ) -> "CurrencyConverter":
        """Build a converter using the configured default currency."""
        config = config or default_settings
        return cls(rate_source, config.default_currency)

    @property
    def default_currency(self) -> str | None:
        return self._default_currency

    # =========================================================================
    # SINGLE AMOUNTS
    # =========================================================================

    def convert(
            self,
            amount: Decimal,
            currency_from: str,
            currency_to: str,
            time: datetime,
    ) -> Decimal:
        """
        Convert an amount at a given instant.

        Args:
            amount: Amount in currency_from
            currency_from: Source currency code
            currency_to: Target currency code
            time: Instant whose rates are used (latest rate at or before it)

        Returns:
            Amount in currency_to

        Raises:
            NoExchangeRateAvailableError: No usable path at `time`
            MissingDefaultCurrencyError: Triangulation needed but no pivot configured
            FXConversionError: A rate on the path is zero or negative
        """
        source = normalize_currency_code(currency_from)
        target = normalize_currency_code(currency_to)

        if source == target or amount == ZERO:
            return amount

        time = ensure_utc(time)

        direct = self._rate_source.get_rate(source, target, time)
        if direct is not None:
            return amount * self._checked_rate(direct)

        default = self._default_currency
        if default is None:
            raise MissingDefaultCurrencyError(source, target)

        if target == default:
            inverse = self._rate_source.get_rate(default, source, time)
            if inverse is None:
                raise NoExchangeRateAvailableError(source, target, time)
            return amount / self._checked_rate(inverse)

        if source != default:
            in_default = self.convert(amount, source, default, time)
            return self.convert(in_default, default, target, time)

        raise NoExchangeRateAvailableError(source, target, time)

    def convert_chart_point(
            self,
            base_code: str,
            target_code: str | None,
            point: ChartPoint,
    ) -> ChartPoint:
        """
        Convert a chart point's value at the point's own time.

        A missing target, or a target equal to the base currency, is a
        no-op: the same point is returned.
        """
        if target_code is None:
            return point
        if normalize_currency_code(target_code) == normalize_currency_code(base_code):
            return point

        return ChartPoint(
            time=point.time,
            value=self.convert(point.value, base_code, target_code, point.time),
        )

    # =========================================================================
    # RATE SERIES
    # =========================================================================

    def get_exchange_rates(
            self,
            currency_from: str,
            currency_to: str,
            date_range: DateRange,
    ) -> list[ExchangeRate]:
        """
        Get a from -> to rate series covering a date range.

        Path order: a direct series that already covers the range start;
        otherwise the direct series when from is D, the inverted series of
        D -> from when to is D, or the combination of from -> D and D -> to.
        A direct series that starts inside the range is only used when no
        path through D exists.

        Returns:
            Rates sorted by time; the first one is in effect at the range
            start when the underlying data allows it

        Raises:
            MissingDefaultCurrencyError: Triangulation needed but no pivot configured
            NoExchangeRateAvailableError: The pivot legs cannot be combined
        """
        source = normalize_currency_code(currency_from)
        target = normalize_currency_code(currency_to)

        if source == target:
            return [ExchangeRate(source, target, date_range.from_time, ONE)]

        direct = self._rate_source.get_rates(source, target, date_range)
        if direct and direct[0].time <= date_range.from_time:
            return direct

        default = self._default_currency
        if default is None:
            if direct:
                return direct
            raise MissingDefaultCurrencyError(source, target)

        if source == default:
            return direct

        if target == default:
            inverted = [
                ExchangeRate(source, target, rate.time, ONE / self._checked_rate(rate))
                for rate in self._rate_source.get_rates(default, source, date_range)
            ]
            return inverted or direct

        to_default = self.get_exchange_rates(source, default, date_range)
        from_default = self.get_exchange_rates(default, target, date_range)
        if direct and not (to_default and from_default):
            return direct

        # Resample both legs onto their common timestamps so they can be
        # multiplied pairwise.
        times = sorted({r.time for r in to_default} | {r.time for r in from_default})
        first = _resample(to_default, times)
        second = _resample(from_default, times)
        shared = {r.time for r in first} & {r.time for r in second}

        return self.combine_exchange_rates(
            [r for r in first if r.time in shared],
            [r for r in second if r.time in shared],
        )

    def combine_exchange_rates(
            self,
            rates_a_to_b: list[ExchangeRate],
            rates_b_to_c: list[ExchangeRate],
    ) -> list[ExchangeRate]:
        """
        Chain two rate series through their shared currency.

        For every rate of the second series, the latest rate of the first
        series at or before it is multiplied in. The result carries the
        timestamps of the second series.

        The caller must pass time-aligned series. This is a precondition,
        not something validated here.

        Raises:
            NoExchangeRateAvailableError: A second-series rate predates the
                whole first series
        """
        first_times = [r.time for r in rates_a_to_b]
        combined = []

        for rate in rates_b_to_c:
            index = bisect_right(first_times, rate.time)
            if index == 0:
                currency_from = rates_a_to_b[0].currency_from if rates_a_to_b else rate.currency_from
                raise NoExchangeRateAvailableError(currency_from, rate.currency_to, rate.time)

            leg = rates_a_to_b[index - 1]
            combined.append(ExchangeRate(
                currency_from=leg.currency_from,
                currency_to=rate.currency_to,
                time=rate.time,
                rate=leg.rate * rate.rate,
            ))

        return combined

    # =========================================================================
    # SERIES CONVERSION
    # =========================================================================

    def convert_series(
            self,
            points: Iterable[ChartPoint],
            currency_from: str,
            currency_to: str,
    ) -> list[ChartPoint]:
        """
        Convert every chart point with the rate in effect at its time.

        Rates are loaded once for the whole span of the series and walked
        as-of, instead of one lookup per point.

        Raises:
            NoExchangeRateAvailableError: A point predates every known rate
        """
        points = list(points)
        source = normalize_currency_code(currency_from)
        target = normalize_currency_code(currency_to)

        if not points or source == target:
            return points

        span = DateRange(min(p.time for p in points), max(p.time for p in points))
        lookup = _RateLookup(self.get_exchange_rates(source, target, span), source, target)

        return [
            ChartPoint(time=p.time, value=p.value * lookup.rate_at(p.time))
            for p in points
        ]

    def convert_position_data(
            self,
            data: PositionPriceData,
            currency_to: str,
    ) -> PositionPriceData:
        """
        Re-express a position's transaction prices and price history in
        another currency, each at its own timestamp.

        Used to normalize positions into the portfolio currency before any
        cross-position arithmetic.

        Raises:
            NoExchangeRateAvailableError: Some record predates every known rate
        """
        target = normalize_currency_code(currency_to)
        if data.currency == target:
            return data

        times = [t.time for t in data.transactions] + [p.time for p in data.prices]
        if not times:
            return replace(data, currency=target)

        span = DateRange(min(times), max(times))
        lookup = _RateLookup(
            self.get_exchange_rates(data.currency, target, span), data.currency, target
        )

        transactions = tuple(
            replace(t, price=t.price * lookup.rate_at(t.time)) for t in data.transactions
        )
        prices = PriceHistory(
            replace(p, price=p.price * lookup.rate_at(p.time)) for p in data.prices
        )

        logger.debug(
            f"Converted position {data.position_id} from {data.currency} to {target}: "
            f"{len(transactions)} transactions, {len(prices)} prices"
        )

        return PositionPriceData(
            position_id=data.position_id,
            currency=target,
            transactions=transactions,
            prices=prices,
            instrument_id=data.instrument_id,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _checked_rate(rate: ExchangeRate) -> Decimal:
        if rate.rate <= ZERO:
            raise FXConversionError(
                f"invalid rate {rate.rate} at {rate.time.isoformat()}",
                base_currency=rate.currency_from,
                quote_currency=rate.currency_to,
            )
        return rate.rate


class _RateLookup:
    """As-of lookups over a time-sorted rate series."""

    def __init__(self, rates: list[ExchangeRate], currency_from: str, currency_to: str) -> None:
        self._rates = rates
        self._times = [r.time for r in rates]
        self._currency_from = currency_from
        self._currency_to = currency_to

    def rate_at(self, time: datetime) -> Decimal:
        index = bisect_right(self._times, time)
        if index == 0:
            raise NoExchangeRateAvailableError(self._currency_from, self._currency_to, time)
        return self._rates[index - 1].rate


def _resample(rates: list[ExchangeRate], times: list[datetime]) -> list[ExchangeRate]:
    """Re-stamp a series at `times`, skipping times before its first rate."""
    own_times = [r.time for r in rates]
    resampled = []
    for time in times:
        index = bisect_right(own_times, time)
        if index == 0:
            continue
        rate = rates[index - 1]
        resampled.append(ExchangeRate(rate.currency_from, rate.currency_to, time, rate.rate))
    return resampled
