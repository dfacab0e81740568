# backend/portfolio_engine/models.py
"""
Domain records consumed by the analytics engine.

The engine never queries storage. The excluded query layer hands it
already-fetched, immutable records:

- Transaction: signed buy/sell event of one position
- PricePoint: sparse instrument price in the instrument's currency
- ExchangeRate: directed currency edge valid from its timestamp onwards
- DateRange: closed time interval, from <= to
- ChartPoint: the only output type of time-series generation

All instants are UTC. Naive datetimes are interpreted as UTC, aware
datetimes are converted to UTC, so comparisons never mix the two.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator

from portfolio_engine.services.exceptions import InvalidRangeError


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC instant.

    Args:
        value: Naive (assumed UTC) or aware datetime

    Returns:
        Aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_currency_code(code: str) -> str:
    """Upper-case and strip an ISO currency code."""
    return code.strip().upper()


# =============================================================================
# ENUMS
# =============================================================================

class AggregationFrequency(str, Enum):
    """
    Bucket width for time-series generation.

    Buckets are calendar aligned: a DAY bucket ends at the next midnight,
    a WEEK bucket at the next Sunday midnight, and so on.
    """
    FIVE_MINUTES = "5min"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# =============================================================================
# DATE RANGE
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    """
    Closed interval [from_time, to_time] of UTC instants.

    Cash flows are attributed to a range with from exclusive and
    to inclusive; see contains_flow().

    Raises:
        InvalidRangeError: If from_time is after to_time
    """
    from_time: datetime
    to_time: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_time", ensure_utc(self.from_time))
        object.__setattr__(self, "to_time", ensure_utc(self.to_time))
        if self.from_time > self.to_time:
            raise InvalidRangeError(self.from_time, self.to_time)

    @property
    def length(self) -> timedelta:
        return self.to_time - self.from_time

    @property
    def is_empty(self) -> bool:
        return self.from_time == self.to_time

    def contains_flow(self, time: datetime) -> bool:
        """True if a cash flow at `time` belongs to this range (from, to]."""
        return self.from_time < time <= self.to_time

    def with_start(self, from_time: datetime) -> "DateRange":
        """Return a copy starting at from_time."""
        return DateRange(from_time, self.to_time)

    def clamp_start(self, earliest: datetime | None) -> "DateRange | None":
        """
        Move the start forward to `earliest` when it lies later.

        Returns:
            The clamped range, or None if `earliest` lies after to_time
            (the range is entirely before any data)
        """
        if earliest is None:
            return self
        earliest = ensure_utc(earliest)
        if earliest > self.to_time:
            return None
        if earliest > self.from_time:
            return DateRange(earliest, self.to_time)
        return self


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    A single buy/sell event of a position.

    Attributes:
        position_id: Owning position
        amount: Signed quantity (positive = buy, negative = sell)
        price: Per-unit price in the instrument's currency
        time: When the transaction happened (UTC)
        note: Free-form user note
        transaction_id: Identity from the query layer, if any
    """
    position_id: int
    amount: Decimal
    price: Decimal
    time: datetime
    note: str | None = None
    transaction_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", ensure_utc(self.time))

    @property
    def cash_flow(self) -> Decimal:
        """Money moved by this transaction (amount * price)."""
        return self.amount * self.price


@dataclass(frozen=True)
class PricePoint:
    """A single instrument price, in the instrument's currency."""
    instrument_id: int
    time: datetime
    price: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", ensure_utc(self.time))


@dataclass(frozen=True)
class ExchangeRate:
    """
    Directed exchange rate edge: 1 unit of currency_from = rate units of
    currency_to, valid from `time` until the next rate of the same pair.
    """
    currency_from: str
    currency_to: str
    time: datetime
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency_from", normalize_currency_code(self.currency_from))
        object.__setattr__(self, "currency_to", normalize_currency_code(self.currency_to))
        object.__setattr__(self, "time", ensure_utc(self.time))


@dataclass(frozen=True)
class ChartPoint:
    """
    One point of a charted series.

    The meaning of `value` (price, value, profit, performance) is decided
    by whoever produced the point.
    """
    time: datetime
    value: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", ensure_utc(self.time))


# =============================================================================
# PRICE HISTORY
# =============================================================================

class PriceHistory:
    """
    Time-ordered, sparse price series of one instrument.

    Lookups are "as of": the price at an instant is the latest point
    at or before it. Prices are never interpolated.

    Example:
        history = PriceHistory([
            PricePoint(1, datetime(2022, 1, 1), Decimal("100")),
            PricePoint(1, datetime(2022, 1, 3), Decimal("150")),
        ])
        history.price_at(datetime(2022, 1, 2))  # Decimal("100")
    """

    def __init__(self, points: Iterable[PricePoint] = ()) -> None:
        self._points: list[PricePoint] = sorted(points, key=lambda p: p.time)
        self._times: list[datetime] = [p.time for p in self._points]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self._points)

    def __bool__(self) -> bool:
        return bool(self._points)

    @property
    def first_time(self) -> datetime | None:
        return self._times[0] if self._times else None

    def point_at(self, time: datetime) -> PricePoint | None:
        """Return the latest price point at or before `time`."""
        index = bisect_right(self._times, ensure_utc(time))
        if index == 0:
            return None
        return self._points[index - 1]

    def price_at(self, time: datetime) -> Decimal | None:
        """Return the latest price at or before `time`, or None."""
        point = self.point_at(time)
        return point.price if point is not None else None


# =============================================================================
# INPUT BUNDLE
# =============================================================================

@dataclass(frozen=True)
class PositionPriceData:
    """
    Everything the calculators need for one position.

    Transactions are stored sorted by time; ties keep their input order.
    All money values (transaction prices and price points) are in
    `currency`.

    Attributes:
        position_id: Position identity
        currency: Currency of every price in this bundle
        transactions: Transactions sorted by time
        prices: Price history of the position's instrument
        instrument_id: Instrument identity, if known
    """
    position_id: int
    currency: str
    transactions: tuple[Transaction, ...] = ()
    prices: PriceHistory = field(default_factory=PriceHistory)
    instrument_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency", normalize_currency_code(self.currency))
        object.__setattr__(
            self, "transactions", tuple(sorted(self.transactions, key=lambda t: t.time))
        )

    @property
    def first_transaction_time(self) -> datetime | None:
        return self.transactions[0].time if self.transactions else None

    def transactions_until(self, time: datetime) -> list[Transaction]:
        """Transactions at or before `time`."""
        return [t for t in self.transactions if t.time <= time]

    def valuation_start(self, date_range: DateRange) -> datetime:
        """
        Earliest instant of `date_range` at which the holding has a price.

        The range start is moved forward to the first price point (capped
        at the range end). Transactions before that instant are valued
        at the first known price instead of being left unvalued.
        """
        first_price = self.prices.first_time
        if first_price is None or first_price <= date_range.from_time:
            return date_range.from_time
        return min(first_price, date_range.to_time)
