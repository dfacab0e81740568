# backend/portfolio_engine/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO transport
knowledge. Callers (an HTTP layer, a job runner) decide how to surface them.

All of them are recoverable by the caller. Calculators never raise for
"no data" conditions; they return the defined zero/empty result instead.
Currency conversion failures always propagate and are never turned into
a zero amount.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidRangeError
    ├── FXRateError
    │   ├── FXConversionError
    │   └── ConversionUnavailableError
    │       ├── NoExchangeRateAvailableError
    │       └── MissingDefaultCurrencyError
    └── AnalyticsError
        └── PerformanceUndefinedError
"""

from datetime import datetime


class ServiceError(Exception):
    """
    Root of every error the engine raises on purpose.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when an argument handed to the engine is malformed.

    Attributes:
        field: Name of the offending argument, if known
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidRangeError(ValidationError):
    """
    Raised when a date range is malformed.

    Examples:
    - from is after to
    - the range lies outside supported history

    Attributes:
        from_time: Requested range start
        to_time: Requested range end
    """

    def __init__(
            self,
            from_time: datetime,
            to_time: datetime,
            message: str | None = None,
    ) -> None:
        self.from_time = from_time
        self.to_time = to_time
        msg = message or f"Invalid date range: {from_time.isoformat()} is after {to_time.isoformat()}"
        super().__init__(msg, field="date_range")


# =============================================================================
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for currency conversion errors.

    Attributes:
        base_currency: The source currency code
        quote_currency: The target currency code
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(message)


class FXConversionError(FXRateError):
    """
    Raised when a rate exists but cannot be used.

    Examples:
    - A zero rate that would have to be inverted
    - A negative rate in the source data

    Attributes:
        reason: What was wrong with the rate
    """

    def __init__(
            self,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            f"FX conversion error: {reason}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


class ConversionUnavailableError(FXRateError):
    """
    Raised when no conversion path exists between two currencies.

    Should not happen while the default currency is reachable from every
    tracked currency, but it is a defined error rather than a crash.
    """
    pass


class NoExchangeRateAvailableError(ConversionUnavailableError):
    """
    Raised when neither a direct rate nor a path through the default
    currency exists at the requested instant.

    Attributes:
        time: Instant the conversion was requested for
    """

    def __init__(
            self,
            base_currency: str,
            quote_currency: str,
            time: datetime,
            message: str | None = None,
    ) -> None:
        self.time = time
        msg = message or (
            f"No exchange rate available for {base_currency}/{quote_currency} "
            f"at {time.isoformat()}"
        )
        super().__init__(msg, base_currency=base_currency, quote_currency=quote_currency)


class MissingDefaultCurrencyError(ConversionUnavailableError):
    """
    Raised when a conversion needs the pivot currency but none is configured.
    """

    def __init__(self, base_currency: str, quote_currency: str) -> None:
        super().__init__(
            f"Cannot triangulate {base_currency}/{quote_currency}: no default currency configured",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


# =============================================================================
# ANALYTICS ERRORS
# =============================================================================


class AnalyticsError(ServiceError):
    """
    Base exception for return calculation errors.
    """
    pass


class PerformanceUndefinedError(AnalyticsError):
    """
    Raised when a money-weighted return cannot be determined.

    This typically means:
    - All cash flows are zero, or none of them is money in
    - Every flow happens at the same instant
    - The measured period has zero length
    - The flows never change sign, so no rate zeroes their present value
    - The solver did not converge, or the annualized rate overflows

    Callers report this as "no performance" rather than failing the
    surrounding computation.

    Attributes:
        reason: Why the rate is undefined
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Performance is undefined: {reason}")


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidRangeError",
    # FX Rates
    "FXRateError",
    "FXConversionError",
    "ConversionUnavailableError",
    "NoExchangeRateAvailableError",
    "MissingDefaultCurrencyError",
    # Analytics
    "AnalyticsError",
    "PerformanceUndefinedError",
]
