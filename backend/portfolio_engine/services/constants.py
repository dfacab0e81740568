# backend/portfolio_engine/services/constants.py
"""
Centralized constants for the portfolio analytics services.

This module provides a single source of truth for the business constants
used across calculators, the converter and the aggregators.

Usage:
    from portfolio_engine.services.constants import (
        ZERO,
        CALENDAR_DAYS_PER_YEAR,
        EARLIEST_SUPPORTED_TIME,
    )
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal


# =============================================================================
# NUMERIC CONSTANTS
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")

# Standard number of calendar days in a year
# Used as the exponent base of the money-weighted return
CALENDAR_DAYS_PER_YEAR: int = 365

SECONDS_PER_DAY: int = 86_400


# =============================================================================
# DATE RANGE SENTINELS
# =============================================================================

# Earliest supported instant, used as the start of "all time" ranges
EARLIEST_SUPPORTED_TIME: datetime = datetime(1, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# AGGREGATION LIMITS
# =============================================================================

# Maximum span a chart may cover per aggregation frequency.
# Keeps bucket counts bounded: 14 days of 5-minute buckets is ~4000 points.
FIVE_MINUTE_RANGE_LIMIT: timedelta = timedelta(days=14)
HOURLY_RANGE_LIMIT: timedelta = timedelta(days=180)
DAILY_RANGE_LIMIT: timedelta = timedelta(days=3650)
WEEKLY_RANGE_LIMIT: timedelta = timedelta(days=25 * 365)
MONTHLY_RANGE_LIMIT: timedelta = timedelta(days=50 * 365)
YEARLY_RANGE_LIMIT: timedelta = timedelta(days=50 * 365)


# =============================================================================
# STATISTICS WINDOWS
# =============================================================================

# Lookback windows of the dashboard statistics, relative to "now"
STATISTICS_WEEK_WINDOW: timedelta = timedelta(days=7)
STATISTICS_DAY_WINDOW: timedelta = timedelta(days=1)
STATISTICS_MONTH_WINDOW_MONTHS: int = 1


# =============================================================================
# IRR CALCULATION SETTINGS
# =============================================================================

# Maximum iterations for Newton-Raphson before falling back to bisection
IRR_MAX_ITERATIONS: int = 100

# Convergence tolerance on the period growth factor
IRR_TOLERANCE: Decimal = Decimal("0.0000001")

# Number of times the bisection bracket may double in each direction
IRR_MAX_BRACKET_EXPANSIONS: int = 64

# Bisection iterations; 200 halvings exhaust the 28-digit Decimal context
IRR_MAX_BISECTION_ITERATIONS: int = 200


# =============================================================================
# PRECISION
# =============================================================================

# Quantization applied to solver output
RATE_PRECISION: Decimal = Decimal("0.00000001")
