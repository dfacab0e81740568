# backend/portfolio_engine/utils/__init__.py
"""
Utility modules for the portfolio analytics engine.

This package contains cross-cutting utilities:
- logging: Logging configuration with correlation ID support
- context: Correlation ID management (contextvars)
- date_utils: Calendar arithmetic (bucket boundaries, month shifts)

Usage:
    from portfolio_engine.utils import setup_logging
    from portfolio_engine.utils import correlation_scope
    from portfolio_engine.utils.date_utils import add_months
"""

from portfolio_engine.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    correlation_scope,
)
from portfolio_engine.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "correlation_scope",
]
