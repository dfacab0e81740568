# backend/portfolio_engine/utils/context.py
"""
Calculation context management for the analytics engine.

Stores a correlation ID for the calculation request currently being
served, so every log line emitted by the converter, calculators and
aggregators while serving it can be tied together.

Uses Python's contextvars. Note that worker threads of a
ThreadPoolExecutor do not inherit the caller's context on their own;
PortfolioAggregator submits work through contextvars.copy_context()
for that reason.

Usage:
    from portfolio_engine.utils.context import correlation_scope

    with correlation_scope("dashboard-42"):
        aggregator.get_portfolio_statistics(...)
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

# Correlation ID for request tracing
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """
    Get the current calculation's correlation ID.

    Returns:
        The correlation ID, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current context.

    Args:
        correlation_id: Unique identifier for this calculation request
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a with-block.

    A random ID is generated when none is given. The previous value is
    restored on exit, so scopes nest.

    Args:
        correlation_id: ID to bind, or None to generate one

    Yields:
        The bound correlation ID
    """
    value = correlation_id or uuid.uuid4().hex
    token = _correlation_id_var.set(value)
    try:
        yield value
    finally:
        _correlation_id_var.reset(token)
