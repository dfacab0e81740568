# backend/portfolio_engine/config.py
"""
Engine configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- DEFAULT_CURRENCY: Pivot currency used for exchange rate triangulation
- IRR_*: Money-weighted return solver tuning
- MAX_WORKERS: Thread pool size for per-position fan-out

The default currency is never looked up globally by the calculators.
It is read here once and passed explicitly into CurrencyConverter
(see CurrencyConverter.from_settings).

Usage:
    from portfolio_engine.config import settings

    converter = CurrencyConverter(source, settings.default_currency)
"""
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio_engine.services.constants import IRR_MAX_ITERATIONS, IRR_TOLERANCE


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: 'text' or 'json' (default: "text")
        - DEFAULT_CURRENCY: ISO code of the pivot currency (default: "USD")

    Solver Settings (optional, with sensible defaults):
        - IRR_TOLERANCE: Convergence tolerance on the growth factor
        - IRR_MAX_ITERATIONS: Newton iterations before falling back to bisection
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    # =========================================================================
    # CURRENCY
    # =========================================================================
    default_currency: str | None = Field(
        default="USD",
        description="Pivot currency with a rate to/from every tracked currency"
    )

    # =========================================================================
    # IRR SOLVER
    # =========================================================================
    irr_tolerance: Decimal = Field(
        default=IRR_TOLERANCE,
        gt=0,
        description="Convergence tolerance for the money-weighted return solver"
    )
    irr_max_iterations: int = Field(
        default=IRR_MAX_ITERATIONS,
        ge=10,
        le=10_000,
        description="Maximum Newton-Raphson iterations"
    )

    # =========================================================================
    # CONCURRENCY
    # =========================================================================
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Thread pool size for per-position calculations"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        """Upper-case the currency code; an empty string means no pivot."""
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @model_validator(mode="after")
    def validate_currency_config(self) -> "Settings":
        """
        Production deployments must configure a pivot currency.

        Without one every cross-currency conversion fails with
        MissingDefaultCurrencyError, which is acceptable in tests but
        not in a running deployment.
        """
        if self.environment == "production" and self.default_currency is None:
            raise ValueError(
                "DEFAULT_CURRENCY is required in production environment. "
                "Set DEFAULT_CURRENCY to an ISO 4217 code, e.g. USD."
            )
        if self.default_currency is not None and len(self.default_currency) != 3:
            raise ValueError(
                f"DEFAULT_CURRENCY must be a 3-letter ISO code, got: {self.default_currency!r}"
            )
        return self


# Create single instance
settings = Settings()
