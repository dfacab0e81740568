# backend/tests/test_config.py
"""
Tests for engine settings.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from portfolio_engine.config import Settings


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_defaults(self, monkeypatch):
        for name in (
                "ENVIRONMENT", "DEFAULT_CURRENCY", "IRR_TOLERANCE", "IRR_MAX_ITERATIONS", "MAX_WORKERS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.environment == "development"
        assert config.default_currency == "USD"
        assert config.irr_tolerance == Decimal("0.0000001")
        assert config.irr_max_iterations == 100
        assert config.max_workers == 4

    def test_currency_read_from_environment_and_upper_cased(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "eur")
        assert Settings(_env_file=None).default_currency == "EUR"

    def test_empty_currency_means_no_pivot(self):
        assert Settings(_env_file=None, default_currency="").default_currency is None

    def test_production_requires_currency(self):
        with pytest.raises(ValidationError, match="DEFAULT_CURRENCY is required"):
            Settings(_env_file=None, environment="production", default_currency="")

    def test_currency_must_be_three_letters(self):
        with pytest.raises(ValidationError, match="3-letter ISO code"):
            Settings(_env_file=None, default_currency="EURO")

    def test_iteration_floor(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, irr_max_iterations=1)

