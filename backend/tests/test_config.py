"""Tests for settings and logging setup."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError as SettingsValidationError

from quote_pricing.core.config import Settings, get_settings
from quote_pricing.core.logging_config import configure_logging
from quote_pricing.security.logging_filters import SensitiveFilter


def test_defaults() -> None:
    settings = Settings(DEFAULT_CURRENCY="NZD", DEFAULT_TAX_RATE="0.15")
    assert settings.default_currency == "NZD"
    assert settings.default_tax_rate == Decimal("0.15")
    assert settings.rate_card_cache_ttl_seconds == 60
    assert settings.rate_card_cache_prefix == "pricing"


def test_currency_is_normalized() -> None:
    assert Settings(DEFAULT_CURRENCY=" usd ").default_currency == "USD"


@pytest.mark.parametrize(
    "overrides",
    [
        {"DEFAULT_TAX_RATE": "1.5"},
        {"DEFAULT_TAX_RATE": "-0.1"},
        {"RATE_CARD_CACHE_TTL_SECONDS": 0},
        {"RATE_CARD_CACHE_BACKEND": "memcached"},
    ],
)
def test_invalid_settings(overrides: dict[str, object]) -> None:
    with pytest.raises(SettingsValidationError):
        Settings(**overrides)


def test_get_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_TAX_RATE", "0.1")
    get_settings.cache_clear()
    try:
        assert get_settings().default_tax_rate == Decimal("0.1")
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_configure_logging_sets_level_and_filter_once() -> None:
    package_logger = logging.getLogger("quote_pricing")
    previous_level = package_logger.level
    try:
        settings = Settings(LOG_LEVEL="debug")
        configure_logging(settings)
        configure_logging(settings)

        assert package_logger.level == logging.DEBUG
        filters = [flt for flt in package_logger.filters if isinstance(flt, SensitiveFilter)]
        assert len(filters) == 1

        configure_logging(Settings(LOG_LEVEL="chatty"))
        assert package_logger.level == logging.INFO
    finally:
        package_logger.setLevel(previous_level)
