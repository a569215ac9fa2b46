"""Tests for the currency registry."""

from __future__ import annotations

from decimal import Decimal

import pytest

from quote_pricing.core.errors import ValidationError
from quote_pricing.models import Currency
from quote_pricing.pricing.money import Money
from quote_pricing.services.currency_service import (
    BUILTIN_CURRENCIES,
    CurrencyInfo,
    CurrencyRegistry,
    default_registry,
    seed_currencies,
)

pytestmark = pytest.mark.asyncio


async def test_builtin_registry_lookups() -> None:
    registry = default_registry()

    assert registry.is_valid_currency("nzd")
    assert not registry.is_valid_currency("XYZ")
    assert not registry.is_valid_currency(None)  # type: ignore[arg-type]
    assert registry.get_currency_symbol("NZD") == "NZ$"
    assert registry.get_currency_symbol("XYZ") is None
    assert registry.get_currency_name("EUR") == "Euro"
    assert registry.minor_units("JPY") == 0
    assert registry.minor_units("KWD") == 3
    assert registry.require(" usd ") == "USD"
    assert "NZD" in registry.active_codes()
    with pytest.raises(ValidationError):
        registry.require("XYZ")


async def test_format_amount_uses_symbol() -> None:
    registry = CurrencyRegistry()

    assert registry.format_amount(Money(Decimal("6900"), "NZD")) == "NZ$6,900.00"
    assert registry.format_amount(Money(Decimal("-5"), "NZD")) == "-NZ$5.00"
    assert registry.format_amount(Money(Decimal("1200"), "JPY")) == "¥1,200"


async def test_inactive_currencies_are_invalid() -> None:
    registry = CurrencyRegistry(
        [CurrencyInfo(code="NZD", name="New Zealand Dollar", symbol="NZ$", is_active=False)]
    )

    assert not registry.is_valid_currency("NZD")
    assert registry.get_currency_symbol("NZD") == "NZ$"
    assert registry.active_codes() == []


async def test_seed_and_load_from_database(session) -> None:
    added = await seed_currencies(session)
    assert added == len(BUILTIN_CURRENCIES)
    assert await seed_currencies(session) == 0

    session.add(Currency(code="XPF", name="CFP Franc", symbol=None, minor_units=0))
    await session.commit()

    registry = await CurrencyRegistry.load(session)
    assert registry.is_valid_currency("XPF")
    assert registry.get_currency_symbol("XPF") == "XPF"
    assert registry.minor_units("XPF") == 0
    assert registry.get_currency_symbol("GBP") == "£"


async def test_loaded_precision_follows_money_rounding(
    session, caplog: pytest.LogCaptureFixture
) -> None:
    session.add(Currency(code="ISK", name="Icelandic Krona", symbol=None, minor_units=2))
    await session.commit()

    with caplog.at_level("WARNING", logger="quote_pricing.services.currency_service"):
        registry = await CurrencyRegistry.load(session)

    assert registry.minor_units("ISK") == 0
    assert registry.format_amount(Money(Decimal("1200"), "ISK")) == "ISK1,200"
    assert any("ISK" in record.getMessage() for record in caplog.records)
