"""Currency reference data and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.core.errors import ValidationError
from quote_pricing.models import Currency
from quote_pricing.pricing.money import Money, minor_units

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CurrencyInfo:
    """Display and precision details for one ISO-4217 currency."""

    code: str
    name: str
    symbol: str
    minor_units: int = 2
    is_active: bool = True


def _info(code: str, name: str, symbol: str) -> CurrencyInfo:
    return CurrencyInfo(code=code, name=name, symbol=symbol, minor_units=minor_units(code))


def _row_info(row: Currency) -> CurrencyInfo:
    precision = minor_units(row.code)
    if row.minor_units != precision:
        logger.warning(
            "Currency %s stores minor_units=%s; using %s",
            row.code,
            row.minor_units,
            precision,
        )
    return CurrencyInfo(
        code=row.code,
        name=row.name,
        symbol=row.symbol or row.code,
        minor_units=precision,
        is_active=row.is_active,
    )


BUILTIN_CURRENCIES: tuple[CurrencyInfo, ...] = (
    _info("NZD", "New Zealand Dollar", "NZ$"),
    _info("AUD", "Australian Dollar", "A$"),
    _info("USD", "US Dollar", "$"),
    _info("CAD", "Canadian Dollar", "C$"),
    _info("EUR", "Euro", "€"),
    _info("GBP", "British Pound", "£"),
    _info("CHF", "Swiss Franc", "CHF"),
    _info("JPY", "Japanese Yen", "¥"),
    _info("CNY", "Chinese Yuan", "¥"),
    _info("HKD", "Hong Kong Dollar", "HK$"),
    _info("SGD", "Singapore Dollar", "S$"),
    _info("INR", "Indian Rupee", "₹"),
    _info("FJD", "Fijian Dollar", "FJ$"),
    _info("KRW", "South Korean Won", "₩"),
    _info("KWD", "Kuwaiti Dinar", "KD"),
)


class CurrencyRegistry:
    """Lookup table of currencies accepted on rate cards and quotes."""

    def __init__(self, currencies: Iterable[CurrencyInfo] | None = None) -> None:
        source = BUILTIN_CURRENCIES if currencies is None else currencies
        self._currencies = {info.code.upper(): info for info in source}

    @classmethod
    async def load(cls, session: AsyncSession) -> CurrencyRegistry:
        """Build a registry from the ``currencies`` table.

        Precision always comes from :func:`minor_units`; a row that disagrees
        is logged and overridden.
        """

        rows = (await session.execute(select(Currency).order_by(Currency.code))).scalars()
        return cls(_row_info(row) for row in rows)

    def get(self, code: str) -> CurrencyInfo | None:
        if not isinstance(code, str):
            return None
        return self._currencies.get(code.strip().upper())

    def is_valid_currency(self, code: str) -> bool:
        info = self.get(code)
        return info is not None and info.is_active

    def require(self, code: str) -> str:
        """Return the normalized code or raise ``ValidationError``."""

        if not self.is_valid_currency(code):
            raise ValidationError(f"Unknown currency code: {code!r}", field="currency")
        return code.strip().upper()

    def get_currency_symbol(self, code: str) -> str | None:
        info = self.get(code)
        return info.symbol if info else None

    def get_currency_name(self, code: str) -> str | None:
        info = self.get(code)
        return info.name if info else None

    def minor_units(self, code: str) -> int:
        info = self.get(code)
        return info.minor_units if info else minor_units(code)

    def active_codes(self) -> list[str]:
        return sorted(code for code, info in self._currencies.items() if info.is_active)

    def format_amount(self, money: Money) -> str:
        """Render ``money`` with its symbol, e.g. ``NZ$6,900.00``."""

        symbol = self.get_currency_symbol(money.currency) or f"{money.currency} "
        places = self.minor_units(money.currency)
        sign = "-" if money.is_negative() else ""
        return f"{sign}{symbol}{abs(money.amount):,.{places}f}"


@lru_cache
def default_registry() -> CurrencyRegistry:
    """Registry backed by the built-in currency table."""
    return CurrencyRegistry()


async def seed_currencies(
    session: AsyncSession,
    currencies: Iterable[CurrencyInfo] = BUILTIN_CURRENCIES,
) -> int:
    """Insert missing currencies and return how many rows were added."""

    existing = set((await session.execute(select(Currency.code))).scalars())
    added = 0
    for info in currencies:
        if info.code in existing:
            continue
        session.add(
            Currency(
                code=info.code,
                name=info.name,
                symbol=info.symbol,
                minor_units=info.minor_units,
                is_active=info.is_active,
            )
        )
        existing.add(info.code)
        added += 1
    if added:
        await session.commit()
        logger.info("Seeded %s currencies", added)
    return added
