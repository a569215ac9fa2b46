"""Currency-tagged fixed-precision money values.

Every rounding step in the engine goes through :func:`round_money` so that
repeated recalculation produces identical figures. Amounts are always held
at the minor-unit precision of their currency and binary floats are refused.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Final, Iterable

from quote_pricing.core.errors import ValidationError

ROUNDING: Final = ROUND_HALF_UP
DEFAULT_MINOR_UNITS: Final = 2

# ISO-4217 exponents that differ from the two-decimal default.
_MINOR_UNIT_OVERRIDES: Final[dict[str, int]] = {
    "BHD": 3,
    "CLP": 0,
    "ISK": 0,
    "JOD": 3,
    "JPY": 0,
    "KRW": 0,
    "KWD": 3,
    "OMR": 3,
    "TND": 3,
    "UGX": 0,
    "VND": 0,
    "XAF": 0,
    "XOF": 0,
    "XPF": 0,
}

DecimalLike = Decimal | int | str


def minor_units(currency: str) -> int:
    """Return the number of decimal places used by ``currency``."""

    return _MINOR_UNIT_OVERRIDES.get(currency.upper(), DEFAULT_MINOR_UNITS)


def quantum_for(currency: str) -> Decimal:
    """Return the smallest representable step for ``currency`` (e.g. ``0.01``)."""

    return Decimal(1).scaleb(-minor_units(currency))


def to_decimal(value: DecimalLike, *, field: str = "amount") -> Decimal:
    """Convert ``value`` into a ``Decimal`` without passing through ``float``."""

    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"{field} must be a Decimal, int or str, not {type(value).__name__}",
            field=field,
        )
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid decimal value: {value!r}", field=field) from exc
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    return result


def to_quantity(value: DecimalLike, *, field: str = "quantity") -> Decimal:
    """Convert a strictly positive quantity."""

    quantity = to_decimal(value, field=field)
    if quantity <= 0:
        raise ValidationError(f"Quantity must be positive: {quantity}", field=field)
    return quantity


def round_money(value: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit."""

    return value.quantize(quantum_for(currency), rounding=ROUNDING)


def floor_money(value: Decimal, currency: str) -> Decimal:
    """Round towards zero to the currency's minor unit."""

    return value.quantize(quantum_for(currency), rounding=ROUND_DOWN)


def _normalize_currency(code: str) -> str:
    if not isinstance(code, str):
        raise ValidationError("Currency code must be a string", field="currency")
    normalized = code.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValidationError(
            f"Invalid ISO-4217 currency code: {code!r}", field="currency"
        )
    return normalized


@functools.total_ordering
@dataclass(slots=True, frozen=True)
class Money:
    """An amount of a single currency held at minor-unit precision."""

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        currency = _normalize_currency(self.currency)
        amount = round_money(to_decimal(self.amount), currency)
        if amount.is_zero():
            amount = amount.copy_abs()
        object.__setattr__(self, "currency", currency)
        object.__setattr__(self, "amount", amount)

    @classmethod
    def of(cls, amount: DecimalLike, currency: str) -> Money:
        return cls(to_decimal(amount), currency)

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(Decimal(0), currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {operation} Money and {type(other).__name__}")
        if other.currency != self.currency:
            raise ValidationError(
                f"Cannot {operation} amounts with different currencies: "
                f"{self.currency} and {other.currency}",
                field="currency",
            )

    def __add__(self, other: Money) -> Money:
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.currency == other.currency and self.amount == other.amount

    def __lt__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def multiply(self, factor: DecimalLike) -> Money:
        """Multiply by a scalar (typically a quantity) and round once."""

        return Money(self.amount * to_decimal(factor, field="factor"), self.currency)

    def divide(self, divisor: DecimalLike) -> Money:
        value = to_decimal(divisor, field="divisor")
        if value == 0:
            raise ValidationError("Cannot divide by zero", field="divisor")
        return Money(self.amount / value, self.currency)

    def percentage(self, percent: DecimalLike) -> Money:
        """Return ``percent`` % of this amount, rounded once."""

        pct = to_decimal(percent, field="percent")
        return Money(self.amount * pct / Decimal(100), self.currency)

    def compare(self, other: Money) -> int:
        self._check_currency(other, "compare")
        if self.amount < other.amount:
            return -1
        if self.amount > other.amount:
            return 1
        return 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def clamp_non_negative(self) -> Money:
        return self if self.amount >= 0 else Money.zero(self.currency)

    def to_str(self) -> str:
        """Amount rendered at minor-unit precision, e.g. ``"6900.00"``."""

        places = minor_units(self.currency)
        return f"{self.amount:.{places}f}"

    def format(self) -> str:
        return f"{self.currency} {self.to_str()}"

    def __str__(self) -> str:
        return self.format()


def sum_money(amounts: Iterable[Money], currency: str) -> Money:
    """Sum same-currency amounts; an empty iterable sums to zero."""

    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total


def min_money(first: Money, second: Money) -> Money:
    return first if first.compare(second) <= 0 else second


__all__ = [
    "DEFAULT_MINOR_UNITS",
    "Money",
    "ROUNDING",
    "floor_money",
    "min_money",
    "minor_units",
    "quantum_for",
    "round_money",
    "sum_money",
    "to_decimal",
    "to_quantity",
]
