"""Tax calculation for tax-exclusive and tax-inclusive amounts."""

from __future__ import annotations

import enum
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Final, Iterable

from quote_pricing.core.errors import Result, ValidationError
from quote_pricing.pricing.money import DecimalLike, Money, sum_money, to_decimal

MIN_TAX_RATE: Final = Decimal(0)
MAX_TAX_RATE: Final = Decimal(1)


class TaxMode(str, enum.Enum):
    """Whether an amount already contains tax."""

    EXCLUSIVE = "exclusive"
    INCLUSIVE = "inclusive"


class TaxClass(str, enum.Enum):
    """Tax treatment attached to catalog items."""

    STANDARD = "standard"
    ZERO_RATED = "zero_rated"
    EXEMPT = "exempt"


@dataclass(slots=True, frozen=True)
class TaxCalculation:
    """Tax figures for one taxable base."""

    taxable_amount: Money
    tax_amount: Money
    total_amount: Money
    tax_rate: Decimal
    mode: TaxMode


@dataclass(slots=True, frozen=True)
class TaxBreakdown:
    """Taxable base and tax collected at a single rate."""

    tax_rate: Decimal
    taxable_amount: Money
    tax_amount: Money


def check_tax_rate(rate: DecimalLike) -> Result[Decimal]:
    try:
        value = to_decimal(rate, field="tax_rate")
    except ValidationError as exc:
        return Result.failure(exc)
    if value < MIN_TAX_RATE or value > MAX_TAX_RATE:
        return Result.failure(
            ValidationError(
                f"Tax rate must be between {MIN_TAX_RATE} and {MAX_TAX_RATE}: {value}",
                field="tax_rate",
            )
        )
    return Result.success(value)


def validate_tax_rate(rate: DecimalLike) -> Decimal:
    """Return the rate as a ``Decimal`` or raise ``ValidationError``."""

    return check_tax_rate(rate).unwrap()


def calculate_tax(
    base: Money,
    tax_rate: DecimalLike,
    mode: TaxMode | str = TaxMode.EXCLUSIVE,
) -> TaxCalculation:
    """Compute tax for ``base``, rounding once at the minor unit."""

    rate = validate_tax_rate(tax_rate)
    try:
        tax_mode = TaxMode(mode)
    except ValueError as exc:
        raise ValidationError(f"Invalid tax mode: {mode}", field="tax_mode") from exc

    if tax_mode is TaxMode.EXCLUSIVE:
        tax_amount = Money(base.amount * rate, base.currency)
        return TaxCalculation(
            taxable_amount=base,
            tax_amount=tax_amount,
            total_amount=base + tax_amount,
            tax_rate=rate,
            mode=tax_mode,
        )

    tax_amount = Money(base.amount - base.amount / (1 + rate), base.currency)
    return TaxCalculation(
        taxable_amount=base - tax_amount,
        tax_amount=tax_amount,
        total_amount=base,
        tax_rate=rate,
        mode=tax_mode,
    )


def extract_tax_from_inclusive(total: Money, tax_rate: DecimalLike) -> TaxCalculation:
    """Split a tax-inclusive total into its net base and tax."""

    return calculate_tax(total, tax_rate, TaxMode.INCLUSIVE)


def tax_rate_for_class(tax_class: TaxClass | str, default_rate: DecimalLike) -> Decimal:
    """Rate implied by a catalog tax class."""

    if TaxClass(tax_class) is TaxClass.STANDARD:
        return validate_tax_rate(default_rate)
    return Decimal(0)


def summarize_tax_by_rate(
    calculations: Iterable[TaxCalculation], currency: str
) -> list[TaxBreakdown]:
    """Group taxable bases and tax amounts by rate, lowest rate first."""

    grouped: dict[Decimal, list[TaxCalculation]] = defaultdict(list)
    for calculation in calculations:
        grouped[calculation.tax_rate.normalize()].append(calculation)

    return [
        TaxBreakdown(
            tax_rate=rate,
            taxable_amount=sum_money((c.taxable_amount for c in items), currency),
            tax_amount=sum_money((c.tax_amount for c in items), currency),
        )
        for rate, items in sorted(grouped.items())
    ]


__all__ = [
    "MAX_TAX_RATE",
    "MIN_TAX_RATE",
    "TaxBreakdown",
    "TaxCalculation",
    "TaxClass",
    "TaxMode",
    "calculate_tax",
    "check_tax_rate",
    "extract_tax_from_inclusive",
    "summarize_tax_by_rate",
    "tax_rate_for_class",
    "validate_tax_rate",
]
