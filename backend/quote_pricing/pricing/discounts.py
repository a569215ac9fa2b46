"""Discount calculation with guard rails against negative results."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, ClassVar, Final, Iterable, Sequence

from quote_pricing.core.errors import Result, ValidationError
from quote_pricing.pricing.money import (
    DecimalLike,
    Money,
    floor_money,
    min_money,
    to_decimal,
    to_quantity,
)

MAX_PERCENTAGE_DISCOUNT: Final = Decimal(100)
_PERCENT_PLACES: Final = Decimal("0.01")


class DiscountType(str, enum.Enum):
    """Kinds of discounts supported by the pricing engine."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    PER_UNIT = "per_unit"


@dataclass(slots=True, frozen=True)
class PercentageDiscount:
    """Percentage off the discounted base, ``percent`` in [0, 100]."""

    percent: Decimal
    is_active: bool = True
    description: str | None = None

    kind: ClassVar[DiscountType] = DiscountType.PERCENTAGE

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent", to_decimal(self.percent, field="discount"))

    @property
    def value(self) -> Decimal:
        return self.percent


@dataclass(slots=True, frozen=True)
class FixedAmountDiscount:
    """Flat amount off, in the currency of the amount being discounted."""

    amount: Decimal
    is_active: bool = True
    description: str | None = None

    kind: ClassVar[DiscountType] = DiscountType.FIXED_AMOUNT

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, field="discount"))

    @property
    def value(self) -> Decimal:
        return self.amount


@dataclass(slots=True, frozen=True)
class PerUnitDiscount:
    """Amount off each unit; scaled by the line quantity."""

    amount_per_unit: Decimal
    is_active: bool = True
    description: str | None = None

    kind: ClassVar[DiscountType] = DiscountType.PER_UNIT

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "amount_per_unit", to_decimal(self.amount_per_unit, field="discount")
        )

    @property
    def value(self) -> Decimal:
        return self.amount_per_unit


Discount = PercentageDiscount | FixedAmountDiscount | PerUnitDiscount

_DISCOUNT_CLASSES: Final[dict[DiscountType, type]] = {
    DiscountType.PERCENTAGE: PercentageDiscount,
    DiscountType.FIXED_AMOUNT: FixedAmountDiscount,
    DiscountType.PER_UNIT: PerUnitDiscount,
}


@dataclass(slots=True, frozen=True)
class DiscountCalculation:
    """Outcome of applying one or more discounts to an amount."""

    original_amount: Money
    discount_amount: Money
    final_amount: Money
    applied: tuple[Discount, ...] = field(default_factory=tuple)


def make_discount(
    discount_type: DiscountType | str,
    value: DecimalLike,
    *,
    is_active: bool = True,
    description: str | None = None,
) -> Discount:
    """Build the discount variant matching a type tag."""

    try:
        kind = DiscountType(discount_type)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid discount type: {discount_type}", field="discount"
        ) from exc
    discount_cls = _DISCOUNT_CLASSES[kind]
    return discount_cls(value, is_active=is_active, description=description)


def check_discount(discount: Discount) -> Result[Discount]:
    """Validate discount ranges without raising."""

    kind = getattr(discount, "kind", None)
    if kind not in _DISCOUNT_CLASSES:
        return Result.failure(
            ValidationError(
                f"Unsupported discount: {type(discount).__name__}", field="discount"
            )
        )
    value = discount.value
    if value < 0:
        return Result.failure(
            ValidationError(f"Discount value cannot be negative: {value}", field="discount")
        )
    if kind is DiscountType.PERCENTAGE and value > MAX_PERCENTAGE_DISCOUNT:
        return Result.failure(
            ValidationError(
                f"Percentage discount cannot exceed {MAX_PERCENTAGE_DISCOUNT}%: {value}",
                field="discount",
            )
        )
    return Result.success(discount)


def validate_discount(discount: Discount) -> Discount:
    """Raise ``ValidationError`` when the discount value is out of range."""

    return check_discount(discount).unwrap()


def _percentage_amount(original: Money, discount: Discount, _: Decimal) -> Money:
    return original.percentage(discount.value)


def _fixed_amount(original: Money, discount: Discount, _: Decimal) -> Money:
    return Money(discount.value, original.currency)


def _per_unit_amount(original: Money, discount: Discount, quantity: Decimal) -> Money:
    return Money(discount.value * quantity, original.currency)


_AMOUNT_HANDLERS: Final[dict[DiscountType, Callable[[Money, Discount, Decimal], Money]]] = {
    DiscountType.PERCENTAGE: _percentage_amount,
    DiscountType.FIXED_AMOUNT: _fixed_amount,
    DiscountType.PER_UNIT: _per_unit_amount,
}


def _unclamped_amount(original: Money, discount: Discount, quantity: Decimal) -> Money:
    handler = _AMOUNT_HANDLERS[discount.kind]
    return handler(original, discount, quantity)


def calculate_discount(
    original: Money,
    discount: Discount,
    quantity: DecimalLike = 1,
) -> DiscountCalculation:
    """Apply a single discount; the discount never exceeds the original amount.

    An inactive discount removes nothing and is not reported as applied.
    """

    if not discount.is_active:
        return DiscountCalculation(
            original_amount=original,
            discount_amount=Money.zero(original.currency),
            final_amount=original,
            applied=(),
        )
    validate_discount(discount)
    qty = to_quantity(quantity)
    if original.is_negative():
        raise ValidationError(
            f"Cannot discount a negative amount: {original}", field="amount"
        )

    discount_amount = min_money(_unclamped_amount(original, discount, qty), original)
    return DiscountCalculation(
        original_amount=original,
        discount_amount=discount_amount,
        final_amount=original - discount_amount,
        applied=(discount,),
    )


def apply_multiple_discounts(
    original: Money,
    discounts: Iterable[Discount],
    quantity: DecimalLike = 1,
) -> DiscountCalculation:
    """Apply active discounts in the given order, each to the running remainder."""

    remaining = original
    total_discount = Money.zero(original.currency)
    applied: list[Discount] = []
    for discount in discounts:
        if not discount.is_active:
            continue
        step = calculate_discount(remaining, discount, quantity)
        remaining = step.final_amount
        total_discount = total_discount + step.discount_amount
        applied.append(discount)

    return DiscountCalculation(
        original_amount=original,
        discount_amount=total_discount,
        final_amount=remaining.clamp_non_negative(),
        applied=tuple(applied),
    )


def discount_list(discounts: Discount | Sequence[Discount] | None) -> list[Discount]:
    """Normalize one discount, a sequence of them, or nothing to a list."""

    if discounts is None:
        return []
    if isinstance(discounts, Discount):
        return [discounts]
    return list(discounts)


def would_result_in_negative(
    original: Money,
    discount: Discount,
    quantity: DecimalLike = 1,
) -> bool:
    """True when the discount would have to be clamped (or is invalid)."""

    if not check_discount(discount).ok:
        return True
    qty = to_quantity(quantity)
    return _unclamped_amount(original, discount, qty) > original


def get_maximum_safe_discount(
    original: Money,
    discount_type: DiscountType | str,
    quantity: DecimalLike = 1,
) -> Decimal:
    """Largest discount value of ``discount_type`` that avoids clamping."""

    kind = DiscountType(discount_type)
    if kind is DiscountType.PERCENTAGE:
        return MAX_PERCENTAGE_DISCOUNT
    if kind is DiscountType.FIXED_AMOUNT:
        return original.clamp_non_negative().amount
    qty = to_quantity(quantity)
    return floor_money(original.clamp_non_negative().amount / qty, original.currency)


def effective_discount_percentage(original: Money, final: Money) -> Decimal:
    """Percentage of ``original`` removed to reach ``final``, to two places."""

    if original.currency != final.currency:
        raise ValidationError(
            f"Cannot compare discounts across currencies: "
            f"{original.currency} and {final.currency}",
            field="currency",
        )
    if original.is_zero():
        return Decimal("0.00")
    removed = original.amount - final.amount
    return (removed / original.amount * 100).quantize(_PERCENT_PLACES)


def format_discount(discount: Discount, currency: str | None = None) -> str:
    """Human readable label, e.g. ``10%`` or ``NZD 5.00 per unit``."""

    if discount.kind is DiscountType.PERCENTAGE:
        return f"{discount.value.normalize():f}%"
    amount = Money(discount.value, currency).format() if currency else f"{discount.value:.2f}"
    if discount.kind is DiscountType.PER_UNIT:
        return f"{amount} per unit"
    return amount


__all__ = [
    "Discount",
    "DiscountCalculation",
    "DiscountType",
    "FixedAmountDiscount",
    "MAX_PERCENTAGE_DISCOUNT",
    "PerUnitDiscount",
    "PercentageDiscount",
    "apply_multiple_discounts",
    "calculate_discount",
    "check_discount",
    "discount_list",
    "effective_discount_percentage",
    "format_discount",
    "get_maximum_safe_discount",
    "make_discount",
    "validate_discount",
    "would_result_in_negative",
]
