"""Line item and quote-level totals.

All functions here are pure: they read their arguments, never mutate them,
and produce the same figures on every call. Catalog prices are resolved
upstream and passed in through ``resolved_prices``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping, Protocol, Sequence

from quote_pricing.core.errors import ConsistencyError, PricingError, ValidationError
from quote_pricing.pricing.discounts import (
    Discount,
    apply_multiple_discounts,
    calculate_discount,
    discount_list,
)
from quote_pricing.pricing.money import DecimalLike, Money, sum_money, to_decimal
from quote_pricing.pricing.quote import (
    PriceSource,
    Quote,
    QuoteLineItem,
    ResolvedPrice,
)
from quote_pricing.pricing.taxes import (
    TaxBreakdown,
    TaxCalculation,
    TaxMode,
    calculate_tax,
    summarize_tax_by_rate,
    tax_rate_for_class,
    validate_tax_rate,
)


class CurrencyValidator(Protocol):
    def is_valid_currency(self, code: str) -> bool: ...


@dataclass(slots=True, frozen=True)
class LineContext:
    """Inputs for a single line that come from outside the line itself."""

    currency: str
    resolved_price: ResolvedPrice | None = None
    default_tax_rate: Decimal = Decimal(0)


@dataclass(slots=True, frozen=True)
class LineCalculation:
    """Derived monetary figures for one line item."""

    line_number: int
    quantity: Decimal
    unit_price: Money
    price_source: PriceSource
    raw_amount: Money
    line_discount_amount: Money
    line_subtotal: Money
    line_tax_amount: Money
    line_total: Money
    tax: TaxCalculation

    @property
    def net_amount(self) -> Money:
        """Pre-discount amount excluding any tax embedded in the price."""

        return self.line_subtotal + self.line_discount_amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_number": self.line_number,
            "quantity": _decimal_str(self.quantity),
            "unit_price": self.unit_price.to_str(),
            "source": self.price_source.value,
            "raw_amount": self.raw_amount.to_str(),
            "line_discount_amount": self.line_discount_amount.to_str(),
            "line_subtotal": self.line_subtotal.to_str(),
            "line_tax_amount": self.line_tax_amount.to_str(),
            "line_total": self.line_total.to_str(),
            "tax_rate": _decimal_str(self.tax.tax_rate),
            "tax_mode": self.tax.mode.value,
        }


@dataclass(slots=True, frozen=True)
class QuoteTotals:
    """Aggregate quote figures plus the per-line breakdown."""

    currency: str
    subtotal: Money
    line_discount_amount: Money
    quote_discount_amount: Money
    discount_amount: Money
    taxable_amount: Money
    tax_amount: Money
    total_amount: Money
    per_line: tuple[LineCalculation, ...] = field(default_factory=tuple)
    tax_breakdown: tuple[TaxBreakdown, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain types; identical inputs give identical output."""

        return {
            "currency": self.currency,
            "subtotal": self.subtotal.to_str(),
            "line_discount_amount": self.line_discount_amount.to_str(),
            "quote_discount_amount": self.quote_discount_amount.to_str(),
            "discount_amount": self.discount_amount.to_str(),
            "taxable_amount": self.taxable_amount.to_str(),
            "tax_amount": self.tax_amount.to_str(),
            "total_amount": self.total_amount.to_str(),
            "per_line": [line.to_dict() for line in self.per_line],
            "tax_breakdown": [
                {
                    "tax_rate": _decimal_str(entry.tax_rate),
                    "taxable_amount": entry.taxable_amount.to_str(),
                    "tax_amount": entry.tax_amount.to_str(),
                }
                for entry in self.tax_breakdown
            ],
        }


def _decimal_str(value: Decimal) -> str:
    return f"{value.normalize():f}"


def _unit_price_for(
    item: QuoteLineItem, context: LineContext
) -> tuple[Money, PriceSource]:
    if context.resolved_price is not None:
        return context.resolved_price.unit_price, context.resolved_price.source
    if item.unit_price is not None:
        return item.unit_price, PriceSource.EXPLICIT
    raise ValidationError("No unit price resolved for line", field="unit_price")


def _tax_rate_for(item: QuoteLineItem, context: LineContext) -> Decimal:
    if item.tax_rate is not None:
        return item.tax_rate
    resolved = context.resolved_price
    if resolved is not None and resolved.tax_class is not None:
        return tax_rate_for_class(resolved.tax_class, context.default_tax_rate)
    return context.default_tax_rate


def calculate_line_item(item: QuoteLineItem, context: LineContext) -> LineCalculation:
    """Compute raw, discount, tax and total figures for one line."""

    try:
        unit_price, source = _unit_price_for(item, context)
        if unit_price.currency != context.currency:
            raise ValidationError(
                f"Line currency {unit_price.currency} does not match quote "
                f"currency {context.currency}",
                field="unit_price",
            )
        if unit_price.is_negative():
            raise ValidationError(
                f"Unit price cannot be negative: {unit_price}", field="unit_price"
            )

        raw_amount = unit_price.multiply(item.quantity)

        if item.discount is not None and item.discount.is_active:
            try:
                discount = calculate_discount(raw_amount, item.discount, item.quantity)
            except ValidationError as exc:
                raise ValidationError(exc.message, field="discount") from exc
            line_discount = discount.discount_amount
            after_discount = discount.final_amount
        else:
            line_discount = Money.zero(context.currency)
            after_discount = raw_amount

        tax = calculate_tax(after_discount, _tax_rate_for(item, context), item.tax_mode)
    except PricingError as exc:
        if exc.line_number is None:
            raise exc.at_line(item.line_number) from exc
        raise

    if tax.mode is TaxMode.EXCLUSIVE:
        line_subtotal = after_discount
        line_total = after_discount + tax.tax_amount
    else:
        line_subtotal = after_discount - tax.tax_amount
        line_total = after_discount

    return LineCalculation(
        line_number=item.line_number,
        quantity=item.quantity,
        unit_price=unit_price,
        price_source=source,
        raw_amount=raw_amount,
        line_discount_amount=line_discount,
        line_subtotal=line_subtotal,
        line_tax_amount=tax.tax_amount,
        line_total=line_total,
        tax=tax,
    )


def _check_line_numbers(line_items: list[QuoteLineItem]) -> None:
    if not line_items:
        raise ValidationError("Cannot calculate totals without line items", field="line_items")
    seen: set[int] = set()
    for item in line_items:
        if item.line_number in seen:
            raise ValidationError(
                "Duplicate line number",
                line_number=item.line_number,
                field="line_number",
            )
        seen.add(item.line_number)


def _assert_consistent(totals: QuoteTotals, has_quote_discount: bool) -> None:
    for line in totals.per_line:
        if line.raw_amount - line.line_discount_amount < Money.zero(totals.currency):
            raise ConsistencyError(
                "Line discount exceeds raw amount",
                line_number=line.line_number,
                field="line_discount_amount",
            )
        if line.line_subtotal + line.line_tax_amount != line.line_total:
            raise ConsistencyError(
                "Line total does not equal subtotal plus tax",
                line_number=line.line_number,
                field="line_total",
            )
    if totals.discount_amount > totals.subtotal:
        raise ConsistencyError(
            "Discount exceeds subtotal; total would be negative", field="discount_amount"
        )
    if totals.taxable_amount != totals.subtotal - totals.discount_amount:
        raise ConsistencyError(
            f"Taxable amount {totals.taxable_amount} does not match subtotal - discount",
            field="taxable_amount",
        )
    expected = totals.taxable_amount + totals.tax_amount
    if expected != totals.total_amount or totals.total_amount.is_negative():
        raise ConsistencyError(
            f"Total {totals.total_amount} does not match taxable amount + tax ({expected})",
            field="total_amount",
        )
    if not has_quote_discount:
        line_sum = sum_money((line.line_total for line in totals.per_line), totals.currency)
        if line_sum != totals.total_amount:
            raise ConsistencyError(
                f"Total {totals.total_amount} does not match sum of line totals {line_sum}",
                field="total_amount",
            )


def calculate_quote_totals(
    line_items: Iterable[QuoteLineItem],
    quote_level_discount: Discount | Sequence[Discount] | None,
    currency: str,
    *,
    resolved_prices: Mapping[int, ResolvedPrice] | None = None,
    default_tax_rate: DecimalLike = 0,
    currency_validator: CurrencyValidator | None = None,
) -> QuoteTotals:
    """Fold line calculations into quote-level subtotal, discount, tax and total.

    ``quote_level_discount`` may be one discount or several; several are
    applied in order, each to what the previous ones left.
    """

    code = Money.zero(currency).currency
    if currency_validator is not None and not currency_validator.is_valid_currency(code):
        raise ValidationError(f"Unknown currency code: {code}", field="currency")
    fallback_rate = validate_tax_rate(to_decimal(default_tax_rate, field="tax_rate"))

    items = list(line_items)
    _check_line_numbers(items)
    resolved_prices = resolved_prices or {}

    per_line = tuple(
        calculate_line_item(
            item,
            LineContext(
                currency=code,
                resolved_price=resolved_prices.get(item.line_number),
                default_tax_rate=fallback_rate,
            ),
        )
        for item in items
    )

    subtotal = sum_money((line.net_amount for line in per_line), code)
    line_discounts = sum_money((line.line_discount_amount for line in per_line), code)
    tax_amount = sum_money((line.line_tax_amount for line in per_line), code)

    quote_discounts = [d for d in discount_list(quote_level_discount) if d.is_active]
    has_quote_discount = bool(quote_discounts)
    if has_quote_discount:
        total_quantity = sum((item.quantity for item in items), Decimal(0))
        try:
            quote_discount = apply_multiple_discounts(
                subtotal - line_discounts, quote_discounts, total_quantity
            ).discount_amount
        except ValidationError as exc:
            raise ValidationError(exc.message, field="quote_level_discount") from exc
    else:
        quote_discount = Money.zero(code)

    discount_amount = line_discounts + quote_discount
    taxable_amount = subtotal - discount_amount
    total_amount = (taxable_amount + tax_amount).clamp_non_negative()

    totals = QuoteTotals(
        currency=code,
        subtotal=subtotal,
        line_discount_amount=line_discounts,
        quote_discount_amount=quote_discount,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
        per_line=per_line,
        tax_breakdown=tuple(summarize_tax_by_rate((line.tax for line in per_line), code)),
    )
    _assert_consistent(totals, has_quote_discount)
    return totals


def recalculate_quote(
    quote: Quote,
    *,
    resolved_prices: Mapping[int, ResolvedPrice] | None = None,
    default_tax_rate: DecimalLike = 0,
    currency_validator: CurrencyValidator | None = None,
) -> QuoteTotals:
    """Recompute totals for ``quote`` regardless of its status."""

    return calculate_quote_totals(
        quote.line_items,
        quote.quote_level_discount,
        quote.currency,
        resolved_prices=resolved_prices,
        default_tax_rate=default_tax_rate,
        currency_validator=currency_validator,
    )


__all__ = [
    "LineCalculation",
    "LineContext",
    "QuoteTotals",
    "calculate_line_item",
    "calculate_quote_totals",
    "recalculate_quote",
]
