"""Pure pricing arithmetic: money, discounts, taxes and quote totals."""

from quote_pricing.pricing.discounts import (
    Discount,
    DiscountCalculation,
    DiscountType,
    FixedAmountDiscount,
    PercentageDiscount,
    PerUnitDiscount,
    apply_multiple_discounts,
    calculate_discount,
    make_discount,
    validate_discount,
)
from quote_pricing.pricing.money import Money, round_money, sum_money
from quote_pricing.pricing.quote import (
    PriceSource,
    Quote,
    QuoteLineItem,
    QuoteStatus,
    ResolvedPrice,
)
from quote_pricing.pricing.taxes import TaxClass, TaxMode, calculate_tax
from quote_pricing.pricing.totals import (
    LineCalculation,
    QuoteTotals,
    calculate_line_item,
    calculate_quote_totals,
    recalculate_quote,
)

__all__ = [
    "Discount",
    "DiscountCalculation",
    "DiscountType",
    "FixedAmountDiscount",
    "LineCalculation",
    "Money",
    "PerUnitDiscount",
    "PercentageDiscount",
    "PriceSource",
    "Quote",
    "QuoteLineItem",
    "QuoteStatus",
    "QuoteTotals",
    "ResolvedPrice",
    "TaxClass",
    "TaxMode",
    "apply_multiple_discounts",
    "calculate_discount",
    "calculate_line_item",
    "calculate_quote_totals",
    "calculate_tax",
    "make_discount",
    "recalculate_quote",
    "round_money",
    "sum_money",
    "validate_discount",
]
