"""Schema exports."""

from quote_pricing.schemas.pricing import (
    DiscountPayload,
    LinePricingRequest,
    LineTotalsRead,
    MoneyPayload,
    QuotePricingRequest,
    QuoteTotalsRead,
    ResolvedPriceRead,
)
from quote_pricing.schemas.rate_card import (
    RateCardCreate,
    RateCardItemCreate,
    RateCardItemSnapshot,
    RateCardSnapshot,
)

__all__ = [
    "DiscountPayload",
    "LinePricingRequest",
    "LineTotalsRead",
    "MoneyPayload",
    "QuotePricingRequest",
    "QuoteTotalsRead",
    "RateCardCreate",
    "RateCardItemCreate",
    "RateCardItemSnapshot",
    "RateCardSnapshot",
    "ResolvedPriceRead",
]
