"""ORM models package export."""

from quote_pricing.models.currency import Currency
from quote_pricing.models.organization import Organization
from quote_pricing.models.rate_card import RateCard, RateCardItem

__all__ = [
    "Currency",
    "Organization",
    "RateCard",
    "RateCardItem",
]
