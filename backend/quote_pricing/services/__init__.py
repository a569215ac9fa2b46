"""Service layer exports."""

from quote_pricing.services.currency_service import CurrencyRegistry, seed_currencies
from quote_pricing.services.quote_pricing_service import (
    QuotePricingService,
    build_quote_pricing_service,
    quote_pricing_session,
)
from quote_pricing.services.rate_card_cache import (
    InMemoryRateCardCache,
    NullRateCardCache,
    RedisRateCardCache,
    build_rate_card_cache,
    get_rate_card_cache,
)
from quote_pricing.services.rate_card_repository import SqlRateCardRepository
from quote_pricing.services.rate_card_resolver import RateCardResolver, ResolvedLinePrice
from quote_pricing.services.rate_card_service import RateCardCatalogService

__all__ = [
    "CurrencyRegistry",
    "InMemoryRateCardCache",
    "NullRateCardCache",
    "QuotePricingService",
    "RateCardCatalogService",
    "RateCardResolver",
    "RedisRateCardCache",
    "ResolvedLinePrice",
    "SqlRateCardRepository",
    "build_quote_pricing_service",
    "build_rate_card_cache",
    "get_rate_card_cache",
    "quote_pricing_session",
    "seed_currencies",
]
