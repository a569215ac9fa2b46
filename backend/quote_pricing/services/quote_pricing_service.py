"""Quote pricing entry points: resolve catalog prices, then compute totals."""

from __future__ import annotations

import datetime
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.core.config import Settings, get_settings
from quote_pricing.core.errors import ConsistencyError, PricingError, Result
from quote_pricing.db.session import session_scope
from quote_pricing.pricing.discounts import Discount
from quote_pricing.pricing.quote import Quote, QuoteLineItem, ResolvedPrice
from quote_pricing.pricing.totals import (
    CurrencyValidator,
    QuoteTotals,
    calculate_quote_totals,
)
from quote_pricing.schemas.pricing import QuotePricingRequest
from quote_pricing.security.permissions import PermissionCheck
from quote_pricing.services.currency_service import default_registry
from quote_pricing.services.rate_card_cache import RateCardCache, get_rate_card_cache
from quote_pricing.services.rate_card_repository import SqlRateCardRepository
from quote_pricing.services.rate_card_resolver import RateCardResolver, ResolvedLinePrice

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QuotePricingService:
    """Facade combining rate card resolution with the totals calculator."""

    resolver: RateCardResolver
    permissions: PermissionCheck | None = None
    currency_validator: CurrencyValidator | None = None
    default_tax_rate: Decimal = Decimal(0)

    async def resolve_pricing(
        self,
        organization_id: UUID,
        line_items: Iterable[QuoteLineItem],
        effective_date: datetime.date | datetime.datetime,
        has_override_permission: bool,
        currency: str | None = None,
    ) -> list[ResolvedLinePrice]:
        return await self.resolver.resolve_lines(
            organization_id,
            line_items,
            effective_date,
            has_override_permission=has_override_permission,
            currency=currency,
        )

    def calculate_quote_totals(
        self,
        line_items: Iterable[QuoteLineItem],
        quote_level_discount: Discount | Sequence[Discount] | None,
        currency: str,
        resolved_prices: Iterable[ResolvedLinePrice] | None = None,
    ) -> QuoteTotals:
        prices: dict[int, ResolvedPrice] = {
            line.line_number: line.price for line in resolved_prices or ()
        }
        return calculate_quote_totals(
            line_items,
            quote_level_discount,
            currency,
            resolved_prices=prices,
            default_tax_rate=self.default_tax_rate,
            currency_validator=self.currency_validator,
        )

    def _override_allowed(
        self, user_id: UUID | None, has_override_permission: bool | None
    ) -> bool:
        if has_override_permission is not None:
            return has_override_permission
        if user_id is None or self.permissions is None:
            return False
        return self.permissions.has_override_permission(user_id)

    async def price_quote(
        self,
        organization_id: UUID,
        quote: Quote,
        effective_date: datetime.date | datetime.datetime,
        *,
        user_id: UUID | None = None,
        has_override_permission: bool | None = None,
    ) -> QuoteTotals:
        """Resolve every line's price and return the quote totals."""

        resolved = await self.resolve_pricing(
            organization_id,
            quote.line_items,
            effective_date,
            self._override_allowed(user_id, has_override_permission),
            currency=quote.currency,
        )
        totals = self.calculate_quote_totals(
            quote.line_items,
            quote.quote_level_discount,
            quote.currency,
            resolved,
        )
        logger.debug(
            "Priced quote for org %s: %s lines, total %s",
            organization_id,
            len(totals.per_line),
            totals.total_amount,
        )
        return totals

    async def try_price_quote(
        self,
        organization_id: UUID,
        quote: Quote,
        effective_date: datetime.date | datetime.datetime,
        *,
        user_id: UUID | None = None,
        has_override_permission: bool | None = None,
    ) -> Result[QuoteTotals]:
        """Like :meth:`price_quote` but returns expected failures as a ``Result``.

        ``ConsistencyError`` still propagates; it signals a defect rather than
        a rejected quote.
        """

        try:
            totals = await self.price_quote(
                organization_id,
                quote,
                effective_date,
                user_id=user_id,
                has_override_permission=has_override_permission,
            )
        except ConsistencyError:
            raise
        except PricingError as exc:
            return Result.failure(exc)
        return Result.success(totals)

    async def price_request(
        self,
        request: QuotePricingRequest,
        *,
        user_id: UUID | None = None,
    ) -> QuoteTotals:
        """Price a quote submitted as a :class:`QuotePricingRequest`."""

        return await self.price_quote(
            request.organization_id, request.to_quote(), request.effective_date, user_id=user_id
        )


def build_quote_pricing_service(
    session: AsyncSession,
    *,
    settings: Settings | None = None,
    cache: RateCardCache | None = None,
    permissions: PermissionCheck | None = None,
    currency_validator: CurrencyValidator | None = None,
) -> QuotePricingService:
    """Wire a pricing service over ``session`` using the shared configured cache."""

    settings = settings or get_settings()
    validator = currency_validator if currency_validator is not None else default_registry()
    resolver = RateCardResolver(
        SqlRateCardRepository(session),
        cache=cache if cache is not None else get_rate_card_cache(settings),
        currency_validator=validator,
    )
    return QuotePricingService(
        resolver=resolver,
        permissions=permissions,
        currency_validator=validator,
        default_tax_rate=settings.default_tax_rate,
    )


@asynccontextmanager
async def quote_pricing_session(
    *,
    database_url: str | None = None,
    settings: Settings | None = None,
    permissions: PermissionCheck | None = None,
) -> AsyncIterator[QuotePricingService]:
    """Yield a pricing service bound to a fresh session on ``database_url``."""

    async with session_scope(database_url) as session:
        yield build_quote_pricing_service(session, settings=settings, permissions=permissions)


__all__ = ["QuotePricingService", "build_quote_pricing_service", "quote_pricing_session"]
