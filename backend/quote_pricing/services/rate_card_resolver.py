"""Resolve unit prices for quote lines from effective-dated rate cards."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from quote_pricing.core.errors import NotFoundError, PricingError, ValidationError
from quote_pricing.pricing.money import Money
from quote_pricing.pricing.quote import PriceSource, QuoteLineItem, ResolvedPrice
from quote_pricing.pricing.totals import CurrencyValidator
from quote_pricing.schemas.rate_card import RateCardItemSnapshot, RateCardSnapshot
from quote_pricing.services.rate_card_cache import (
    NullRateCardCache,
    RateCardCache,
    cache_bucket,
)
from quote_pricing.services.rate_card_repository import RateCardRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ResolvedLinePrice:
    """Price resolution outcome for a single quote line."""

    line_number: int
    price: ResolvedPrice

    @property
    def unit_price(self) -> Money:
        return self.price.unit_price

    @property
    def source(self) -> PriceSource:
        return self.price.source


def as_effective_date(value: datetime.date | datetime.datetime) -> datetime.date:
    """Normalize a date or datetime to the calendar date used for windows."""

    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    raise ValidationError(
        f"Effective date must be a date, not {type(value).__name__}",
        field="effective_date",
    )


class RateCardResolver:
    """Choose between an explicit override and the catalog price for a line."""

    def __init__(
        self,
        repository: RateCardRepository,
        *,
        cache: RateCardCache | None = None,
        currency_validator: CurrencyValidator | None = None,
    ) -> None:
        self._repository = repository
        self._cache = cache if cache is not None else NullRateCardCache()
        self._currency_validator = currency_validator

    def _normalize_currency(self, currency: str | None) -> str | None:
        if currency is None:
            return None
        code = Money.zero(currency).currency
        validator = self._currency_validator
        if validator is not None and not validator.is_valid_currency(code):
            raise ValidationError(f"Unknown currency code: {code}", field="currency")
        return code

    async def resolve_card(
        self,
        organization_id: UUID,
        effective_date: datetime.date | datetime.datetime,
        *,
        rate_card_id: UUID | None = None,
    ) -> RateCardSnapshot:
        """Return the rate card governing ``organization_id`` on the date."""

        on = as_effective_date(effective_date)
        if rate_card_id is not None:
            card = await self._repository.get_card(organization_id, rate_card_id)
            if card is None or not _card_usable(card, organization_id, on):
                raise NotFoundError(
                    f"Rate card {rate_card_id} is not effective on {on.isoformat()}",
                    field="rate_card_id",
                )
            return card

        bucket = cache_bucket(on)
        cached = await self._cache.get(organization_id, bucket)
        if cached is not None and _card_usable(cached, organization_id, on):
            logger.debug("Rate card cache hit org=%s bucket=%s", organization_id, bucket)
            return cached
        logger.debug("Rate card cache miss org=%s bucket=%s", organization_id, bucket)

        card = await self._repository.get_active_card(organization_id, on)
        if card is None or not _card_usable(card, organization_id, on):
            raise NotFoundError(
                f"No active rate card for organization {organization_id} "
                f"on {on.isoformat()}",
                field="rate_card",
            )
        await self._cache.set(organization_id, bucket, card)
        return card

    async def _resolve_item(
        self, card: RateCardSnapshot, item_code: str, on: datetime.date
    ) -> RateCardItemSnapshot:
        item = await self._repository.get_item(card.id, item_code, on)
        if (
            item is None
            or item.rate_card_id != card.id
            or not item.is_active
            or not item.covers(on)
        ):
            raise NotFoundError(
                f"Item {item_code!r} has no effective rate on {on.isoformat()}",
                field="item_code",
            )
        return item

    async def resolve_price(
        self,
        organization_id: UUID,
        item_code: str | None,
        effective_date: datetime.date | datetime.datetime,
        *,
        currency: str | None = None,
        explicit_price: Money | None = None,
        has_override_permission: bool = False,
        rate_card_id: UUID | None = None,
    ) -> ResolvedPrice:
        """Resolve one unit price; explicit prices win only with permission."""

        on = as_effective_date(effective_date)
        code = self._normalize_currency(currency)

        if explicit_price is not None and has_override_permission:
            if code is not None and explicit_price.currency != code:
                raise ValidationError(
                    f"Explicit price currency {explicit_price.currency} does not "
                    f"match quote currency {code}",
                    field="unit_price",
                )
            if explicit_price.is_negative():
                raise ValidationError(
                    f"Unit price cannot be negative: {explicit_price}", field="unit_price"
                )
            logger.debug("Using explicit price for item %s", item_code)
            return ResolvedPrice(
                unit_price=explicit_price,
                source=PriceSource.EXPLICIT,
                item_code=item_code,
            )

        if not item_code:
            raise ValidationError(
                "Line has neither a permitted explicit price nor an item code",
                field="item_code",
            )

        card = await self.resolve_card(organization_id, on, rate_card_id=rate_card_id)
        if code is not None and card.currency != code:
            raise ValidationError(
                f"Rate card currency {card.currency} does not match quote currency {code}",
                field="currency",
            )
        item = await self._resolve_item(card, item_code, on)
        if item.currency != card.currency:
            raise ValidationError(
                f"Rate card item currency {item.currency} does not match rate card "
                f"currency {card.currency}",
                field="currency",
            )

        logger.debug(
            "Resolved %s from rate card %s item %s", item_code, card.id, item.id
        )
        return ResolvedPrice(
            unit_price=Money(item.base_rate, item.currency),
            source=PriceSource.RATE_CARD,
            item_code=item_code,
            rate_card_id=card.id,
            rate_card_item_id=item.id,
            tax_class=item.tax_class,
            unit=item.unit,
        )

    async def resolve_lines(
        self,
        organization_id: UUID,
        line_items: Iterable[QuoteLineItem],
        effective_date: datetime.date | datetime.datetime,
        *,
        has_override_permission: bool = False,
        currency: str | None = None,
        rate_card_id: UUID | None = None,
    ) -> list[ResolvedLinePrice]:
        """Resolve every line or fail on the first line that cannot be priced."""

        resolved: list[ResolvedLinePrice] = []
        for item in line_items:
            try:
                price = await self.resolve_price(
                    organization_id,
                    item.item_code,
                    effective_date,
                    currency=currency,
                    explicit_price=item.unit_price,
                    has_override_permission=has_override_permission,
                    rate_card_id=rate_card_id,
                )
            except PricingError as exc:
                if exc.line_number is None:
                    raise exc.at_line(item.line_number) from exc
                raise
            resolved.append(ResolvedLinePrice(line_number=item.line_number, price=price))
        return resolved


def _card_usable(card: RateCardSnapshot, organization_id: UUID, on: datetime.date) -> bool:
    return card.organization_id == organization_id and card.is_active and card.covers(on)


__all__ = [
    "RateCardResolver",
    "ResolvedLinePrice",
    "as_effective_date",
]
