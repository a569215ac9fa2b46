"""Rate card catalog administration."""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.core.errors import NotFoundError, ValidationError
from quote_pricing.models import Organization, RateCard, RateCardItem
from quote_pricing.pricing.money import round_money
from quote_pricing.pricing.taxes import TaxClass
from quote_pricing.schemas.rate_card import RateCardCreate, RateCardItemCreate
from quote_pricing.services.currency_service import CurrencyRegistry, default_registry
from quote_pricing.services.rate_card_cache import RateCardCache, get_rate_card_cache

logger = logging.getLogger(__name__)

_ONE_DAY = datetime.timedelta(days=1)


def _windows_overlap(
    start_a: datetime.date,
    end_a: datetime.date | None,
    start_b: datetime.date,
    end_b: datetime.date | None,
) -> bool:
    a_before_b = end_a is not None and end_a < start_b
    b_before_a = end_b is not None and end_b < start_a
    return not (a_before_b or b_before_a)


class RateCardCatalogService:
    """Create and maintain rate cards; every change busts the resolver cache."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        cache: RateCardCache | None = None,
        currencies: CurrencyRegistry | None = None,
    ) -> None:
        self._session = session
        self._cache = cache if cache is not None else get_rate_card_cache()
        self._currencies = currencies if currencies is not None else default_registry()

    async def _get_card(self, organization_id: UUID, rate_card_id: UUID) -> RateCard:
        card = await self._session.get(RateCard, rate_card_id)
        if card is None or card.organization_id != organization_id:
            raise NotFoundError(f"Rate card {rate_card_id} not found", field="rate_card_id")
        return card

    async def _items_for(self, rate_card_id: UUID, item_code: str) -> list[RateCardItem]:
        result = await self._session.execute(
            select(RateCardItem)
            .where(
                RateCardItem.rate_card_id == rate_card_id,
                RateCardItem.item_code == item_code,
                RateCardItem.is_active.is_(True),
            )
            .order_by(RateCardItem.effective_from)
        )
        return list(result.scalars().all())

    async def _commit(self, organization_id: UUID) -> None:
        await self._session.commit()
        await self._cache.invalidate(organization_id)

    async def list_cards(self, organization_id: UUID) -> list[RateCard]:
        result = await self._session.execute(
            select(RateCard)
            .where(RateCard.organization_id == organization_id)
            .order_by(RateCard.effective_from.desc(), RateCard.name)
        )
        return list(result.scalars().all())

    async def create_card(self, organization_id: UUID, payload: RateCardCreate) -> RateCard:
        """Create a rate card version for the organization."""

        if await self._session.get(Organization, organization_id) is None:
            raise NotFoundError(
                f"Organization {organization_id} not found", field="organization_id"
            )
        currency = self._currencies.require(payload.currency)
        card = RateCard(
            organization_id=organization_id,
            name=payload.name,
            description=payload.description,
            currency=currency,
            effective_from=payload.effective_from,
            effective_until=payload.effective_until,
            is_default=payload.is_default,
            is_active=payload.is_active,
        )
        self._session.add(card)
        await self._commit(organization_id)
        await self._session.refresh(card)
        logger.info(
            "Created rate card %s (%s) for org %s effective %s",
            card.id,
            card.name,
            organization_id,
            card.effective_from,
        )
        return card

    async def add_item(
        self,
        organization_id: UUID,
        rate_card_id: UUID,
        payload: RateCardItemCreate,
    ) -> RateCardItem:
        """Add a priced item; windows for the same code may not overlap."""

        card = await self._get_card(organization_id, rate_card_id)
        for existing in await self._items_for(card.id, payload.item_code):
            if _windows_overlap(
                existing.effective_from,
                existing.effective_until,
                payload.effective_from,
                payload.effective_until,
            ):
                raise ValidationError(
                    f"Item {payload.item_code!r} already has a rate effective "
                    f"from {existing.effective_from.isoformat()}",
                    field="effective_from",
                )
        item = RateCardItem(
            rate_card_id=card.id,
            item_code=payload.item_code,
            description=payload.description,
            unit=payload.unit,
            base_rate=round_money(payload.base_rate, card.currency),
            currency=card.currency,
            tax_class=payload.tax_class,
            effective_from=payload.effective_from,
            effective_until=payload.effective_until,
        )
        self._session.add(item)
        await self._commit(organization_id)
        await self._session.refresh(item)
        logger.info(
            "Added item %s to rate card %s at %s from %s",
            item.item_code,
            card.id,
            item.base_rate,
            item.effective_from,
        )
        return item

    async def supersede_item(
        self,
        organization_id: UUID,
        rate_card_id: UUID,
        item_code: str,
        *,
        base_rate: Decimal,
        effective_from: datetime.date,
        tax_class: TaxClass | None = None,
    ) -> RateCardItem:
        """Close the current rate for ``item_code`` and start a new one."""

        card = await self._get_card(organization_id, rate_card_id)
        items = await self._items_for(card.id, item_code)
        current = next(
            (
                item
                for item in items
                if item.effective_from < effective_from
                and (item.effective_until is None or item.effective_until >= effective_from)
            ),
            None,
        )
        if current is None:
            raise NotFoundError(
                f"Item {item_code!r} has no rate effective before "
                f"{effective_from.isoformat()}",
                field="item_code",
            )
        if any(item.effective_from >= effective_from for item in items):
            raise ValidationError(
                f"Item {item_code!r} already has a rate starting on or after "
                f"{effective_from.isoformat()}",
                field="effective_from",
            )
        if base_rate < 0:
            raise ValidationError("Base rate cannot be negative", field="base_rate")

        replacement = RateCardItem(
            rate_card_id=card.id,
            item_code=item_code,
            description=current.description,
            unit=current.unit,
            base_rate=round_money(base_rate, card.currency),
            currency=card.currency,
            tax_class=tax_class or current.tax_class,
            effective_from=effective_from,
            effective_until=current.effective_until,
        )
        current.effective_until = effective_from - _ONE_DAY
        self._session.add(replacement)
        await self._commit(organization_id)
        await self._session.refresh(replacement)
        logger.info(
            "Superseded item %s on rate card %s from %s",
            item_code,
            card.id,
            effective_from,
        )
        return replacement

    async def set_card_active(
        self, organization_id: UUID, rate_card_id: UUID, *, is_active: bool
    ) -> RateCard:
        card = await self._get_card(organization_id, rate_card_id)
        card.is_active = is_active
        await self._commit(organization_id)
        logger.info(
            "Rate card %s %s", card.id, "activated" if is_active else "deactivated"
        )
        return card


__all__ = ["RateCardCatalogService"]
