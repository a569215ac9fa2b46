"""Read access to organization rate cards."""

from __future__ import annotations

import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.models import RateCard, RateCardItem
from quote_pricing.schemas.rate_card import RateCardItemSnapshot, RateCardSnapshot


class RateCardRepository(Protocol):
    async def get_active_card(
        self, organization_id: UUID, effective_date: datetime.date
    ) -> RateCardSnapshot | None: ...

    async def get_card(
        self, organization_id: UUID, rate_card_id: UUID
    ) -> RateCardSnapshot | None: ...

    async def get_item(
        self, rate_card_id: UUID, item_code: str, effective_date: datetime.date
    ) -> RateCardItemSnapshot | None: ...


def _active_card_query(organization_id: UUID, effective_date: datetime.date) -> Select:
    return (
        select(RateCard)
        .where(
            RateCard.organization_id == organization_id,
            RateCard.is_active.is_(True),
            RateCard.effective_from <= effective_date,
            or_(
                RateCard.effective_until.is_(None),
                RateCard.effective_until >= effective_date,
            ),
        )
        .order_by(
            RateCard.is_default.desc(),
            RateCard.effective_from.desc(),
            RateCard.created_at.desc(),
        )
        .limit(1)
    )


class SqlRateCardRepository:
    """Repository backed by the SQLAlchemy rate card tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_card(
        self, organization_id: UUID, effective_date: datetime.date
    ) -> RateCardSnapshot | None:
        result = await self._session.execute(
            _active_card_query(organization_id, effective_date)
        )
        card = result.scalars().first()
        return RateCardSnapshot.model_validate(card) if card else None

    async def get_card(
        self, organization_id: UUID, rate_card_id: UUID
    ) -> RateCardSnapshot | None:
        card = await self._session.get(RateCard, rate_card_id)
        if card is None or card.organization_id != organization_id:
            return None
        return RateCardSnapshot.model_validate(card)

    async def get_item(
        self, rate_card_id: UUID, item_code: str, effective_date: datetime.date
    ) -> RateCardItemSnapshot | None:
        result = await self._session.execute(
            select(RateCardItem)
            .where(
                RateCardItem.rate_card_id == rate_card_id,
                RateCardItem.item_code == item_code,
                RateCardItem.is_active.is_(True),
                RateCardItem.effective_from <= effective_date,
                or_(
                    RateCardItem.effective_until.is_(None),
                    RateCardItem.effective_until >= effective_date,
                ),
            )
            .order_by(RateCardItem.effective_from.desc())
            .limit(1)
        )
        item = result.scalars().first()
        return RateCardItemSnapshot.model_validate(item) if item else None


__all__ = ["RateCardRepository", "SqlRateCardRepository"]
