"""Rate card and rate card item models."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_pricing.db.base import Base
from quote_pricing.models.mixins import TimestampMixin
from quote_pricing.pricing.taxes import TaxClass

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from quote_pricing.models.organization import Organization


class RateCard(TimestampMixin, Base):
    """Organization-scoped, effective-dated price catalog."""

    __tablename__ = "rate_cards"
    __table_args__ = (
        Index("ix_rate_cards_org_effective", "organization_id", "effective_from"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1024))
    currency: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    effective_from: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="rate_cards"
    )
    items: Mapped[list["RateCardItem"]] = relationship(
        "RateCardItem", back_populates="rate_card", cascade="all, delete-orphan"
    )


class RateCardItem(TimestampMixin, Base):
    """Priced catalog entry; one effective row per (card, item code) per date."""

    __tablename__ = "rate_card_items"
    __table_args__ = (
        Index("ix_rate_card_items_card_code", "rate_card_id", "item_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    rate_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rate_cards.id", ondelete="CASCADE"), nullable=False
    )
    item_code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1024))
    unit: Mapped[str] = mapped_column(String(32), default="hour", nullable=False)
    base_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    currency: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    tax_class: Mapped[TaxClass] = mapped_column(
        Enum(TaxClass, name="tax_class"), default=TaxClass.STANDARD, nullable=False
    )
    effective_from: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    rate_card: Mapped[RateCard] = relationship("RateCard", back_populates="items")
