"""Organization model representing a pricing tenant."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_pricing.db.base import Base
from quote_pricing.models.mixins import TimestampMixin


if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from quote_pricing.models.rate_card import RateCard


class Organization(TimestampMixin, Base):
    """A tenant whose rate cards are isolated from every other tenant."""

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    rate_cards: Mapped[list["RateCard"]] = relationship(
        "RateCard", back_populates="organization", cascade="all, delete-orphan"
    )
