"""Rate card schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from quote_pricing.pricing.taxes import TaxClass


def _covers(
    effective_from: datetime.date,
    effective_until: datetime.date | None,
    on: datetime.date,
) -> bool:
    if on < effective_from:
        return False
    return effective_until is None or on <= effective_until


class _EffectiveWindow(BaseModel):
    effective_from: datetime.date
    effective_until: datetime.date | None = None

    @model_validator(mode="after")
    def _check_window(self):
        if self.effective_until is not None and self.effective_until < self.effective_from:
            raise ValueError("effective_until must not be before effective_from")
        return self


class RateCardSnapshot(_EffectiveWindow):
    """Immutable view of a rate card, safe to cache."""

    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    currency: str
    is_default: bool = False
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True, frozen=True)

    def covers(self, on: datetime.date) -> bool:
        return _covers(self.effective_from, self.effective_until, on)


class RateCardItemSnapshot(_EffectiveWindow):
    """Immutable view of a priced catalog entry."""

    id: uuid.UUID
    rate_card_id: uuid.UUID
    item_code: str
    description: str | None = None
    unit: str = "hour"
    base_rate: Decimal
    currency: str
    tax_class: TaxClass = TaxClass.STANDARD
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True, frozen=True)

    def covers(self, on: datetime.date) -> bool:
        return _covers(self.effective_from, self.effective_until, on)


class RateCardCreate(_EffectiveWindow):
    """Payload for creating a new rate card version."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    currency: str = Field(min_length=3, max_length=3)
    is_default: bool = True
    is_active: bool = True

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class RateCardItemCreate(_EffectiveWindow):
    """Payload for adding a priced item to a rate card."""

    item_code: str = Field(min_length=1, max_length=64)
    description: str | None = None
    unit: str = "hour"
    base_rate: Decimal = Field(ge=0)
    tax_class: TaxClass = TaxClass.STANDARD
