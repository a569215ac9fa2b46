"""Pricing request and response schemas."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from quote_pricing.pricing.discounts import Discount, DiscountType, make_discount
from quote_pricing.pricing.money import Money
from quote_pricing.pricing.quote import PriceSource, Quote, QuoteLineItem
from quote_pricing.pricing.taxes import TaxMode


class MoneyPayload(BaseModel):
    """Currency-tagged amount as exchanged with callers."""

    amount: Decimal
    currency: str = Field(min_length=3, max_length=3)

    model_config = ConfigDict(from_attributes=True)

    def to_money(self) -> Money:
        return Money(self.amount, self.currency)


class DiscountPayload(BaseModel):
    """Discount definition with its type tag."""

    type: DiscountType
    value: Decimal = Field(ge=0)
    is_active: bool = True
    description: str | None = None

    def to_discount(self) -> Discount:
        return make_discount(
            self.type,
            self.value,
            is_active=self.is_active,
            description=self.description,
        )


class LinePricingRequest(BaseModel):
    """A single quote line as submitted for pricing."""

    line_number: int = Field(gt=0)
    item_code: str | None = None
    quantity: Decimal = Field(gt=0)
    unit_price: MoneyPayload | None = None
    discount: DiscountPayload | None = None
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    tax_mode: TaxMode = TaxMode.EXCLUSIVE
    description: str | None = None

    def to_line_item(self) -> QuoteLineItem:
        return QuoteLineItem(
            line_number=self.line_number,
            quantity=self.quantity,
            item_code=self.item_code,
            unit_price=self.unit_price.to_money() if self.unit_price else None,
            discount=self.discount.to_discount() if self.discount else None,
            tax_rate=self.tax_rate,
            tax_mode=self.tax_mode,
            description=self.description,
        )


class QuotePricingRequest(BaseModel):
    """Input payload for pricing a whole quote."""

    organization_id: uuid.UUID
    currency: str = Field(min_length=3, max_length=3)
    effective_date: datetime.date
    line_items: list[LinePricingRequest] = Field(min_length=1)
    quote_level_discount: DiscountPayload | list[DiscountPayload] | None = None

    def to_quote(self) -> Quote:
        discounts = self.quote_level_discount
        if isinstance(discounts, list):
            quote_discount: Discount | list[Discount] | None = [
                payload.to_discount() for payload in discounts
            ]
        else:
            quote_discount = discounts.to_discount() if discounts else None
        return Quote(
            currency=self.currency,
            line_items=[line.to_line_item() for line in self.line_items],
            quote_level_discount=quote_discount,
        )


class ResolvedPriceRead(BaseModel):
    """Unit price chosen for a line."""

    line_number: int
    unit_price: MoneyPayload
    source: PriceSource
    item_code: str | None = None
    rate_card_id: uuid.UUID | None = None
    rate_card_item_id: uuid.UUID | None = None

    model_config = ConfigDict(from_attributes=True)


class LineTotalsRead(BaseModel):
    """Computed figures for one line."""

    line_number: int
    quantity: Decimal
    unit_price: MoneyPayload
    price_source: PriceSource
    raw_amount: MoneyPayload
    line_discount_amount: MoneyPayload
    line_subtotal: MoneyPayload
    line_tax_amount: MoneyPayload
    line_total: MoneyPayload

    model_config = ConfigDict(from_attributes=True)


class QuoteTotalsRead(BaseModel):
    """Aggregated quote totals response."""

    currency: str
    subtotal: MoneyPayload
    discount_amount: MoneyPayload
    taxable_amount: MoneyPayload
    tax_amount: MoneyPayload
    total_amount: MoneyPayload
    per_line: list[LineTotalsRead]

    model_config = ConfigDict(from_attributes=True)
