"""Quote domain types shared by the resolver and the totals calculator."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Final, Sequence
from uuid import UUID

from quote_pricing.core.errors import PricingError, ValidationError
from quote_pricing.pricing.discounts import Discount
from quote_pricing.pricing.money import Money, to_decimal, to_quantity
from quote_pricing.pricing.taxes import TaxClass, TaxMode


class QuoteStatus(str, enum.Enum):
    """Quote lifecycle states."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATUSES: Final = frozenset(
    {
        QuoteStatus.ACCEPTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
        QuoteStatus.CANCELLED,
    }
)

# Transition table owned by the quote service; pricing never consults it.
STATUS_TRANSITIONS: Final[dict[QuoteStatus, frozenset[QuoteStatus]]] = {
    QuoteStatus.DRAFT: frozenset({QuoteStatus.PENDING, QuoteStatus.CANCELLED}),
    QuoteStatus.PENDING: frozenset(
        {
            QuoteStatus.APPROVED,
            QuoteStatus.REJECTED,
            QuoteStatus.EXPIRED,
            QuoteStatus.CANCELLED,
        }
    ),
    QuoteStatus.APPROVED: frozenset({QuoteStatus.SENT, QuoteStatus.CANCELLED}),
    QuoteStatus.SENT: frozenset(
        {
            QuoteStatus.ACCEPTED,
            QuoteStatus.REJECTED,
            QuoteStatus.EXPIRED,
            QuoteStatus.CANCELLED,
        }
    ),
    QuoteStatus.ACCEPTED: frozenset(),
    QuoteStatus.REJECTED: frozenset(),
    QuoteStatus.EXPIRED: frozenset(),
    QuoteStatus.CANCELLED: frozenset(),
}


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in STATUS_TRANSITIONS[current]


class PriceSource(str, enum.Enum):
    """Where a line's unit price came from."""

    RATE_CARD = "rate_card"
    EXPLICIT = "explicit"


@dataclass(slots=True, frozen=True)
class ResolvedPrice:
    """Unit price chosen for a line, with catalog provenance when applicable."""

    unit_price: Money
    source: PriceSource
    item_code: str | None = None
    rate_card_id: UUID | None = None
    rate_card_item_id: UUID | None = None
    tax_class: TaxClass | None = None
    unit: str | None = None


@dataclass(slots=True, frozen=True)
class QuoteLineItem:
    """One priced row of a quote as supplied by the caller."""

    line_number: int
    quantity: Decimal
    item_code: str | None = None
    unit_price: Money | None = None
    discount: Discount | None = None
    tax_rate: Decimal | None = None
    tax_mode: TaxMode = TaxMode.EXCLUSIVE
    description: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.line_number, bool) or not isinstance(self.line_number, int):
            raise ValidationError("Line number must be an integer", field="line_number")
        if self.line_number <= 0:
            raise ValidationError(
                f"Line number must be positive: {self.line_number}", field="line_number"
            )
        try:
            object.__setattr__(self, "quantity", to_quantity(self.quantity))
            if self.tax_rate is not None:
                object.__setattr__(
                    self, "tax_rate", to_decimal(self.tax_rate, field="tax_rate")
                )
            object.__setattr__(self, "tax_mode", TaxMode(self.tax_mode))
        except PricingError as exc:
            raise exc.at_line(self.line_number) from exc
        except ValueError as exc:
            raise ValidationError(
                str(exc), line_number=self.line_number, field="tax_mode"
            ) from exc


@dataclass(slots=True)
class Quote:
    """Quote inputs that drive a totals recalculation."""

    currency: str
    line_items: list[QuoteLineItem] = field(default_factory=list)
    quote_level_discount: Discount | Sequence[Discount] | None = None
    status: QuoteStatus = QuoteStatus.DRAFT


__all__ = [
    "PriceSource",
    "Quote",
    "QuoteLineItem",
    "QuoteStatus",
    "ResolvedPrice",
    "STATUS_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
]
