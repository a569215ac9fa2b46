"""End-to-end tests for quote pricing."""

from __future__ import annotations

import dataclasses
import datetime
import uuid
from decimal import Decimal

import pytest

from quote_pricing.core.config import Settings
from quote_pricing.core.errors import NotFoundError, ValidationError
from quote_pricing.models import Organization
from quote_pricing.pricing.discounts import FixedAmountDiscount, PercentageDiscount
from quote_pricing.pricing.money import Money
from quote_pricing.pricing.quote import PriceSource, Quote, QuoteLineItem
from quote_pricing.pricing.taxes import TaxClass
from quote_pricing.schemas.pricing import (
    QuotePricingRequest,
    QuoteTotalsRead,
    ResolvedPriceRead,
)
from quote_pricing.schemas.rate_card import RateCardCreate, RateCardItemCreate
from quote_pricing.security.permissions import GrantedPermissions
from quote_pricing.services.quote_pricing_service import (
    build_quote_pricing_service,
    quote_pricing_session,
)
from quote_pricing.services.rate_card_cache import InMemoryRateCardCache
from quote_pricing.services.rate_card_service import RateCardCatalogService

pytestmark = pytest.mark.asyncio

ON = datetime.date(2024, 3, 1)
MANAGER_ID = uuid.uuid4()
STAFF_ID = uuid.uuid4()


def _nzd(value: str) -> Money:
    return Money(Decimal(value), "NZD")


async def _seed_catalog(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    card = await service.create_card(
        organization.id,
        RateCardCreate(name="Standard", currency="NZD", effective_from=datetime.date(2024, 1, 1)),
    )
    await service.add_item(
        organization.id,
        card.id,
        RateCardItemCreate(
            item_code="DEV-STD", base_rate=Decimal("150.00"), effective_from=card.effective_from
        ),
    )
    await service.add_item(
        organization.id,
        card.id,
        RateCardItemCreate(
            item_code="SUPPORT",
            base_rate=Decimal("100.00"),
            tax_class=TaxClass.EXEMPT,
            effective_from=card.effective_from,
        ),
    )


def _service(session, cache=None):
    return build_quote_pricing_service(
        session,
        settings=Settings(DEFAULT_TAX_RATE="0.15", RATE_CARD_CACHE_BACKEND="memory"),
        cache=cache,
        permissions=GrantedPermissions({MANAGER_ID: ["quotes.override_price"]}),
    )


def _quote(**line_overrides) -> Quote:
    return Quote(
        currency="NZD",
        line_items=[
            QuoteLineItem(
                line_number=1, quantity=Decimal("40"), item_code="DEV-STD", **line_overrides
            ),
            QuoteLineItem(line_number=2, quantity=Decimal("10"), item_code="SUPPORT"),
        ],
    )


async def test_prices_quote_from_catalog(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)

    totals = await service.price_quote(organization.id, _quote(), ON)

    assert totals.subtotal == _nzd("7000.00")
    assert totals.tax_amount == _nzd("900.00")
    assert totals.total_amount == _nzd("7900.00")
    assert [line.price_source for line in totals.per_line] == [
        PriceSource.RATE_CARD,
        PriceSource.RATE_CARD,
    ]
    assert [(entry.tax_rate, entry.tax_amount) for entry in totals.tax_breakdown] == [
        (Decimal("0"), _nzd("0.00")),
        (Decimal("0.15"), _nzd("900.00")),
    ]


async def test_override_price_is_gated_by_permission(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)
    quote = _quote(unit_price=_nzd("120.00"))

    granted = await service.price_quote(organization.id, quote, ON, user_id=MANAGER_ID)
    denied = await service.price_quote(organization.id, quote, ON, user_id=STAFF_ID)
    anonymous = await service.price_quote(organization.id, quote, ON)
    forced = await service.price_quote(
        organization.id, quote, ON, user_id=STAFF_ID, has_override_permission=True
    )

    assert granted.per_line[0].price_source is PriceSource.EXPLICIT
    assert granted.per_line[0].line_total == _nzd("5520.00")
    assert denied.per_line[0].price_source is PriceSource.RATE_CARD
    assert denied.per_line[0].line_total == _nzd("6900.00")
    assert anonymous.to_dict() == denied.to_dict()
    assert forced.to_dict() == granted.to_dict()


async def test_resolve_pricing_reports_sources(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)
    lines = _quote(unit_price=_nzd("120.00")).line_items

    resolved = await service.resolve_pricing(organization.id, lines, ON, True, currency="NZD")

    assert [(line.line_number, line.source) for line in resolved] == [
        (1, PriceSource.EXPLICIT),
        (2, PriceSource.RATE_CARD),
    ]
    assert resolved[1].unit_price == _nzd("100.00")
    assert resolved[1].price.tax_class is TaxClass.EXEMPT

    read = ResolvedPriceRead.model_validate(
        {"line_number": resolved[1].line_number, **dataclasses.asdict(resolved[1].price)}
    )
    assert read.unit_price.amount == Decimal("100.00")
    assert read.source is PriceSource.RATE_CARD
    assert read.rate_card_item_id is not None


async def test_cached_and_uncached_results_match(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    cache = InMemoryRateCardCache(ttl_seconds=60)
    service = _service(session, cache=cache)

    cold = await service.price_quote(organization.id, _quote(), ON)
    warm = await service.price_quote(organization.id, _quote(), ON)

    assert cache.size() == 1
    assert cold.to_dict() == warm.to_dict()


async def test_quote_level_discount(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)
    quote = _quote()
    quote.quote_level_discount = PercentageDiscount(Decimal("10"))

    totals = await service.price_quote(organization.id, quote, ON)

    assert totals.quote_discount_amount == _nzd("700.00")
    assert totals.total_amount == _nzd("7200.00")


async def test_stacked_quote_level_discounts(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)
    quote = _quote()
    quote.quote_level_discount = [
        PercentageDiscount(Decimal("10")),
        FixedAmountDiscount(Decimal("999"), is_active=False),
        FixedAmountDiscount(Decimal("300")),
    ]

    totals = await service.price_quote(organization.id, quote, ON)

    assert totals.quote_discount_amount == _nzd("1000.00")
    assert totals.taxable_amount == _nzd("6000.00")
    assert totals.total_amount == _nzd("6900.00")


async def test_try_price_quote_returns_failures(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)

    ok = await service.try_price_quote(organization.id, _quote(), ON)
    assert ok.ok
    assert ok.unwrap().total_amount == _nzd("7900.00")

    missing = Quote(
        currency="NZD",
        line_items=[QuoteLineItem(line_number=4, quantity=Decimal("1"), item_code="NOPE")],
    )
    result = await service.try_price_quote(organization.id, missing, ON)
    assert not result.ok
    assert isinstance(result.error, NotFoundError)
    assert result.error.line_number == 4

    usd = Quote(currency="USD", line_items=_quote().line_items)
    result = await service.try_price_quote(organization.id, usd, ON)
    assert isinstance(result.error, ValidationError)
    assert result.error.field == "currency"

    too_early = await service.try_price_quote(organization.id, _quote(), datetime.date(2023, 6, 1))
    assert isinstance(too_early.error, NotFoundError)


async def test_price_request_payload(session, organization: Organization) -> None:
    await _seed_catalog(session, organization)
    service = _service(session)
    request = QuotePricingRequest.model_validate(
        {
            "organization_id": str(organization.id),
            "currency": "NZD",
            "effective_date": "2024-03-01",
            "line_items": [
                {
                    "line_number": 1,
                    "item_code": "DEV-STD",
                    "quantity": "40",
                    "discount": {"type": "percentage", "value": "10"},
                },
                {"line_number": 2, "item_code": "SUPPORT", "quantity": "10"},
            ],
        }
    )

    totals = await service.price_request(request)
    read = QuoteTotalsRead.model_validate(totals)

    assert read.total_amount.amount == Decimal("7210.00")
    assert read.discount_amount.amount == Decimal("600.00")
    assert read.taxable_amount.amount == Decimal("6400.00")
    assert [line.price_source for line in read.per_line] == [
        PriceSource.RATE_CARD,
        PriceSource.RATE_CARD,
    ]


async def test_price_request_with_several_quote_discounts(
    session, organization: Organization
) -> None:
    await _seed_catalog(session, organization)
    request = QuotePricingRequest.model_validate(
        {
            "organization_id": str(organization.id),
            "currency": "NZD",
            "effective_date": "2024-03-01",
            "line_items": [
                {"line_number": 1, "item_code": "DEV-STD", "quantity": "40"},
                {"line_number": 2, "item_code": "SUPPORT", "quantity": "10"},
            ],
            "quote_level_discount": [
                {"type": "percentage", "value": "10"},
                {"type": "fixed_amount", "value": "300"},
            ],
        }
    )

    totals = await _service(session).price_request(request)

    assert totals.quote_discount_amount == _nzd("1000.00")
    assert totals.to_dict()["taxable_amount"] == "6000.00"


async def test_quote_pricing_session_opens_its_own_session(
    session, organization: Organization, db_url: str
) -> None:
    await _seed_catalog(session, organization)

    async with quote_pricing_session(
        database_url=db_url, settings=Settings(DEFAULT_TAX_RATE="0.15")
    ) as service:
        totals = await service.price_quote(organization.id, _quote(), ON)

    assert totals.total_amount == _nzd("7900.00")
