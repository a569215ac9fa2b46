"""Tests for rate card administration and SQL-backed resolution."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

import pytest

from quote_pricing.core.errors import NotFoundError, ValidationError
from quote_pricing.models import Organization
from quote_pricing.pricing.money import Money
from quote_pricing.pricing.taxes import TaxClass
from quote_pricing.schemas.rate_card import RateCardCreate, RateCardItemCreate
from quote_pricing.services.quote_pricing_service import build_quote_pricing_service
from quote_pricing.services.rate_card_cache import InMemoryRateCardCache
from quote_pricing.services.rate_card_repository import SqlRateCardRepository
from quote_pricing.services.rate_card_resolver import RateCardResolver
from quote_pricing.services.rate_card_service import RateCardCatalogService

pytestmark = pytest.mark.asyncio


def _card_payload(**overrides) -> RateCardCreate:
    values = {
        "name": "Standard",
        "currency": "nzd",
        "effective_from": datetime.date(2024, 1, 1),
    }
    values.update(overrides)
    return RateCardCreate(**values)


def _item_payload(base_rate: str, **overrides) -> RateCardItemCreate:
    values = {
        "item_code": "DEV-STD",
        "base_rate": Decimal(base_rate),
        "effective_from": datetime.date(2024, 1, 1),
    }
    values.update(overrides)
    return RateCardItemCreate(**values)


async def test_create_card_and_items(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)

    card = await service.create_card(organization.id, _card_payload())
    item = await service.add_item(
        organization.id, card.id, _item_payload("150.00", tax_class=TaxClass.ZERO_RATED)
    )

    assert card.currency == "NZD"
    assert card.is_default
    assert item.currency == "NZD"
    assert item.tax_class is TaxClass.ZERO_RATED
    assert [c.id for c in await service.list_cards(organization.id)] == [card.id]

    repository = SqlRateCardRepository(session)
    snapshot = await repository.get_active_card(organization.id, datetime.date(2024, 2, 1))
    assert snapshot is not None
    assert snapshot.id == card.id
    item_snapshot = await repository.get_item(card.id, "DEV-STD", datetime.date(2024, 2, 1))
    assert item_snapshot is not None
    assert item_snapshot.base_rate == Decimal("150.00")
    assert await repository.get_card(uuid.uuid4(), card.id) is None


async def test_second_window_wins_inside_its_range(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    card = await service.create_card(organization.id, _card_payload())
    await service.add_item(
        organization.id,
        card.id,
        _item_payload("150.00", effective_until=datetime.date(2024, 6, 30)),
    )
    second = await service.add_item(
        organization.id,
        card.id,
        _item_payload("165.00", effective_from=datetime.date(2024, 7, 1)),
    )

    resolver = RateCardResolver(SqlRateCardRepository(session))
    resolved = await resolver.resolve_price(
        organization.id, "DEV-STD", datetime.date(2024, 8, 15), currency="NZD"
    )

    assert resolved.unit_price == Money(Decimal("165.00"), "NZD")
    assert resolved.rate_card_item_id == second.id

    with pytest.raises(NotFoundError):
        await resolver.resolve_price(organization.id, "DEV-STD", datetime.date(2023, 12, 31))


async def test_overlapping_item_windows_are_rejected(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    card = await service.create_card(organization.id, _card_payload())
    await service.add_item(
        organization.id,
        card.id,
        _item_payload("150.00", effective_until=datetime.date(2024, 6, 30)),
    )

    with pytest.raises(ValidationError) as exc_info:
        await service.add_item(
            organization.id,
            card.id,
            _item_payload("170.00", effective_from=datetime.date(2024, 6, 30)),
        )
    assert exc_info.value.field == "effective_from"


async def test_supersede_closes_previous_window(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    card = await service.create_card(organization.id, _card_payload())
    original = await service.add_item(organization.id, card.id, _item_payload("150.00"))

    replacement = await service.supersede_item(
        organization.id,
        card.id,
        "DEV-STD",
        base_rate=Decimal("165.00"),
        effective_from=datetime.date(2024, 7, 1),
    )

    assert original.effective_until == datetime.date(2024, 6, 30)
    assert replacement.effective_until is None
    assert replacement.tax_class is TaxClass.STANDARD

    resolver = RateCardResolver(SqlRateCardRepository(session))
    before = await resolver.resolve_price(organization.id, "DEV-STD", datetime.date(2024, 6, 30))
    after = await resolver.resolve_price(organization.id, "DEV-STD", datetime.date(2024, 7, 1))
    assert before.unit_price == Money(Decimal("150.00"), "NZD")
    assert after.unit_price == Money(Decimal("165.00"), "NZD")


async def test_supersede_rejects_out_of_order_changes(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    card = await service.create_card(organization.id, _card_payload())
    await service.add_item(organization.id, card.id, _item_payload("150.00"))
    await service.supersede_item(
        organization.id,
        card.id,
        "DEV-STD",
        base_rate=Decimal("165.00"),
        effective_from=datetime.date(2024, 9, 1),
    )

    with pytest.raises(ValidationError):
        await service.supersede_item(
            organization.id,
            card.id,
            "DEV-STD",
            base_rate=Decimal("160.00"),
            effective_from=datetime.date(2024, 8, 1),
        )
    with pytest.raises(NotFoundError):
        await service.supersede_item(
            organization.id,
            card.id,
            "DEV-STD",
            base_rate=Decimal("140.00"),
            effective_from=datetime.date(2024, 1, 1),
        )
    with pytest.raises(NotFoundError):
        await service.supersede_item(
            organization.id,
            card.id,
            "QA-STD",
            base_rate=Decimal("90.00"),
            effective_from=datetime.date(2024, 3, 1),
        )


async def test_default_then_latest_card_is_selected(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)
    oldest_default = await service.create_card(organization.id, _card_payload(name="2024"))
    await service.create_card(
        organization.id,
        _card_payload(name="Promo", is_default=False, effective_from=datetime.date(2024, 3, 1)),
    )
    newer_default = await service.create_card(
        organization.id,
        _card_payload(name="2024 H2", effective_from=datetime.date(2024, 2, 1)),
    )
    repository = SqlRateCardRepository(session)
    on = datetime.date(2024, 4, 1)

    selected = await repository.get_active_card(organization.id, on)
    assert selected is not None
    assert selected.id == newer_default.id

    await service.set_card_active(organization.id, newer_default.id, is_active=False)
    selected = await repository.get_active_card(organization.id, on)
    assert selected is not None
    assert selected.id == oldest_default.id


async def test_mutations_invalidate_cached_cards(session, organization: Organization) -> None:
    cache = InMemoryRateCardCache(ttl_seconds=60)
    service = RateCardCatalogService(session, cache=cache)
    card = await service.create_card(organization.id, _card_payload())
    await service.add_item(organization.id, card.id, _item_payload("150.00"))
    resolver = RateCardResolver(SqlRateCardRepository(session), cache=cache)
    on = datetime.date(2024, 3, 1)

    await resolver.resolve_price(organization.id, "DEV-STD", on)
    assert cache.size() == 1

    await service.set_card_active(organization.id, card.id, is_active=False)
    assert cache.size() == 0
    with pytest.raises(NotFoundError):
        await resolver.resolve_price(organization.id, "DEV-STD", on)


async def test_default_wiring_shares_one_cache(session, organization: Organization) -> None:
    catalog = RateCardCatalogService(session)
    card = await catalog.create_card(organization.id, _card_payload())
    await catalog.add_item(organization.id, card.id, _item_payload("150.00"))
    pricing = build_quote_pricing_service(session)
    on = datetime.date(2024, 3, 1)

    resolved = await pricing.resolver.resolve_price(organization.id, "DEV-STD", on)
    assert resolved.unit_price == Money(Decimal("150.00"), "NZD")

    await catalog.set_card_active(organization.id, card.id, is_active=False)

    with pytest.raises(NotFoundError):
        await pricing.resolver.resolve_price(organization.id, "DEV-STD", on)


async def test_catalog_validation(session, organization: Organization) -> None:
    service = RateCardCatalogService(session)

    with pytest.raises(ValidationError):
        await service.create_card(organization.id, _card_payload(currency="XYZ"))
    with pytest.raises(NotFoundError):
        await service.create_card(uuid.uuid4(), _card_payload())
    with pytest.raises(NotFoundError):
        await service.add_item(organization.id, uuid.uuid4(), _item_payload("10.00"))

