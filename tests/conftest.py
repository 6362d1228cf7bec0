"""Shared fixtures for django-dive-billing tests."""

from datetime import date
from decimal import Decimal

import pytest

from django_dive_billing.choices import PricingModel


TODAY = date(2026, 3, 15)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def price_list(db):
    from django_dive_billing.models import PriceList

    return PriceList.objects.create(tenant_id="dive-center-1", name="2026 Rates", currency="USD")


@pytest.fixture
def tiered_item(price_list):
    """Fun dives: 1-5 dives at $50/dive, 6-10 dives at $40/dive."""
    from django_dive_billing.models import PriceListItem, PriceTier

    item = PriceListItem.objects.create(
        price_list=price_list,
        service_type="Dive Trip",
        name="Fun Dive",
        base_price=Decimal("50.00"),
        pricing_model=PricingModel.TIERED,
    )
    PriceTier.objects.create(
        item=item, tier_name="1-5", from_dives=1, to_dives=5, price_per_dive=Decimal("50.00")
    )
    PriceTier.objects.create(
        item=item, tier_name="6-10", from_dives=6, to_dives=10, price_per_dive=Decimal("40.00")
    )
    return item
