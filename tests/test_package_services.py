"""Tests for creating and pricing packages from the database."""

from datetime import date
from decimal import Decimal

import pytest

from django_dive_billing.choices import ComponentType
from django_dive_billing.exceptions import ConfigurationError
from django_dive_billing.models import Package, PackageComponent
from django_dive_billing.money import Money
from django_dive_billing.services import (
    create_package,
    package_breakdown,
    package_end_date,
    price_package,
    update_package,
)


def reef_week(**overrides):
    fields = dict(
        tenant_id="dive-center-1",
        name="Reef Week",
        base_price=Decimal("1000.00"),
        price_per_person=Decimal("1000.00"),
        days=7,
        nights=6,
        components=[
            {"name": "Hotel", "unit_price": "100.00", "quantity": 6,
             "component_type": ComponentType.ACCOMMODATION, "unit": "night"},
            {"name": "Dives", "unit_price": "40.00", "quantity": 10,
             "component_type": ComponentType.DIVE},
        ],
        options=[{"name": "Night dive", "price": Decimal("60.00")}],
        pricing_tiers=[{"min_persons": 4, "price_per_person": Decimal("900.00")}],
    )
    fields.update(overrides)
    return create_package(**fields)


@pytest.mark.django_db
class TestCreatePackage:

    def test_components_keep_given_order_and_totals(self):
        package = reef_week()

        components = list(package.components.all())
        assert [c.name for c in components] == ["Hotel", "Dives"]
        assert [c.total_price for c in components] == [Decimal("600.00"), Decimal("400.00")]

    def test_invalid_tier_rolls_back_everything(self):
        with pytest.raises(ConfigurationError):
            reef_week(pricing_tiers=[{"min_persons": 6, "max_persons": 2,
                                      "price_per_person": Decimal("800.00")}])

        assert not Package.all_objects.exists()
        assert not PackageComponent.objects.exists()

    def test_component_with_stale_total_rejected(self):
        package = reef_week()
        hotel = package.components.get(name="Hotel")

        hotel.quantity = 7
        with pytest.raises(ConfigurationError):
            hotel.save()

        hotel.reprice()
        hotel.save()
        assert hotel.total_price == Decimal("700.00")


@pytest.mark.django_db
class TestPricePackage:

    def test_group_rate_and_options(self):
        package = reef_week()
        night_dive = package.options.get()

        assert price_package(package, 2) == Money(Decimal("2000.00"), "USD")
        assert price_package(package, 4, [night_dive.pk]) == Money(Decimal("3660.00"), "USD")

    def test_breakdown_from_database(self):
        lines = package_breakdown(reef_week())

        assert [line.name for line in lines if line.line_type == "component"] == ["Hotel", "Dives"]
        assert [line.component_type for line in lines if line.line_type == "component"] == [
            ComponentType.ACCOMMODATION, ComponentType.DIVE,
        ]
        assert lines[-1].total == Decimal("1000.00")

    def test_end_date(self):
        assert package_end_date(reef_week(), date(2026, 5, 2)) == date(2026, 5, 8)


@pytest.mark.django_db
class TestUpdatePackage:

    def test_replaces_components_and_fields(self):
        package = reef_week()

        update_package(
            package,
            name="Reef Week Plus",
            base_price=Decimal("1100.00"),
            components=[
                {"name": "Dives", "unit_price": "40.00", "quantity": 12,
                 "component_type": ComponentType.DIVE},
                {"name": "Hotel", "unit_price": "100.00", "quantity": 6,
                 "component_type": ComponentType.ACCOMMODATION},
            ],
        )

        package.refresh_from_db()
        assert package.name == "Reef Week Plus"
        components = list(package.components.all())
        assert [c.name for c in components] == ["Dives", "Hotel"]
        assert [c.total_price for c in components] == [Decimal("480.00"), Decimal("600.00")]

    def test_untouched_collections_are_kept(self):
        package = reef_week()

        update_package(package, options=[])

        assert package.components.count() == 2
        assert package.pricing_tiers.get().price_per_person == Decimal("900.00")
        assert not package.options.exists()

    def test_invalid_tier_rolls_back_whole_update(self):
        package = reef_week()

        with pytest.raises(ConfigurationError):
            update_package(
                package,
                name="Broken Week",
                components=[{"name": "Dives", "unit_price": "40.00", "quantity": 5,
                             "component_type": ComponentType.DIVE}],
                pricing_tiers=[{"min_persons": 6, "max_persons": 2,
                                "price_per_person": Decimal("800.00")}],
            )

        package.refresh_from_db()
        assert package.name == "Reef Week"
        assert [c.name for c in package.components.all()] == ["Hotel", "Dives"]
        assert package.pricing_tiers.get().min_persons == 4
