"""Tests for dive package predicates."""

from datetime import date
from decimal import Decimal

import pytest

from django_dive_billing.choices import DivePackageStatus
from django_dive_billing.money import Money
from django_dive_billing.tracker import (
    calculate_per_dive_price,
    can_add_dive,
    is_package_active,
    remaining_dives,
)
from django_dive_billing.value_objects import DivePackageSnapshot


def punch_card(**fields):
    defaults = dict(
        id=1,
        total_dives=10,
        dives_used=0,
        start_date=date(2026, 3, 1),
        total_price=Decimal("450.00"),
    )
    defaults.update(fields)
    return DivePackageSnapshot(**defaults)


class TestRemainingDives:

    def test_remaining(self):
        assert remaining_dives(punch_card(dives_used=4)) == 6

    def test_never_negative(self):
        assert remaining_dives(punch_card(dives_used=12)) == 0


class TestIsPackageActive:

    def test_exhausted_package_cannot_take_a_dive(self):
        package = punch_card(dives_used=10)

        assert remaining_dives(package) == 0
        assert not is_package_active(package, date(2026, 3, 2))
        assert not can_add_dive(package, date(2026, 3, 2))

    def test_end_date_is_inclusive(self):
        package = punch_card(end_date=date(2026, 3, 10))

        assert is_package_active(package, date(2026, 3, 10))
        assert not is_package_active(package, date(2026, 3, 11))

    @pytest.mark.parametrize(
        "status",
        [DivePackageStatus.COMPLETED, DivePackageStatus.EXPIRED, DivePackageStatus.CANCELLED],
    )
    def test_terminal_status_is_inactive(self, status):
        assert not can_add_dive(punch_card(status=status), date(2026, 3, 2))

    def test_open_ended_package_is_active(self):
        assert is_package_active(punch_card(), date(2030, 1, 1))


class TestPerDivePrice:

    def test_explicit_per_dive_price_wins(self):
        package = punch_card(per_dive_price=Decimal("40.00"))

        assert calculate_per_dive_price(package) == Money(Decimal("40.00"), "USD")

    def test_derived_from_total(self):
        package = punch_card(total_dives=3, total_price=Decimal("100.00"))

        assert calculate_per_dive_price(package) == Money(Decimal("33.33"), "USD")

    def test_zero_dives_returns_zero(self):
        package = punch_card(total_dives=0)

        assert calculate_per_dive_price(package) == Money(Decimal("0"), "USD")
