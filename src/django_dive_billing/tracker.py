"""Dive package (punch card) predicates.

State machine: Active -> Completed | Expired | Cancelled (terminal).

Everything here is derived from a snapshot on each call and never cached,
since dives_used changes between checks. Consumption itself lives in
services.dive_packages, under a row lock.
"""

from datetime import date
from decimal import Decimal

from django.utils import timezone

from .choices import DivePackageStatus
from .money import Money
from .value_objects import DivePackageSnapshot


TERMINAL_STATUSES = frozenset({
    DivePackageStatus.COMPLETED.value,
    DivePackageStatus.EXPIRED.value,
    DivePackageStatus.CANCELLED.value,
})


def remaining_dives(package: DivePackageSnapshot) -> int:
    return max(package.total_dives - package.dives_used, 0)


def is_package_active(package: DivePackageSnapshot, today: date | None = None) -> bool:
    """Active status, not past its end date, and at least one dive left."""
    if package.status != DivePackageStatus.ACTIVE:
        return False
    check_date = today or timezone.localdate()
    if package.end_date is not None and check_date > package.end_date:
        return False
    return remaining_dives(package) > 0


def can_add_dive(package: DivePackageSnapshot, today: date | None = None) -> bool:
    return is_package_active(package, today)


def calculate_per_dive_price(package: DivePackageSnapshot) -> Money:
    """Explicit per-dive price, else total / dives; zero when there are no dives."""
    if package.per_dive_price is not None:
        return Money(package.per_dive_price, package.currency).quantized()
    if package.total_dives > 0:
        return Money(
            Decimal(package.total_price) / package.total_dives, package.currency
        ).quantized()
    return Money.zero(package.currency).quantized()
