"""Dive package services: creation, dive consumption and status changes.

consume_dive() is the only writer of package_dives_used. The read-check-write
sequence runs under a row lock and ends in a conditional UPDATE, so two
bookings racing for the last dive cannot both succeed.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .. import conf, tracker
from ..choices import DivePackageStatus
from ..exceptions import (
    ConcurrencyConflict,
    ConfigurationError,
    InsufficientDives,
    InvalidStateTransition,
    PackageNotActive,
)
from ..money import round_money
from ..models import DivePackage
from ..value_objects import DiveConsumption

logger = logging.getLogger(__name__)


def create_dive_package(
    *,
    tenant_id: str,
    customer_id: int,
    total_dives: int,
    total_price,
    start_date: date,
    per_dive_price=None,
    duration_days: int | None = None,
    end_date: date | None = None,
    price_list_item=None,
    currency: str | None = None,
    notes: str = "",
) -> DivePackage:
    """Sell a punch card.

    per_dive_price defaults to total_price / total_dives. When no end_date is
    given it is derived from duration_days, counting the start day as day one.

    Raises:
        ConfigurationError: total_dives is not positive or the dates are inverted.
    """
    if total_dives is None or total_dives <= 0:
        raise ConfigurationError(f"Dive package needs a positive dive count, got {total_dives}")

    total_price = Decimal(total_price)
    if per_dive_price is None:
        per_dive_price = round_money(total_price / total_dives)
    if end_date is None and duration_days:
        end_date = start_date + timedelta(days=duration_days - 1)
    if end_date is not None and end_date < start_date:
        raise ConfigurationError(f"End date {end_date} is before start date {start_date}")

    package = DivePackage.objects.create(
        tenant_id=tenant_id,
        customer_id=customer_id,
        package_price_list_item=price_list_item,
        package_total_price=total_price,
        package_per_dive_price=per_dive_price,
        currency=currency or conf.default_currency(),
        package_total_dives=total_dives,
        package_start_date=start_date,
        package_end_date=end_date,
        package_duration_days=duration_days,
        notes=notes,
    )
    logger.info(
        "Created dive package %s for customer %s: %d dives",
        package.pk, customer_id, total_dives,
    )
    return package


def consume_dive(dive_package: DivePackage, today: date | None = None) -> DiveConsumption:
    """Log one dive against a punch card.

    Moves the package to Completed when its last dive is used. The passed
    instance is updated to the new counters.

    Raises:
        InsufficientDives: No dives remain; dives_used is left unchanged.
        PackageNotActive: The package is closed or past its end date.
        ConcurrencyConflict: A concurrent writer changed the row first.
    """
    with transaction.atomic():
        locked = DivePackage.objects.select_for_update().get(pk=dive_package.pk)
        snapshot = locked.to_snapshot()

        if tracker.remaining_dives(snapshot) == 0:
            raise InsufficientDives(locked.pk, snapshot.total_dives, snapshot.dives_used)
        if not tracker.can_add_dive(snapshot, today):
            raise PackageNotActive(locked.pk, snapshot.status)

        now = timezone.now()
        updated = DivePackage.objects.filter(
            pk=locked.pk,
            status=DivePackageStatus.ACTIVE,
            package_dives_used=snapshot.dives_used,
        ).update(package_dives_used=F("package_dives_used") + 1, updated_at=now)
        if updated != 1:
            raise ConcurrencyConflict(f"Dive package {locked.pk} changed while consuming a dive")

        dives_used = snapshot.dives_used + 1
        status = DivePackageStatus.ACTIVE
        if dives_used >= snapshot.total_dives:
            status = DivePackageStatus.COMPLETED
            DivePackage.objects.filter(pk=locked.pk).update(status=status, updated_at=now)

    dive_package.package_dives_used = dives_used
    dive_package.status = status

    remaining = snapshot.total_dives - dives_used
    logger.info(
        "Consumed dive %d/%d on package %s (%s)",
        dives_used, snapshot.total_dives, locked.pk, status,
    )
    return DiveConsumption(
        dive_package_id=locked.pk,
        package_dive_number=dives_used,
        per_dive_price=tracker.calculate_per_dive_price(snapshot),
        remaining_dives=remaining,
        status=status,
    )


def change_dive_package_status(dive_package: DivePackage, new_status: str) -> DivePackage:
    """Close an Active package as Completed, Expired or Cancelled.

    Raises:
        InvalidStateTransition: The package is already terminal or the
            requested status is not terminal.
    """
    with transaction.atomic():
        locked = DivePackage.objects.select_for_update().get(pk=dive_package.pk)
        if (
            locked.status != DivePackageStatus.ACTIVE
            or str(new_status) not in tracker.TERMINAL_STATUSES
        ):
            raise InvalidStateTransition(locked.pk, locked.status, new_status)
        locked.status = new_status
        locked.save(update_fields=["status", "updated_at"])

    logger.info("Dive package %s moved to %s", locked.pk, new_status)
    dive_package.status = new_status
    return locked
