"""Package pricing calculations.

Computes a multi-person package price from pricing tiers and add-on options,
and the catalog breakdown of a package into its components.

Two figures are kept apart on purpose: get_package_breakdown() totals at the
catalog list price (base_price), calculate_package_price() at the
persons/tier-adjusted price for an actual booking.
"""

from datetime import date, timedelta
from decimal import Decimal

from django.utils import timezone

from . import conf
from .exceptions import ConfigurationError
from .money import Money
from .value_objects import (
    BreakdownLine,
    BreakdownValidation,
    PackageSnapshot,
    PackageTierSnapshot,
)


def select_pricing_tier(package: PackageSnapshot, persons: int) -> PackageTierSnapshot | None:
    """Most specific active tier (highest min_persons) covering persons."""
    matching = [t for t in package.tiers if t.is_active and t.covers(persons)]
    if not matching:
        return None
    return max(matching, key=lambda t: (t.min_persons, -t.id))


def calculate_package_price(
    package: PackageSnapshot,
    persons: int,
    option_ids=(),
) -> Money:
    """Price a package for a group.

    amount = per-person rate x persons + price of each selected active option.

    Args:
        package: Package snapshot with tiers and options
        persons: Number of people travelling on the package
        option_ids: Selected option IDs; duplicates count once, unknown or
            inactive IDs are ignored

    Raises:
        ConfigurationError: If persons is not positive.
    """
    if persons <= 0:
        raise ConfigurationError(f"Persons must be positive, got {persons}")

    tier = select_pricing_tier(package, persons)
    rate = tier.price_per_person if tier is not None else package.price_per_person
    amount = Decimal(rate) * persons

    active_options = {o.id: o for o in package.options if o.is_active}
    for option_id in set(option_ids):
        option = active_options.get(option_id)
        if option is not None:
            amount += option.price

    return Money(amount, package.currency).quantized()


def get_package_breakdown(package: PackageSnapshot) -> list[BreakdownLine]:
    """Header, breakdown marker, components by sort_order, then the list total."""
    lines = [
        BreakdownLine(
            line_type="header",
            name=package.name,
            description=f"{package.name} (per person)",
            unit_price=package.price_per_person,
            quantity=1,
            unit="person",
            total=package.price_per_person,
        ),
        BreakdownLine(line_type="breakdown", description="Package breakdown:"),
    ]

    for component in sorted(package.components, key=lambda c: (c.sort_order, c.id)):
        lines.append(
            BreakdownLine(
                line_type="component",
                name=component.name,
                description=component.description or component.name,
                unit_price=component.unit_price,
                quantity=component.quantity,
                unit=component.unit,
                total=component.total_price,
                component_type=str(component.component_type),
            )
        )

    lines.append(
        BreakdownLine(
            line_type="total",
            description="Total package price",
            total=package.base_price,
        )
    )
    return lines


def breakdown_report(package: PackageSnapshot) -> BreakdownValidation:
    """Compare the sum of inclusive components against the list price."""
    components_total = sum(
        (c.total_price for c in package.components if c.is_inclusive),
        Decimal("0"),
    )
    difference = abs(package.base_price - components_total)
    return BreakdownValidation(
        is_valid=difference <= conf.breakdown_tolerance(),
        base_price=package.base_price,
        components_total=components_total,
        difference=difference,
    )


def validate_breakdown(package: PackageSnapshot) -> bool:
    return breakdown_report(package).is_valid


def calculate_end_date(package: PackageSnapshot, start: date) -> date | None:
    """Last day of the package; the start day counts as day one."""
    if not package.days:
        return None
    return start + timedelta(days=package.days - 1)


def is_package_available(package: PackageSnapshot, on: date | None = None) -> bool:
    """Active and inside its sale window (open bounds unbounded)."""
    if not package.is_active:
        return False
    check_date = on or timezone.localdate()
    if package.valid_from is not None and check_date < package.valid_from:
        return False
    if package.valid_until is not None and check_date > package.valid_until:
        return False
    return True
