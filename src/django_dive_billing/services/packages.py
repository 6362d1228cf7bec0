"""Package services: create packages and price them from the database."""

import logging
from datetime import date

from django.db import transaction

from .. import conf
from ..models import Package, PackageComponent, PackageOption, PackagePricingTier
from ..packages import calculate_end_date, calculate_package_price, get_package_breakdown

logger = logging.getLogger(__name__)


def _prefetched(package: Package) -> Package:
    return (
        Package.objects.prefetch_related("components", "options", "pricing_tiers")
        .get(pk=package.pk)
    )


def _add_components(package, components):
    for position, component in enumerate(components):
        data = {"sort_order": position, **component}
        PackageComponent.build(package, **data).save()


def _add_options(package, options):
    for position, option in enumerate(options):
        PackageOption.objects.create(package=package, **{"sort_order": position, **option})


def _add_pricing_tiers(package, pricing_tiers):
    for tier in pricing_tiers:
        PackagePricingTier.objects.create(package=package, **tier)


@transaction.atomic
def create_package(
    *,
    tenant_id: str,
    name: str,
    base_price,
    price_per_person,
    components=(),
    options=(),
    pricing_tiers=(),
    currency: str | None = None,
    **fields,
) -> Package:
    """Create a package with its components, options and pricing tiers.

    components, options and pricing_tiers are lists of field dicts. Component
    totals are established by PackageComponent.build(). Any invalid row
    raises ConfigurationError and nothing is created.

    Usage:
        create_package(
            tenant_id="dive-center-1",
            name="Reef Week",
            base_price=Decimal("1200.00"),
            price_per_person=Decimal("1200.00"),
            components=[{"name": "Hotel", "unit_price": Decimal("100.00"), "quantity": 7,
                         "component_type": "ACCOMMODATION"}],
        )
    """
    package = Package.objects.create(
        tenant_id=tenant_id,
        name=name,
        base_price=base_price,
        price_per_person=price_per_person,
        currency=currency or conf.default_currency(),
        **fields,
    )
    _add_components(package, components)
    _add_options(package, options)
    _add_pricing_tiers(package, pricing_tiers)

    logger.info(
        "Created package %s (%s) with %d components",
        package.pk, name, len(components),
    )
    return package


@transaction.atomic
def update_package(
    package: Package,
    *,
    components=None,
    options=None,
    pricing_tiers=None,
    **fields,
) -> Package:
    """Change package fields and replace any of its child collections.

    A collection passed as None is left as it is; any other value (an empty
    list included) replaces every existing row. As with create_package(),
    one invalid row raises ConfigurationError and the package is unchanged.
    """
    package = Package.objects.select_for_update().get(pk=package.pk)
    for name, value in fields.items():
        setattr(package, name, value)
    package.save()

    if components is not None:
        package.components.all().delete()
        _add_components(package, components)
    if options is not None:
        package.options.all().delete()
        _add_options(package, options)
    if pricing_tiers is not None:
        package.pricing_tiers.all().delete()
        _add_pricing_tiers(package, pricing_tiers)

    logger.info(
        "Updated package %s (fields: %s)",
        package.pk, ", ".join(sorted(fields)) or "none",
    )
    return package


def price_package(package: Package, persons: int, option_ids=()):
    """Money total for a group booking the package."""
    return calculate_package_price(_prefetched(package).to_snapshot(), persons, option_ids)


def package_breakdown(package: Package):
    return get_package_breakdown(_prefetched(package).to_snapshot())


def package_end_date(package: Package, start: date) -> date | None:
    return calculate_end_date(package.to_snapshot(), start)
