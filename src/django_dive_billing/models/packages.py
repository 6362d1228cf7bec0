"""Package models: bundled trips sold per person.

A Package has ordered components (what the list price is made of), optional
add-on options and persons-based pricing tiers.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q

from .. import conf
from ..basemodels import BaseModel, TimeStampedModel
from ..choices import ComponentType
from ..exceptions import ConfigurationError
from ..money import round_money
from ..value_objects import (
    PackageComponentSnapshot,
    PackageOptionSnapshot,
    PackageSnapshot,
    PackageTierSnapshot,
)


class Package(BaseModel):
    """A bookable package (e.g. 7 nights, 10 dives).

    base_price is the catalog list total; price_per_person is the default
    rate when no pricing tier matches a group size.
    """

    tenant_id = models.CharField(max_length=64, db_index=True)
    package_code = models.CharField(max_length=50, blank=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    nights = models.PositiveIntegerField(null=True, blank=True)
    days = models.PositiveIntegerField(null=True, blank=True)
    total_dives = models.PositiveIntegerField(null=True, blank=True)

    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    price_per_person = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default=conf.default_currency)

    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(base_price__gte=0) & Q(price_per_person__gte=0),
                name="dive_billing_package_prices_gte_zero",
            ),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ConfigurationError(
                f"Package '{self.name}' valid_from is after valid_until"
            )
        super().save(*args, **kwargs)

    def to_snapshot(self) -> PackageSnapshot:
        return PackageSnapshot(
            id=self.pk,
            name=self.name,
            base_price=self.base_price,
            price_per_person=self.price_per_person,
            currency=self.currency,
            days=self.days,
            nights=self.nights,
            total_dives=self.total_dives,
            is_active=self.is_active,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            components=tuple(c.to_snapshot() for c in self.components.all()),
            options=tuple(o.to_snapshot() for o in self.options.all()),
            tiers=tuple(t.to_snapshot() for t in self.pricing_tiers.all()),
        )


class PackageComponent(TimeStampedModel):
    """One line of a package's composition.

    total_price = unit_price x quantity. Use build() to create a component
    and reprice() after changing unit_price or quantity; save() rejects a
    row whose total does not match.
    """

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="components",
    )
    component_type = models.CharField(
        max_length=20,
        choices=ComponentType.choices,
        default=ComponentType.OTHER,
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    unit = models.CharField(max_length=50, blank=True)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    is_inclusive = models.BooleanField(
        default=True,
        help_text="Counted toward the package base price",
    )
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return f"{self.name} x{self.quantity}"

    @classmethod
    def build(cls, package, *, name, unit_price, quantity=1, **fields) -> "PackageComponent":
        """Unsaved component with total_price established."""
        unit_price = Decimal(unit_price)
        return cls(
            package=package,
            name=name,
            unit_price=unit_price,
            quantity=quantity,
            total_price=round_money(unit_price * quantity),
            **fields,
        )

    def reprice(self):
        self.total_price = round_money(Decimal(self.unit_price) * self.quantity)

    def save(self, *args, **kwargs):
        expected = round_money(Decimal(self.unit_price) * self.quantity)
        if self.total_price is None or round_money(Decimal(self.total_price)) != expected:
            raise ConfigurationError(
                f"Component '{self.name}' total {self.total_price} != "
                f"{self.unit_price} x {self.quantity}",
                errors=["call reprice() after changing unit_price or quantity"],
            )
        super().save(*args, **kwargs)

    def to_snapshot(self) -> PackageComponentSnapshot:
        return PackageComponentSnapshot(
            id=self.pk,
            component_type=self.component_type,
            name=self.name,
            unit_price=self.unit_price,
            quantity=self.quantity,
            total_price=self.total_price,
            unit=self.unit,
            description=self.description,
            is_inclusive=self.is_inclusive,
            sort_order=self.sort_order,
        )


class PackageOption(TimeStampedModel):
    """Optional add-on with its own price."""

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="options",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    unit = models.CharField(max_length=50, blank=True)
    max_quantity = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return self.name

    def to_snapshot(self) -> PackageOptionSnapshot:
        return PackageOptionSnapshot(
            id=self.pk,
            name=self.name,
            price=self.price,
            is_active=self.is_active,
            max_quantity=self.max_quantity,
        )


class PackagePricingTier(TimeStampedModel):
    """Per-person rate for a group-size band; max_persons null is open-ended."""

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="pricing_tiers",
    )
    min_persons = models.PositiveIntegerField(default=1)
    max_persons = models.PositiveIntegerField(null=True, blank=True)
    price_per_person = models.DecimalField(max_digits=12, decimal_places=2)
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        help_text="Display only; price_per_person is already discounted",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["min_persons", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(min_persons__gte=1),
                name="dive_billing_pkg_tier_min_persons_gte_one",
            ),
            models.CheckConstraint(
                condition=Q(max_persons__isnull=True) | Q(max_persons__gte=F("min_persons")),
                name="dive_billing_pkg_tier_persons_ordered",
            ),
        ]

    def __str__(self):
        upper = self.max_persons if self.max_persons is not None else "+"
        return f"{self.min_persons}-{upper} persons @ {self.price_per_person}"

    def save(self, *args, **kwargs):
        errors = []
        if self.min_persons < 1:
            errors.append("min_persons must be at least 1")
        if self.max_persons is not None and self.max_persons < self.min_persons:
            errors.append(f"max_persons {self.max_persons} < min_persons {self.min_persons}")
        if errors:
            raise ConfigurationError("Invalid package pricing tier", errors=errors)
        super().save(*args, **kwargs)

    def to_snapshot(self) -> PackageTierSnapshot:
        return PackageTierSnapshot(
            id=self.pk,
            min_persons=self.min_persons,
            max_persons=self.max_persons,
            price_per_person=self.price_per_person,
            discount_percentage=self.discount_percentage,
            is_active=self.is_active,
        )
