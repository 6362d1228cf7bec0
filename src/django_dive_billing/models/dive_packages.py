"""Dive package (punch card) model.

Counters are only moved by services.dive_packages.consume_dive(), which
updates them under a row lock; never edit package_dives_used directly.
"""

from django.db import models
from django.db.models import F, Q

from .. import conf
from .. import tracker
from ..basemodels import TimeStampedModel
from ..choices import DivePackageStatus
from ..exceptions import ConfigurationError
from ..value_objects import DivePackageSnapshot


class DivePackage(TimeStampedModel):
    """A prepaid bundle of dives consumed one at a time."""

    tenant_id = models.CharField(max_length=64, db_index=True)
    customer_id = models.PositiveBigIntegerField(db_index=True)
    package_price_list_item = models.ForeignKey(
        "dive_billing.PriceListItem",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="dive_packages",
    )

    package_total_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    package_per_dive_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )
    currency = models.CharField(max_length=3, default=conf.default_currency)
    package_total_dives = models.PositiveIntegerField()
    package_dives_used = models.PositiveIntegerField(default=0)

    package_start_date = models.DateField()
    package_end_date = models.DateField(null=True, blank=True)
    package_duration_days = models.PositiveIntegerField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=DivePackageStatus.choices,
        default=DivePackageStatus.ACTIVE,
        db_index=True,
    )
    notes = models.TextField(blank=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["-package_start_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(package_total_dives__gt=0),
                name="dive_billing_dive_pkg_total_dives_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(package_dives_used__lte=F("package_total_dives")),
                name="dive_billing_dive_pkg_used_lte_total",
            ),
        ]

    def __str__(self):
        return f"Dive package {self.pk}: {self.package_dives_used}/{self.package_total_dives} ({self.status})"

    def save(self, *args, **kwargs):
        errors = []
        if self.package_total_dives is None or self.package_total_dives <= 0:
            errors.append("package_total_dives must be positive")
        elif not 0 <= self.package_dives_used <= self.package_total_dives:
            errors.append(
                f"package_dives_used {self.package_dives_used} outside 0..{self.package_total_dives}"
            )
        if errors:
            raise ConfigurationError("Invalid dive package", errors=errors)
        super().save(*args, **kwargs)

    def to_snapshot(self) -> DivePackageSnapshot:
        return DivePackageSnapshot(
            id=self.pk,
            total_dives=self.package_total_dives,
            dives_used=self.package_dives_used,
            start_date=self.package_start_date,
            end_date=self.package_end_date,
            status=self.status,
            total_price=self.package_total_price,
            per_dive_price=self.package_per_dive_price,
            currency=self.currency,
        )

    @property
    def remaining_dives(self) -> int:
        return tracker.remaining_dives(self.to_snapshot())

    def is_active(self, today=None) -> bool:
        return tracker.is_package_active(self.to_snapshot(), today)

    def can_add_dive(self, today=None) -> bool:
        return tracker.can_add_dive(self.to_snapshot(), today)

    def calculate_per_dive_price(self):
        return tracker.calculate_per_dive_price(self.to_snapshot())
