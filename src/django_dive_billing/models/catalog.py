"""Price catalog models.

- PriceList: a tenant's catalog; owns items and pricing rules
- PriceListItem: a priced service (SINGLE, RANGE or TIERED)
- PriceTier: dive-count band of a TIERED item
- PricingRule: overlap handling policy with a structured condition

Configuration is validated on save and rejected with ConfigurationError, so
resolution never has to discover a broken tier or condition.
"""

from django.db import models
from django.db.models import F, Q

from .. import conf
from ..basemodels import BaseModel, TimeStampedModel
from ..choices import ComponentType, CustomerType, PricingModel, RuleAction, RuleType
from ..conditions import parse_condition
from ..exceptions import ConfigurationError
from ..value_objects import PriceItemSnapshot, PricingRuleSnapshot, TierSnapshot


class PriceList(BaseModel):
    """A tenant's price catalog."""

    tenant_id = models.CharField(max_length=64, db_index=True)
    name = models.CharField(max_length=200)
    currency = models.CharField(max_length=3, default=conf.default_currency)
    is_active = models.BooleanField(default=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.tenant_id})"

    def rule_snapshots(self) -> tuple[PricingRuleSnapshot, ...]:
        """Active rules in evaluation order."""
        return tuple(
            rule.to_snapshot()
            for rule in self.rules.filter(is_active=True).order_by("sort_order", "id")
        )


class PriceListItem(BaseModel):
    """A priced service on a price list.

    Inherits from BaseModel: soft delete keeps items that invoices and dive
    packages still reference.
    """

    price_list = models.ForeignKey(
        PriceList,
        on_delete=models.CASCADE,
        related_name="items",
    )
    service_type = models.CharField(max_length=100, db_index=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    equipment_item_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Equipment item this rental price belongs to",
    )

    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    pricing_model = models.CharField(
        max_length=10,
        choices=PricingModel.choices,
        default=PricingModel.SINGLE,
    )
    min_dives = models.PositiveIntegerField(null=True, blank=True)
    max_dives = models.PositiveIntegerField(null=True, blank=True)
    priority = models.IntegerField(default=0, help_text="Higher wins when prices overlap")

    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    applicable_to = models.CharField(
        max_length=20,
        choices=CustomerType.choices,
        default=CustomerType.ALL,
    )

    unit = models.CharField(max_length=50, blank=True)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    tax_inclusive = models.BooleanField(default=False)
    service_charge_inclusive = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)
    is_standalone = models.BooleanField(default=True)
    can_be_package_component = models.BooleanField(default=False)
    package_component_type = models.CharField(
        max_length=20,
        choices=ComponentType.choices,
        blank=True,
    )
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(base_price__gte=0),
                name="dive_billing_item_base_price_gte_zero",
            ),
            models.CheckConstraint(
                condition=(
                    Q(min_dives__isnull=True)
                    | Q(max_dives__isnull=True)
                    | Q(min_dives__lte=F("max_dives"))
                ),
                name="dive_billing_item_dive_window_ordered",
            ),
            models.CheckConstraint(
                condition=(
                    Q(valid_from__isnull=True)
                    | Q(valid_until__isnull=True)
                    | Q(valid_from__lte=F("valid_until"))
                ),
                name="dive_billing_item_validity_ordered",
            ),
        ]

    def __str__(self):
        return f"{self.name} [{self.pricing_model}]"

    def validate(self):
        errors = []
        if self.base_price is not None and self.base_price < 0:
            errors.append("base_price must not be negative")
        if self.pricing_model == PricingModel.RANGE:
            if self.min_dives is None or self.max_dives is None:
                errors.append("RANGE items need min_dives and max_dives")
        if (
            self.min_dives is not None
            and self.max_dives is not None
            and self.min_dives > self.max_dives
        ):
            errors.append(f"min_dives {self.min_dives} > max_dives {self.max_dives}")
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            errors.append(f"valid_from {self.valid_from} is after valid_until {self.valid_until}")
        if errors:
            raise ConfigurationError(f"Invalid price list item '{self.name}'", errors=errors)

    def save(self, *args, **kwargs):
        self.validate()
        super().save(*args, **kwargs)

    def to_snapshot(self) -> PriceItemSnapshot:
        tiers = ()
        if self.pricing_model == PricingModel.TIERED:
            tiers = tuple(tier.to_snapshot() for tier in self.tiers.all())
        return PriceItemSnapshot(
            id=self.pk,
            service_type=self.service_type,
            base_price=self.base_price,
            pricing_model=self.pricing_model,
            currency=self.price_list.currency,
            name=self.name,
            min_dives=self.min_dives,
            max_dives=self.max_dives,
            priority=self.priority,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            applicable_to=self.applicable_to,
            is_active=self.is_active,
            tiers=tiers,
        )


class PriceTier(TimeStampedModel):
    """Dive-count band of a TIERED item; both bounds inclusive."""

    item = models.ForeignKey(
        PriceListItem,
        on_delete=models.CASCADE,
        related_name="tiers",
    )
    tier_name = models.CharField(max_length=100, blank=True)
    from_dives = models.PositiveIntegerField()
    to_dives = models.PositiveIntegerField()
    price_per_dive = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Fixed price for the band, overrides per-dive math",
    )
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["from_dives", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(from_dives__lte=F("to_dives")),
                name="dive_billing_tier_bounds_ordered",
            ),
        ]

    def __str__(self):
        return f"{self.tier_name or 'Tier'} {self.from_dives}-{self.to_dives}"

    def save(self, *args, **kwargs):
        if self.from_dives is None or self.to_dives is None or self.from_dives > self.to_dives:
            raise ConfigurationError(
                f"Tier bounds invalid: from_dives={self.from_dives}, to_dives={self.to_dives}",
                errors=["from_dives must be <= to_dives"],
            )
        if self.price_per_dive < 0 or (self.total_price is not None and self.total_price < 0):
            raise ConfigurationError("Tier prices must not be negative")
        super().save(*args, **kwargs)

    def to_snapshot(self) -> TierSnapshot:
        return TierSnapshot(
            id=self.pk,
            from_dives=self.from_dives,
            to_dives=self.to_dives,
            price_per_dive=self.price_per_dive,
            total_price=self.total_price,
            sort_order=self.sort_order,
            is_active=self.is_active,
            tier_name=self.tier_name,
        )


class PricingRule(TimeStampedModel):
    """Policy applied when several tiers or items match the same query.

    condition uses the predicate language in conditions.py; null matches
    every query.
    """

    price_list = models.ForeignKey(
        PriceList,
        on_delete=models.CASCADE,
        related_name="rules",
    )
    rule_name = models.CharField(max_length=200)
    rule_type = models.CharField(
        max_length=20,
        choices=RuleType.choices,
        default=RuleType.OVERLAP_HANDLING,
    )
    condition = models.JSONField(null=True, blank=True)
    action = models.CharField(
        max_length=30,
        choices=RuleAction.choices,
        default=RuleAction.APPLY_HIGHEST_PRIORITY,
    )
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return f"{self.rule_name}: {self.action}"

    def save(self, *args, **kwargs):
        parse_condition(self.condition)
        if self.action not in RuleAction.values:
            raise ConfigurationError(f"Unknown rule action {self.action!r}")
        super().save(*args, **kwargs)

    def to_snapshot(self) -> PricingRuleSnapshot:
        return PricingRuleSnapshot(
            id=self.pk,
            rule_type=self.rule_type,
            action=self.action,
            condition=parse_condition(self.condition),
            sort_order=self.sort_order,
            is_active=self.is_active,
            rule_name=self.rule_name,
        )
