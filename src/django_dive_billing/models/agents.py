"""Agent commercial terms and recorded commissions.

Agents themselves live in the host system and are referenced by agent_id.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone

from .. import conf
from ..basemodels import TimeStampedModel
from ..choices import CommissionStatus, CommissionType
from ..exceptions import ConfigurationError
from ..value_objects import CommissionTermSnapshot


class AgentCommercialTerm(TimeStampedModel):
    """How an agent is paid. One row per agent."""

    tenant_id = models.CharField(max_length=64, db_index=True)
    agent_id = models.PositiveBigIntegerField(unique=True)
    commission_type = models.CharField(
        max_length=20,
        choices=CommissionType.choices,
        default=CommissionType.PERCENTAGE,
    )
    commission_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Percentage (15.00 = 15%) or fixed amount per invoice",
    )
    exclude_equipment_from_commission = models.BooleanField(default=False)
    include_manual_items_in_commission = models.BooleanField(default=True)
    commission_valid_from = models.DateField(null=True, blank=True)
    commission_valid_until = models.DateField(null=True, blank=True)

    class Meta:
        app_label = "dive_billing"
        constraints = [
            models.CheckConstraint(
                condition=Q(commission_rate__gte=0),
                name="dive_billing_term_rate_gte_zero",
            ),
        ]

    def __str__(self):
        return f"Agent {self.agent_id}: {self.commission_rate} {self.commission_type}"

    def save(self, *args, **kwargs):
        errors = []
        if self.commission_rate < 0:
            errors.append("commission_rate must not be negative")
        if self.commission_type == CommissionType.PERCENTAGE and self.commission_rate > 100:
            errors.append("percentage commission_rate must not exceed 100")
        if (
            self.commission_valid_from
            and self.commission_valid_until
            and self.commission_valid_from > self.commission_valid_until
        ):
            errors.append("commission_valid_from is after commission_valid_until")
        if errors:
            raise ConfigurationError(f"Invalid terms for agent {self.agent_id}", errors=errors)
        super().save(*args, **kwargs)

    def to_snapshot(self) -> CommissionTermSnapshot:
        return CommissionTermSnapshot(
            agent_id=self.agent_id,
            commission_type=self.commission_type,
            commission_rate=self.commission_rate,
            exclude_equipment_from_commission=self.exclude_equipment_from_commission,
            include_manual_items_in_commission=self.include_manual_items_in_commission,
            valid_from=self.commission_valid_from,
            valid_until=self.commission_valid_until,
        )


class AgentCommission(TimeStampedModel):
    """Commission owed to an agent for one invoice.

    Recomputation updates this row in place; see
    services.commissions.calculate_commission().
    """

    invoice = models.ForeignKey(
        "dive_billing.Invoice",
        on_delete=models.PROTECT,
        related_name="commissions",
    )
    agent_id = models.PositiveBigIntegerField(db_index=True)
    commissionable_base = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=conf.default_currency)
    status = models.CharField(
        max_length=20,
        choices=CommissionStatus.choices,
        default=CommissionStatus.PENDING,
        db_index=True,
    )
    calculated_at = models.DateTimeField(default=timezone.now)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["-calculated_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["invoice", "agent_id"],
                name="dive_billing_one_commission_per_invoice_agent",
            ),
            models.CheckConstraint(
                condition=Q(amount__gte=0),
                name="dive_billing_commission_amount_gte_zero",
            ),
        ]

    def __str__(self):
        return f"Agent {self.agent_id} on invoice {self.invoice_id}: {self.amount} ({self.status})"
