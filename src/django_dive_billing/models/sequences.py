"""Sequence model for human-readable document numbers."""

from django.db import models

from ..basemodels import TimeStampedModel


class Sequence(TimeStampedModel):
    """
    Counter behind numbers like "INV-2026-001".

    One row per (scope, tenant, period), so each tenant restarts numbering
    every period. Allocate through services.sequences.next_sequence_number(),
    which increments the row under select_for_update().
    """

    scope = models.CharField(
        max_length=50,
        help_text="Numbering scheme, e.g. 'invoice', 'basket', 'expense'",
    )
    tenant_id = models.CharField(max_length=64)
    period = models.CharField(max_length=20, help_text="Usually the year, e.g. '2026'")
    prefix = models.CharField(max_length=20, help_text="e.g. 'INV'")
    current_value = models.PositiveBigIntegerField(default=0)
    pad_width = models.PositiveSmallIntegerField(default=3)

    class Meta:
        app_label = "dive_billing"
        constraints = [
            models.UniqueConstraint(
                fields=["scope", "tenant_id", "period"],
                name="dive_billing_sequence_unique_scope_tenant_period",
            ),
        ]

    def __str__(self):
        return f"{self.scope} ({self.tenant_id}, {self.period}): {self.current_value}"

    @property
    def formatted_value(self) -> str:
        """Current value formatted, e.g. "INV-2026-007"."""
        return f"{self.prefix}-{self.period}-{self.current_value:0{self.pad_width}d}"
