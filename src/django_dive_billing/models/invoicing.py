"""Invoice, invoice item and payment models.

Invoices chain Advance -> Final through related_invoice. Creation, payments
and finalization go through services.invoicing so that numbering, chaining
and balances stay consistent.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

from .. import conf
from ..basemodels import TimeStampedModel
from ..choices import InvoiceStatus, InvoiceType, PaymentMethod, PaymentType
from ..exceptions import ConfigurationError
from ..money import round_money
from ..reconciliation import reconcile_invoice
from ..value_objects import InvoiceItemSnapshot, InvoiceSnapshot, PaymentSnapshot


class Invoice(TimeStampedModel):
    """Customer invoice for a booking (or standalone sale)."""

    tenant_id = models.CharField(max_length=64, db_index=True)
    booking_id = models.PositiveBigIntegerField(null=True, blank=True, db_index=True)
    customer_id = models.PositiveBigIntegerField(null=True, blank=True)
    agent_id = models.PositiveBigIntegerField(null=True, blank=True, db_index=True)

    invoice_no = models.CharField(max_length=50)
    invoice_date = models.DateField(default=timezone.localdate)
    currency = models.CharField(max_length=3, default=conf.default_currency)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    service_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT,
        db_index=True,
    )
    invoice_type = models.CharField(
        max_length=10,
        choices=InvoiceType.choices,
        default=InvoiceType.FULL,
    )
    related_invoice = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="follow_up_invoices",
        help_text="Advance invoice this Final invoice settles",
    )
    notes = models.TextField(blank=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["-invoice_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "invoice_no"],
                name="dive_billing_invoice_no_unique_per_tenant",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "booking_id"],
                condition=Q(invoice_type="Advance"),
                name="dive_billing_one_advance_per_booking",
            ),
            models.UniqueConstraint(
                fields=["related_invoice"],
                condition=Q(invoice_type="Final"),
                name="dive_billing_one_final_per_advance",
            ),
            models.CheckConstraint(
                condition=Q(total__gte=0),
                name="dive_billing_invoice_total_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_no} ({self.invoice_type}, {self.status})"

    def to_snapshot(self) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            id=self.pk,
            invoice_no=self.invoice_no,
            total=self.total,
            currency=self.currency,
            status=self.status,
            invoice_type=self.invoice_type,
            invoice_date=self.invoice_date,
            booking_id=self.booking_id,
            agent_id=self.agent_id,
            items=tuple(item.to_snapshot() for item in self.items.all()),
            payments=tuple(p.to_snapshot() for p in self.payments.all()),
        )

    def balance(self):
        return reconcile_invoice(self.to_snapshot())


class InvoiceItem(TimeStampedModel):
    """A line on an invoice.

    Lines generated from a booking carry booking_dive_id or
    booking_equipment_id; lines with no dive, equipment or price-list link are
    manual. total = unit_price x quantity, set by build().
    """

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )
    description = models.CharField(max_length=255)
    booking_dive_id = models.PositiveBigIntegerField(null=True, blank=True, db_index=True)
    booking_equipment_id = models.PositiveBigIntegerField(null=True, blank=True, db_index=True)
    price_list_item = models.ForeignKey(
        "dive_billing.PriceListItem",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice_items",
    )
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "dive_billing"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return f"{self.description}: {self.total}"

    @classmethod
    def build(cls, invoice, *, description, unit_price, quantity=1, **links) -> "InvoiceItem":
        """Unsaved line with total established."""
        unit_price = Decimal(unit_price)
        return cls(
            invoice=invoice,
            description=description,
            unit_price=unit_price,
            quantity=quantity,
            total=round_money(unit_price * quantity),
            **links,
        )

    def save(self, *args, **kwargs):
        expected = round_money(Decimal(self.unit_price) * self.quantity)
        if self.total is None or round_money(Decimal(self.total)) != expected:
            raise ConfigurationError(
                f"Invoice line '{self.description}' total {self.total} != "
                f"{self.unit_price} x {self.quantity}"
            )
        super().save(*args, **kwargs)

    def to_snapshot(self) -> InvoiceItemSnapshot:
        return InvoiceItemSnapshot(
            id=self.pk,
            total=self.total,
            booking_dive_id=self.booking_dive_id,
            booking_equipment_id=self.booking_equipment_id,
            price_list_item_id=self.price_list_item_id,
            description=self.description,
        )


class Payment(TimeStampedModel):
    """Money received against an invoice. Recorded via record_payment()."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_type = models.CharField(
        max_length=10,
        choices=PaymentType.choices,
        default=PaymentType.FINAL,
    )
    method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    payment_date = models.DateField(default=timezone.localdate)
    reference = models.CharField(max_length=100, blank=True)

    class Meta:
        app_label = "dive_billing"
        ordering = ["payment_date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="dive_billing_payment_amount_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.amount} {self.method} on {self.payment_date}"

    def to_snapshot(self) -> PaymentSnapshot:
        return PaymentSnapshot(id=self.pk, amount=self.amount)
