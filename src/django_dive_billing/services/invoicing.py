"""Invoicing services.

- create_invoice: number an invoice and enforce Advance/Final chaining
- add_invoice_item: append a line
- finalize_invoice: recompute totals and record the agent's commission
- record_payment: take a payment and move the invoice status
- generate_invoice_from_booking: invoice a booking's completed dives and rentals

Chaining rules: a booking has at most one Advance invoice; a Final invoice
settles the booking's Advance and there is at most one Final per Advance.
"""

import logging
from datetime import date
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from .. import conf
from ..choices import InvoiceStatus, InvoiceType, PaymentMethod, PaymentType, SequenceScheme, TaxMode
from ..exceptions import (
    CommissionNotApplicable,
    DuplicateAdvanceInvoice,
    InvoiceChainError,
    PaymentRejected,
)
from ..models import AgentCommercialTerm, Invoice, InvoiceItem, Payment
from ..reconciliation import compute_invoice_totals, invoice_status_for, reconcile_invoice
from ..value_objects import BookingSnapshot
from .commissions import calculate_commission
from .sequences import next_sequence_number

logger = logging.getLogger(__name__)

COMPLETED_DIVE_STATUS = "Completed"


def _advance_invoice_for(tenant_id: str, booking_id) -> Invoice | None:
    return Invoice.objects.filter(
        tenant_id=tenant_id,
        booking_id=booking_id,
        invoice_type=InvoiceType.ADVANCE,
    ).first()


def create_invoice(
    *,
    tenant_id: str,
    invoice_type: str = InvoiceType.FULL,
    booking_id: int | None = None,
    customer_id: int | None = None,
    agent_id: int | None = None,
    invoice_date: date | None = None,
    currency: str | None = None,
    notes: str = "",
) -> Invoice:
    """Create a numbered Draft invoice.

    The chaining checks run after the number is allocated, while this
    transaction holds the tenant's sequence lock for the invoice year.
    Requests dated in different years hold different locks; the partial
    unique constraints on Invoice settle those races.

    Raises:
        DuplicateAdvanceInvoice: The booking already has an Advance invoice.
        InvoiceChainError: Advance/Final without a booking, Final without an
            Advance, or a second Final for the same Advance.
    """
    if invoice_type in (InvoiceType.ADVANCE, InvoiceType.FINAL) and booking_id is None:
        raise InvoiceChainError(f"{invoice_type} invoices must belong to a booking")
    invoice_date = invoice_date or timezone.localdate()

    with transaction.atomic():
        invoice_no = next_sequence_number(tenant_id, invoice_date.year, SequenceScheme.INVOICE)

        related = None
        if invoice_type == InvoiceType.ADVANCE:
            existing = _advance_invoice_for(tenant_id, booking_id)
            if existing is not None:
                raise DuplicateAdvanceInvoice(booking_id, existing.invoice_no)

        elif invoice_type == InvoiceType.FINAL:
            related = _advance_invoice_for(tenant_id, booking_id)
            if related is None:
                raise InvoiceChainError(
                    f"Booking {booking_id} has no advance invoice to settle"
                )
            if related.follow_up_invoices.filter(invoice_type=InvoiceType.FINAL).exists():
                raise InvoiceChainError(
                    f"Advance invoice {related.invoice_no} already has a final invoice"
                )

        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    tenant_id=tenant_id,
                    booking_id=booking_id,
                    customer_id=customer_id,
                    agent_id=agent_id,
                    invoice_no=invoice_no,
                    invoice_date=invoice_date,
                    currency=currency or conf.default_currency(),
                    invoice_type=invoice_type,
                    related_invoice=related,
                    notes=notes,
                )
        except IntegrityError as exc:
            # Concurrent request whose invoice date falls in another period.
            if invoice_type == InvoiceType.ADVANCE:
                existing_no = (
                    Invoice.objects.filter(
                        tenant_id=tenant_id,
                        booking_id=booking_id,
                        invoice_type=InvoiceType.ADVANCE,
                    )
                    .values_list("invoice_no", flat=True)
                    .first()
                )
                if existing_no is not None:
                    raise DuplicateAdvanceInvoice(booking_id, existing_no) from exc
            elif (
                invoice_type == InvoiceType.FINAL
                and related.follow_up_invoices.filter(invoice_type=InvoiceType.FINAL).exists()
            ):
                raise InvoiceChainError(
                    f"Advance invoice {related.invoice_no} already has a final invoice"
                ) from exc
            raise

    logger.info("Created %s invoice %s for booking %s", invoice_type, invoice_no, booking_id)
    return invoice


def add_invoice_item(
    invoice: Invoice,
    *,
    description: str,
    unit_price,
    quantity: int = 1,
    booking_dive_id: int | None = None,
    booking_equipment_id: int | None = None,
    price_list_item=None,
) -> InvoiceItem:
    """Append a line; totals are recomputed by finalize_invoice()."""
    item = InvoiceItem.build(
        invoice,
        description=description,
        unit_price=unit_price,
        quantity=quantity,
        booking_dive_id=booking_dive_id,
        booking_equipment_id=booking_equipment_id,
        price_list_item=price_list_item,
        sort_order=invoice.items.count(),
    )
    item.save()
    return item


def finalize_invoice(
    invoice: Invoice,
    *,
    discount=Decimal("0"),
    service_charge_percentage=Decimal("0"),
    tax_percentage=Decimal("0"),
    tax_mode: str = TaxMode.EXCLUSIVE,
    agent_term: AgentCommercialTerm | None = None,
) -> Invoice:
    """Recompute totals from the items and record the agent commission.

    Both happen in one transaction: the invoice is never left with new totals
    and a stale commission, or the reverse. The agent's terms are looked up
    by invoice.agent_id unless passed in; an invoice outside the terms'
    validity window gets no commission.
    """
    with transaction.atomic():
        locked = Invoice.objects.select_for_update().get(pk=invoice.pk)
        totals = compute_invoice_totals(
            [item.total for item in locked.items.all()],
            discount=discount,
            service_charge_percentage=service_charge_percentage,
            tax_percentage=tax_percentage,
            mode=tax_mode,
        )
        locked.subtotal = totals.subtotal
        locked.discount = totals.discount
        locked.service_charge = totals.service_charge
        locked.tax = totals.tax
        locked.total = totals.total
        locked.save(
            update_fields=["subtotal", "discount", "service_charge", "tax", "total", "updated_at"]
        )

        if locked.agent_id is not None:
            term = agent_term or AgentCommercialTerm.objects.filter(agent_id=locked.agent_id).first()
            if term is not None:
                try:
                    calculate_commission(locked, term)
                except CommissionNotApplicable as exc:
                    logger.info("No commission on %s: %s", locked.invoice_no, exc.reason)

    logger.info("Finalized invoice %s: total %s %s", locked.invoice_no, locked.total, locked.currency)
    return locked


def record_payment(
    invoice: Invoice,
    amount,
    *,
    payment_type: str = PaymentType.FINAL,
    method: str = PaymentMethod.CASH,
    payment_date: date | None = None,
    reference: str = "",
) -> Payment:
    """Record a payment and move the invoice to Partially Paid or Paid.

    Raises:
        PaymentRejected: Non-positive amount, Refunded or settled invoice, or
            an amount above the remaining balance.
    """
    amount = Decimal(amount)

    with transaction.atomic():
        locked = Invoice.objects.select_for_update().get(pk=invoice.pk)

        if amount <= 0:
            raise PaymentRejected(locked.invoice_no, f"amount must be positive, got {amount}")
        if locked.status == InvoiceStatus.REFUNDED:
            raise PaymentRejected(locked.invoice_no, "invoice has been refunded")

        balance = reconcile_invoice(locked.to_snapshot())
        if not balance.can_add_payment:
            raise PaymentRejected(locked.invoice_no, "invoice is already settled")
        if amount > balance.remaining_balance.amount:
            raise PaymentRejected(
                locked.invoice_no,
                f"amount {amount} exceeds remaining balance {balance.remaining_balance}",
            )

        payment = Payment.objects.create(
            invoice=locked,
            amount=amount,
            payment_type=payment_type,
            method=method,
            payment_date=payment_date or timezone.localdate(),
            reference=reference,
        )

        new_status = invoice_status_for(reconcile_invoice(locked.to_snapshot()), locked.status)
        if new_status != locked.status:
            locked.status = new_status
            locked.save(update_fields=["status", "updated_at"])

    invoice.status = locked.status
    logger.info(
        "Recorded %s payment of %s on %s (%s)",
        method, amount, locked.invoice_no, locked.status,
    )
    return payment


def generate_invoice_from_booking(
    booking: BookingSnapshot,
    *,
    tenant_id: str,
    invoice_type: str = InvoiceType.FULL,
    include_dives: bool = True,
    include_equipment: bool = True,
    invoice_date: date | None = None,
    service_charge_percentage=Decimal("0"),
    tax_percentage=Decimal("0"),
    tax_mode: str = TaxMode.EXCLUSIVE,
) -> Invoice:
    """Invoice a booking's completed dives and equipment rentals.

    Dives and rentals already on an invoice for this booking are skipped, so
    generating again only picks up what is new. A missing price bills as zero.
    """
    with transaction.atomic():
        invoiced = InvoiceItem.objects.filter(
            invoice__tenant_id=tenant_id,
            invoice__booking_id=booking.id,
        )
        invoiced_dives = set(
            invoiced.filter(booking_dive_id__isnull=False).values_list("booking_dive_id", flat=True)
        )
        invoiced_equipment = set(
            invoiced.filter(booking_equipment_id__isnull=False).values_list(
                "booking_equipment_id", flat=True
            )
        )

        invoice = create_invoice(
            tenant_id=tenant_id,
            invoice_type=invoice_type,
            booking_id=booking.id,
            customer_id=booking.customer_id,
            agent_id=booking.agent_id,
            invoice_date=invoice_date,
            currency=booking.currency,
        )

        position = 0
        if include_dives:
            for dive in booking.dives:
                if dive.status != COMPLETED_DIVE_STATUS or dive.id in invoiced_dives:
                    continue
                InvoiceItem.build(
                    invoice,
                    description=dive.description or f"Dive {dive.id}",
                    unit_price=dive.price or Decimal("0"),
                    booking_dive_id=dive.id,
                    price_list_item_id=dive.price_list_item_id,
                    sort_order=position,
                ).save()
                position += 1

        if include_equipment:
            for rental in booking.equipment:
                if rental.id in invoiced_equipment:
                    continue
                InvoiceItem.build(
                    invoice,
                    description=rental.description or "Equipment",
                    unit_price=rental.price or Decimal("0"),
                    booking_equipment_id=rental.id,
                    sort_order=position,
                ).save()
                position += 1

        invoice = finalize_invoice(
            invoice,
            service_charge_percentage=service_charge_percentage,
            tax_percentage=tax_percentage,
            tax_mode=tax_mode,
        )

    logger.info(
        "Generated invoice %s from booking %s with %d items",
        invoice.invoice_no, booking.id, invoice.items.count(),
    )
    return invoice
