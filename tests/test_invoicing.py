"""Tests for invoice numbering, chaining, payments and booking invoices."""

from datetime import date
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from django_dive_billing.choices import InvoiceStatus, InvoiceType, PaymentMethod, TaxMode
from django_dive_billing.exceptions import (
    DuplicateAdvanceInvoice,
    InvoiceChainError,
    PaymentRejected,
)
from django_dive_billing.models import AgentCommercialTerm, AgentCommission, Invoice
from django_dive_billing.services import invoicing as invoicing_services
from django_dive_billing.services import (
    add_invoice_item,
    create_invoice,
    finalize_invoice,
    generate_invoice_from_booking,
    record_payment,
)
from django_dive_billing.value_objects import (
    BookingDiveSnapshot,
    BookingEquipmentSnapshot,
    BookingSnapshot,
)

TENANT = "dive-center-1"
TODAY = date(2026, 3, 15)


def new_invoice(**fields):
    fields.setdefault("tenant_id", TENANT)
    fields.setdefault("invoice_date", TODAY)
    return create_invoice(**fields)


@pytest.fixture
def billed_invoice(db):
    """A finalized $300 invoice."""
    invoice = new_invoice(booking_id=1)
    add_invoice_item(invoice, description="Two-tank dive", unit_price="100.00", quantity=3,
                     booking_dive_id=11)
    return finalize_invoice(invoice)


@pytest.mark.django_db
class TestCreateInvoice:

    def test_numbered_per_tenant_and_year(self):
        assert new_invoice().invoice_no == "INV-2026-001"
        assert new_invoice().invoice_no == "INV-2026-002"
        assert new_invoice(tenant_id="dive-center-2").invoice_no == "INV-2026-001"
        assert new_invoice(invoice_date=date(2027, 1, 2)).invoice_no == "INV-2027-001"

    def test_duplicate_advance_rejected_without_using_a_number(self):
        advance = new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)

        with pytest.raises(DuplicateAdvanceInvoice) as exc_info:
            new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)

        assert exc_info.value.existing_invoice_no == advance.invoice_no
        assert Invoice.objects.filter(booking_id=5).count() == 1
        assert new_invoice().invoice_no == "INV-2026-002"

    def test_advance_per_booking_is_tenant_scoped(self):
        new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)

        other = new_invoice(tenant_id="dive-center-2", invoice_type=InvoiceType.ADVANCE, booking_id=5)

        assert other.invoice_type == InvoiceType.ADVANCE

    def test_final_links_to_advance(self):
        advance = new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)

        final = new_invoice(invoice_type=InvoiceType.FINAL, booking_id=5)

        assert final.related_invoice == advance
        assert list(advance.follow_up_invoices.all()) == [final]

    def test_final_without_advance_rejected(self):
        with pytest.raises(InvoiceChainError):
            new_invoice(invoice_type=InvoiceType.FINAL, booking_id=5)

        assert not Invoice.objects.exists()

    def test_second_final_rejected(self):
        new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)
        new_invoice(invoice_type=InvoiceType.FINAL, booking_id=5)

        with pytest.raises(InvoiceChainError):
            new_invoice(invoice_type=InvoiceType.FINAL, booking_id=5)

    def test_advance_needs_booking(self):
        with pytest.raises(InvoiceChainError):
            new_invoice(invoice_type=InvoiceType.ADVANCE)

    def test_advance_in_another_year_caught_by_constraint(self, monkeypatch):
        """A request that missed the existing Advance still cannot insert a second one."""
        advance = new_invoice(
            invoice_type=InvoiceType.ADVANCE, booking_id=5, invoice_date=date(2026, 12, 31)
        )
        monkeypatch.setattr(invoicing_services, "_advance_invoice_for", lambda *args: None)

        with pytest.raises(DuplicateAdvanceInvoice) as exc_info:
            new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5, invoice_date=date(2027, 1, 1))

        assert exc_info.value.existing_invoice_no == advance.invoice_no
        assert Invoice.objects.filter(booking_id=5).count() == 1
        assert new_invoice(invoice_date=date(2027, 1, 2)).invoice_no == "INV-2027-001"

    def test_one_final_per_advance_enforced_by_database(self):
        advance = new_invoice(invoice_type=InvoiceType.ADVANCE, booking_id=5)
        new_invoice(invoice_type=InvoiceType.FINAL, booking_id=5)

        with pytest.raises(IntegrityError), transaction.atomic():
            Invoice.objects.create(
                tenant_id=TENANT,
                booking_id=5,
                invoice_no="INV-2027-050",
                invoice_type=InvoiceType.FINAL,
                related_invoice=advance,
            )


@pytest.mark.django_db
class TestFinalizeInvoice:

    def test_totals_recomputed_from_items(self):
        invoice = new_invoice()
        add_invoice_item(invoice, description="Fun dive", unit_price="100.00")

        invoice = finalize_invoice(
            invoice,
            service_charge_percentage=Decimal("10"),
            tax_percentage=Decimal("16"),
        )

        assert invoice.subtotal == Decimal("100.00")
        assert invoice.service_charge == Decimal("10.00")
        assert invoice.tax == Decimal("17.60")
        assert invoice.total == Decimal("127.60")

    def test_inclusive_prices_keep_total(self):
        invoice = new_invoice()
        add_invoice_item(invoice, description="Fun dive", unit_price="115.00")

        invoice = finalize_invoice(
            invoice,
            service_charge_percentage=Decimal("10"),
            tax_percentage=Decimal("5"),
            tax_mode=TaxMode.INCLUSIVE,
        )

        assert invoice.total == Decimal("115.00")
        assert invoice.tax == Decimal("5.47")

    def test_records_agent_commission(self):
        term = AgentCommercialTerm.objects.create(
            tenant_id=TENANT, agent_id=7, commission_rate=Decimal("15.00")
        )
        invoice = new_invoice(agent_id=7)
        add_invoice_item(invoice, description="Fun dive", unit_price="200.00", booking_dive_id=1)

        finalize_invoice(invoice)

        commission = AgentCommission.objects.get(invoice=invoice, agent_id=term.agent_id)
        assert commission.amount == Decimal("30.00")

    def test_no_commission_outside_terms_window(self):
        AgentCommercialTerm.objects.create(
            tenant_id=TENANT,
            agent_id=7,
            commission_rate=Decimal("15.00"),
            commission_valid_until=date(2026, 1, 31),
        )
        invoice = new_invoice(agent_id=7)
        add_invoice_item(invoice, description="Fun dive", unit_price="200.00")

        invoice = finalize_invoice(invoice)

        assert invoice.total == Decimal("200.00")
        assert not AgentCommission.objects.exists()


@pytest.mark.django_db
class TestRecordPayment:

    def test_partial_payments_until_paid(self, billed_invoice):
        record_payment(billed_invoice, "100.00")
        assert billed_invoice.status == InvoiceStatus.PARTIALLY_PAID

        record_payment(billed_invoice, "50.00", method=PaymentMethod.CARD)
        balance = billed_invoice.balance()
        assert balance.remaining_balance.amount == Decimal("150.00")

        record_payment(billed_invoice, "150.00")

        billed_invoice.refresh_from_db()
        assert billed_invoice.status == InvoiceStatus.PAID
        assert billed_invoice.balance().is_fully_paid

    def test_settled_invoice_takes_no_payment(self, billed_invoice):
        record_payment(billed_invoice, "300.00")

        with pytest.raises(PaymentRejected, match="already settled"):
            record_payment(billed_invoice, "1.00")

    def test_payment_above_balance_rejected(self, billed_invoice):
        record_payment(billed_invoice, "100.00")

        with pytest.raises(PaymentRejected):
            record_payment(billed_invoice, "200.01")

        assert billed_invoice.payments.count() == 1

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_non_positive_amount_rejected(self, billed_invoice, amount):
        with pytest.raises(PaymentRejected):
            record_payment(billed_invoice, amount)

    def test_refunded_invoice_rejected(self, billed_invoice):
        Invoice.objects.filter(pk=billed_invoice.pk).update(status=InvoiceStatus.REFUNDED)

        with pytest.raises(PaymentRejected, match="refunded"):
            record_payment(billed_invoice, "10.00")


@pytest.mark.django_db
class TestGenerateInvoiceFromBooking:

    def booking(self, second_dive_status="Scheduled"):
        return BookingSnapshot(
            id=77,
            customer_id=42,
            agent_id=7,
            dives=(
                BookingDiveSnapshot(id=1, price=Decimal("100.00"), status="Completed",
                                    description="Morning reef"),
                BookingDiveSnapshot(id=2, price=Decimal("100.00"), status=second_dive_status),
                BookingDiveSnapshot(id=3, price=None, status="Completed"),
            ),
            equipment=(
                BookingEquipmentSnapshot(id=10, price=Decimal("25.00"), description="BCD rental"),
            ),
        )

    def test_bills_completed_dives_and_rentals(self):
        invoice = generate_invoice_from_booking(self.booking(), tenant_id=TENANT, invoice_date=TODAY)

        lines = list(invoice.items.values_list("description", "total"))
        assert lines == [
            ("Morning reef", Decimal("100.00")),
            ("Dive 3", Decimal("0.00")),
            ("BCD rental", Decimal("25.00")),
        ]
        assert invoice.total == Decimal("125.00")
        assert invoice.booking_id == 77

    def test_second_run_only_picks_up_new_lines(self):
        generate_invoice_from_booking(self.booking(), tenant_id=TENANT, invoice_date=TODAY)

        second = generate_invoice_from_booking(
            self.booking(second_dive_status="Completed"), tenant_id=TENANT, invoice_date=TODAY
        )

        assert list(second.items.values_list("booking_dive_id", flat=True)) == [2]
        assert second.total == Decimal("100.00")

    def test_records_commission_for_booking_agent(self):
        AgentCommercialTerm.objects.create(
            tenant_id=TENANT,
            agent_id=7,
            commission_rate=Decimal("10.00"),
            exclude_equipment_from_commission=True,
        )

        invoice = generate_invoice_from_booking(self.booking(), tenant_id=TENANT, invoice_date=TODAY)

        commission = invoice.commissions.get()
        assert commission.commissionable_base == Decimal("100.00")
        assert commission.amount == Decimal("10.00")
