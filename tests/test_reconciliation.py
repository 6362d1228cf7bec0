"""Tests for invoice balances and totals."""

from decimal import Decimal

import pytest

from django_dive_billing.choices import InvoiceStatus, TaxMode
from django_dive_billing.exceptions import ConfigurationError
from django_dive_billing.money import Money
from django_dive_billing.reconciliation import (
    compute_invoice_totals,
    invoice_status_for,
    reconcile_invoice,
)
from django_dive_billing.value_objects import InvoiceSnapshot, PaymentSnapshot


def invoice(total, *payments, status=InvoiceStatus.DRAFT):
    return InvoiceSnapshot(
        id=1,
        invoice_no="INV-2026-001",
        total=Decimal(total),
        status=status,
        payments=tuple(PaymentSnapshot(id=i, amount=Decimal(p)) for i, p in enumerate(payments)),
    )


class TestReconcileInvoice:

    def test_partial_then_full_payment(self):
        balance = reconcile_invoice(invoice("300", "100", "50"))

        assert balance.total_paid == Money(Decimal("150.00"), "USD")
        assert balance.remaining_balance == Money(Decimal("150.00"), "USD")
        assert not balance.is_fully_paid
        assert balance.can_add_payment

        balance = reconcile_invoice(invoice("300", "100", "50", "150"))

        assert balance.remaining_balance == Money(Decimal("0.00"), "USD")
        assert balance.is_fully_paid
        assert not balance.can_add_payment

    def test_no_payments(self):
        balance = reconcile_invoice(invoice("120.50"))

        assert balance.total_paid.is_zero()
        assert balance.remaining_balance == Money(Decimal("120.50"), "USD")

    def test_refunded_invoice_takes_no_payments(self):
        balance = reconcile_invoice(invoice("300", "100", status=InvoiceStatus.REFUNDED))

        assert balance.remaining_balance == Money(Decimal("200.00"), "USD")
        assert not balance.can_add_payment

    def test_overpayment_stays_visible(self):
        balance = reconcile_invoice(invoice("100", "120"))

        assert balance.remaining_balance == Money(Decimal("-20.00"), "USD")
        assert balance.is_fully_paid


class TestInvoiceStatusFor:

    def test_status_progression(self):
        assert invoice_status_for(reconcile_invoice(invoice("300")), InvoiceStatus.DRAFT) == InvoiceStatus.DRAFT
        assert (
            invoice_status_for(reconcile_invoice(invoice("300", "100")), InvoiceStatus.DRAFT)
            == InvoiceStatus.PARTIALLY_PAID
        )
        assert (
            invoice_status_for(reconcile_invoice(invoice("300", "300")), InvoiceStatus.PARTIALLY_PAID)
            == InvoiceStatus.PAID
        )

    def test_refunded_is_kept(self):
        balance = reconcile_invoice(invoice("300", "300", status=InvoiceStatus.REFUNDED))

        assert invoice_status_for(balance, InvoiceStatus.REFUNDED) == InvoiceStatus.REFUNDED


class TestComputeInvoiceTotals:

    def test_no_charges(self):
        totals = compute_invoice_totals([Decimal("200.00"), Decimal("100.00")])

        assert totals.subtotal == Decimal("300.00")
        assert totals.total == Decimal("300.00")
        assert totals.tax == Decimal("0.00")

    def test_exclusive_service_charge_then_tax(self):
        totals = compute_invoice_totals(
            [Decimal("100.00")],
            service_charge_percentage=Decimal("10"),
            tax_percentage=Decimal("16"),
        )

        assert totals.service_charge == Decimal("10.00")
        assert totals.tax == Decimal("17.60")
        assert totals.total == Decimal("127.60")

    def test_discount_applies_before_charges(self):
        totals = compute_invoice_totals(
            [Decimal("100.00")],
            discount=Decimal("20.00"),
            tax_percentage=Decimal("10"),
        )

        assert totals.subtotal == Decimal("100.00")
        assert totals.discount == Decimal("20.00")
        assert totals.tax == Decimal("8.00")
        assert totals.total == Decimal("88.00")

    def test_discount_larger_than_subtotal_floors_at_zero(self):
        totals = compute_invoice_totals([Decimal("50.00")], discount=Decimal("80.00"))

        assert totals.total == Decimal("0.00")

    def test_inclusive_backs_out_base_and_keeps_total(self):
        totals = compute_invoice_totals(
            [Decimal("115.00")],
            service_charge_percentage=Decimal("10"),
            tax_percentage=Decimal("5"),
            mode=TaxMode.INCLUSIVE,
        )

        assert totals.total == Decimal("115.00")
        assert totals.service_charge == Decimal("9.96")
        assert totals.tax == Decimal("5.47")
        assert totals.subtotal - totals.service_charge - totals.tax == Decimal("99.57")

    def test_inclusive_without_rates_is_plain_total(self):
        totals = compute_invoice_totals([Decimal("80.00")], mode=TaxMode.INCLUSIVE)

        assert totals.total == Decimal("80.00")
        assert totals.service_charge == Decimal("0.00")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"discount": Decimal("-1")},
            {"tax_percentage": Decimal("-5")},
            {"mode": "compound"},
        ],
    )
    def test_invalid_inputs_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            compute_invoice_totals([Decimal("10.00")], **kwargs)
