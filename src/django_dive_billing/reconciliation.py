"""Invoice balance and totals calculations.

Pure functions over invoice snapshots; services.invoicing persists the results.
"""

from decimal import Decimal

from .choices import InvoiceStatus, TaxMode
from .exceptions import ConfigurationError
from .money import Money, round_money
from .value_objects import InvoiceBalance, InvoiceSnapshot, InvoiceTotals


HUNDRED = Decimal("100")


def reconcile_invoice(invoice: InvoiceSnapshot) -> InvoiceBalance:
    """Aggregate payments against the invoice total.

    remaining_balance may go negative on an overpaid invoice; it is reported
    as-is rather than clamped so the overpayment stays visible.
    """
    total_paid = Money(
        sum((p.amount for p in invoice.payments), Decimal("0")), invoice.currency
    )
    remaining = Money(invoice.total, invoice.currency) - total_paid
    return InvoiceBalance(
        total_paid=total_paid.quantized(),
        remaining_balance=remaining.quantized(),
        is_fully_paid=remaining.amount <= 0,
        can_add_payment=invoice.status != InvoiceStatus.REFUNDED and remaining.amount > 0,
    )


def invoice_status_for(balance: InvoiceBalance, current: str) -> str:
    """Status after a payment: Paid once settled, else Partially Paid."""
    if current == InvoiceStatus.REFUNDED:
        return current
    if balance.is_fully_paid:
        return InvoiceStatus.PAID
    if balance.total_paid.is_positive():
        return InvoiceStatus.PARTIALLY_PAID
    return current


def compute_invoice_totals(
    item_totals,
    discount=Decimal("0"),
    service_charge_percentage=Decimal("0"),
    tax_percentage=Decimal("0"),
    mode: str = TaxMode.EXCLUSIVE,
) -> InvoiceTotals:
    """Compute subtotal, service charge, tax and total.

    Exclusive mode adds service charge on the discounted amount, then tax on
    amount plus service charge. Inclusive mode treats the discounted amount as
    the final total and backs the base out of it:

        base = amount / ((1 + sc%) * (1 + tax%))

    any rounding remainder is absorbed by the tax line so total == amount.

    Raises:
        ConfigurationError: Negative discount or percentages, or unknown mode.
    """
    discount = Decimal(discount)
    sc_rate = Decimal(service_charge_percentage) / HUNDRED
    tax_rate = Decimal(tax_percentage) / HUNDRED
    if discount < 0 or sc_rate < 0 or tax_rate < 0:
        raise ConfigurationError("Discount and percentages must not be negative")

    subtotal = round_money(sum((Decimal(t) for t in item_totals), Decimal("0")))
    amount = max(round_money(subtotal - discount), Decimal("0"))
    zero = Decimal("0.00")

    if mode == TaxMode.EXCLUSIVE:
        service_charge = round_money(amount * sc_rate)
        tax = round_money((amount + service_charge) * tax_rate)
        total = round_money(amount + service_charge + tax)
    elif mode == TaxMode.INCLUSIVE:
        if amount <= 0 or (sc_rate == 0 and tax_rate == 0):
            service_charge, tax, total = zero, zero, amount
        else:
            base = round_money(amount / ((1 + sc_rate) * (1 + tax_rate)))
            service_charge = round_money(base * sc_rate)
            tax = round_money(amount - base - service_charge)
            total = amount
    else:
        raise ConfigurationError(f"Unknown tax mode {mode!r}")

    return InvoiceTotals(
        subtotal=subtotal,
        discount=round_money(discount),
        service_charge=max(service_charge, zero),
        tax=max(tax, zero),
        total=max(total, zero),
    )
