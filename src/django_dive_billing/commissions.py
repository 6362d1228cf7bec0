"""Agent commission calculation.

Commissionable base = sum of invoice item totals, minus:
- equipment-rental items when the term excludes equipment
- manual items (no dive, equipment or price-list link) unless the term
  includes them

Percentage terms pay base x rate / 100; FixedAmount terms pay the rate once
per invoice. Recording the result is services.commissions' job.
"""

from decimal import Decimal

from django.utils import timezone

from .choices import CommissionType
from .exceptions import CommissionNotApplicable, ConfigurationError
from .money import Money
from .value_objects import CommissionQuote, CommissionTermSnapshot, InvoiceSnapshot


def is_commissionable(item, term: CommissionTermSnapshot) -> bool:
    if item.is_equipment and term.exclude_equipment_from_commission:
        return False
    if item.is_manual and not term.include_manual_items_in_commission:
        return False
    return True


def commissionable_base(invoice: InvoiceSnapshot, term: CommissionTermSnapshot) -> tuple[Money, tuple]:
    """Return (base, ids of excluded items)."""
    base = Decimal("0")
    excluded = []
    for item in invoice.items:
        if is_commissionable(item, term):
            base += item.total
        else:
            excluded.append(item.id)
    return Money(base, invoice.currency), tuple(excluded)


def commission_amount(base: Money, term: CommissionTermSnapshot) -> Money:
    if term.commission_type == CommissionType.PERCENTAGE:
        amount = base.amount * term.commission_rate / Decimal("100")
    elif term.commission_type == CommissionType.FIXED_AMOUNT:
        amount = term.commission_rate
    else:
        raise ConfigurationError(f"Unknown commission type {term.commission_type!r}")
    return Money(amount, base.currency).quantized()


def check_term_applies(invoice: InvoiceSnapshot, term: CommissionTermSnapshot) -> None:
    """Raise CommissionNotApplicable if the term cannot pay on this invoice."""
    if invoice.agent_id != term.agent_id:
        raise CommissionNotApplicable(
            invoice.id, term.agent_id,
            f"invoice belongs to agent {invoice.agent_id}",
        )
    invoice_date = invoice.invoice_date or timezone.localdate()
    if term.valid_from is not None and invoice_date < term.valid_from:
        raise CommissionNotApplicable(
            invoice.id, term.agent_id,
            f"invoice dated {invoice_date} before terms start {term.valid_from}",
        )
    if term.valid_until is not None and invoice_date > term.valid_until:
        raise CommissionNotApplicable(
            invoice.id, term.agent_id,
            f"invoice dated {invoice_date} after terms end {term.valid_until}",
        )


def quote_commission(invoice: InvoiceSnapshot, term: CommissionTermSnapshot) -> CommissionQuote:
    """Compute the commission an agent earns on an invoice.

    Raises:
        CommissionNotApplicable: Wrong agent or invoice outside the terms' window.
    """
    check_term_applies(invoice, term)
    base, excluded = commissionable_base(invoice, term)
    return CommissionQuote(
        commissionable_base=base.quantized(),
        amount=commission_amount(base, term),
        excluded_item_ids=excluded,
    )
