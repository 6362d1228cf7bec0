"""Commission services: record and aggregate agent commissions.

One AgentCommission row exists per (invoice, agent). Recalculating updates
that row in place, so running the calculation again after an invoice changes
is always safe.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from .. import conf
from ..choices import CommissionStatus
from ..commissions import quote_commission
from ..exceptions import ConcurrencyConflict, DiveBillingError
from ..money import Money
from ..models import AgentCommercialTerm, AgentCommission, Invoice
from ..value_objects import CommissionBatchResult

logger = logging.getLogger(__name__)


def calculate_commission(invoice: Invoice, agent_term: AgentCommercialTerm) -> AgentCommission:
    """Compute and record an agent's commission on an invoice.

    Creates the commission on first call; later calls update amount and base
    in place. A Cancelled commission is reopened as Pending, a Paid one keeps
    its status. Unchanged inputs produce no write.

    Raises:
        CommissionNotApplicable: Agent mismatch or invoice outside the terms' window.
        ConcurrencyConflict: Another request created the row concurrently.
    """
    with transaction.atomic():
        quote = quote_commission(invoice.to_snapshot(), agent_term.to_snapshot())
        amount = quote.amount.amount
        base = quote.commissionable_base.amount

        commission = (
            AgentCommission.objects.select_for_update()
            .filter(invoice=invoice, agent_id=agent_term.agent_id)
            .first()
        )

        if commission is None:
            try:
                with transaction.atomic():
                    commission = AgentCommission.objects.create(
                        invoice=invoice,
                        agent_id=agent_term.agent_id,
                        amount=amount,
                        commissionable_base=base,
                        currency=invoice.currency,
                    )
            except IntegrityError as exc:
                raise ConcurrencyConflict(
                    f"Commission for invoice {invoice.pk}, agent {agent_term.agent_id} "
                    "was created concurrently"
                ) from exc
            logger.info(
                "Recorded commission %s for agent %s on %s (base %s)",
                amount, agent_term.agent_id, invoice.invoice_no, base,
            )
            return commission

        update_fields = []
        if commission.amount != amount or commission.commissionable_base != base:
            commission.amount = amount
            commission.commissionable_base = base
            update_fields += ["amount", "commissionable_base"]
        if commission.status == CommissionStatus.CANCELLED:
            commission.status = CommissionStatus.PENDING
            update_fields.append("status")

        if update_fields:
            commission.calculated_at = timezone.now()
            commission.save(update_fields=update_fields + ["calculated_at", "updated_at"])
            logger.info(
                "Updated commission %s for agent %s on %s: %s",
                commission.pk, agent_term.agent_id, invoice.invoice_no, amount,
            )

    return commission


def calculate_commissions_for_agent(agent_term: AgentCommercialTerm, invoices) -> CommissionBatchResult:
    """Calculate commissions for several invoices.

    Each invoice is recorded in its own transaction. Failures are collected
    with their typed error instead of being turned into zero commissions.
    """
    result = CommissionBatchResult()
    for invoice in invoices:
        try:
            result.commissions.append(calculate_commission(invoice, agent_term))
        except DiveBillingError as exc:
            logger.warning(
                "Commission failed for invoice %s, agent %s: %s",
                invoice.pk, agent_term.agent_id, exc,
            )
            result.failures.append((invoice.pk, exc))
    return result


def total_commission_earned(agent_id: int, currency: str | None = None) -> Money:
    """Sum of an agent's Pending and Paid commissions; Cancelled rows are ignored."""
    currency = currency or conf.default_currency()
    total = (
        AgentCommission.objects.filter(agent_id=agent_id, currency=currency)
        .exclude(status=CommissionStatus.CANCELLED)
        .aggregate(total=Sum("amount"))["total"]
    )
    return Money(total or Decimal("0"), currency).quantized()
