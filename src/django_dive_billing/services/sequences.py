"""Sequence services for atomic document numbering."""

import logging

from django.db import IntegrityError, transaction

from .. import conf
from ..choices import SCHEME_PREFIXES
from ..exceptions import ConcurrencyConflict, ConfigurationError
from ..models import Sequence

logger = logging.getLogger(__name__)


def _locked_sequence(scope: str, tenant_id: str, period: str, prefix: str) -> Sequence:
    """Return the sequence row locked for update, creating it on first use.

    Two requests may both miss the row and race to create it; the unique
    constraint lets exactly one win, and the loser retries the locked read.
    Must be called inside transaction.atomic().
    """
    attempts = conf.sequence_max_retries()
    for attempt in range(1, attempts + 1):
        try:
            return Sequence.objects.select_for_update().get(
                scope=scope,
                tenant_id=tenant_id,
                period=period,
            )
        except Sequence.DoesNotExist:
            pass

        try:
            with transaction.atomic():
                seq = Sequence.objects.create(
                    scope=scope,
                    tenant_id=tenant_id,
                    period=period,
                    prefix=prefix,
                    current_value=0,
                    pad_width=conf.sequence_pad_width(),
                )
        except IntegrityError:
            logger.debug(
                "Sequence %s/%s/%s created concurrently (attempt %d of %d)",
                scope, tenant_id, period, attempt, attempts,
            )
            continue

        return Sequence.objects.select_for_update().get(pk=seq.pk)

    raise ConcurrencyConflict(
        f"Could not allocate {scope} sequence for tenant {tenant_id}, "
        f"period {period} after {attempts} attempts"
    )


def next_sequence_number(tenant_id, period, scheme="invoice") -> str:
    """
    Allocate the next number of a scheme for a tenant and period.

    The counter row is incremented under select_for_update(), so concurrent
    callers never observe the same value. When called inside an outer
    transaction the lock is held until that transaction ends, which
    serializes everything the caller does for this tenant and period.

    Args:
        tenant_id: Tenant the number belongs to
        period: Numbering period, usually the year (e.g. 2026)
        scheme: "invoice", "basket" or "expense"

    Returns:
        The formatted number, e.g. "INV-2026-001"

    Raises:
        ConfigurationError: Unknown scheme
        ConcurrencyConflict: The counter row could not be created or locked

    Usage:
        invoice_no = next_sequence_number("dive-center-1", 2026, "invoice")
    """
    scope = str(scheme)
    prefix = SCHEME_PREFIXES.get(scope)
    if prefix is None:
        raise ConfigurationError(
            f"Unknown numbering scheme {scope!r}",
            errors=[f"scheme must be one of {sorted(SCHEME_PREFIXES)}"],
        )

    tenant_id = str(tenant_id)
    period = str(period)

    with transaction.atomic():
        seq = _locked_sequence(scope, tenant_id, period, prefix)
        seq.current_value += 1
        seq.save(update_fields=["current_value", "updated_at"])
        number = seq.formatted_value

    logger.debug("Allocated %s for tenant %s", number, tenant_id)
    return number
