"""Exceptions for django-dive-billing.

Every failure is a distinct subclass of DiveBillingError so callers can tell
"computed to zero" apart from "failed to compute".
"""


class DiveBillingError(Exception):
    """Base exception for dive billing errors."""

    pass


class ConfigurationError(DiveBillingError):
    """Raised when pricing or package configuration is invalid.

    Rejected at write time (tier bounds, rule conditions, non-positive dive
    totals) rather than discovered during resolution.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class PriceNotApplicable(DiveBillingError):
    """Raised when no validity window, dive range or tier matches a query."""

    def __init__(self, reason: str, item_id=None, dive_count: int | None = None):
        message = reason
        if item_id is not None:
            message = f"Item {item_id}: {reason}"
        super().__init__(message)
        self.reason = reason
        self.item_id = item_id
        self.dive_count = dive_count


class OverlapConflict(DiveBillingError):
    """Raised when overlapping prices match and the governing rule is REJECT."""

    def __init__(self, dive_count: int, candidate_ids: list, rule_id=None, level: str = "tier"):
        super().__init__(
            f"Overlapping {level}s {candidate_ids} match dive count {dive_count}"
            + (f" (rejected by rule {rule_id})" if rule_id is not None else "")
        )
        self.dive_count = dive_count
        self.candidate_ids = candidate_ids
        self.rule_id = rule_id
        self.level = level


class PackageNotActive(DiveBillingError):
    """Raised when a dive is logged against an expired or closed dive package."""

    def __init__(self, dive_package_id, status: str):
        super().__init__(f"Dive package {dive_package_id} is not active (status={status})")
        self.dive_package_id = dive_package_id
        self.status = status


class InsufficientDives(DiveBillingError):
    """Raised when a dive package has no remaining dives."""

    def __init__(self, dive_package_id, total_dives: int, dives_used: int):
        super().__init__(
            f"Dive package {dive_package_id} has no remaining dives "
            f"({dives_used}/{total_dives} used)"
        )
        self.dive_package_id = dive_package_id
        self.total_dives = total_dives
        self.dives_used = dives_used


class InvalidStateTransition(DiveBillingError):
    """Raised for a status change the lifecycle does not allow."""

    def __init__(self, obj_id, current: str, requested: str):
        super().__init__(f"Cannot move {obj_id} from {current} to {requested}")
        self.obj_id = obj_id
        self.current = current
        self.requested = requested


class InvoicingError(DiveBillingError):
    """Base exception for invoice chaining and payment errors."""

    pass


class DuplicateAdvanceInvoice(InvoicingError):
    """Raised when a booking already has an Advance invoice."""

    def __init__(self, booking_id, existing_invoice_no: str):
        super().__init__(
            f"Booking {booking_id} already has advance invoice {existing_invoice_no}"
        )
        self.booking_id = booking_id
        self.existing_invoice_no = existing_invoice_no


class InvoiceChainError(InvoicingError):
    """Raised when a Final invoice cannot be chained to an Advance invoice."""

    pass


class PaymentRejected(InvoicingError):
    """Raised when a payment cannot be recorded against an invoice."""

    def __init__(self, invoice_no: str, reason: str):
        super().__init__(f"Payment rejected for {invoice_no}: {reason}")
        self.invoice_no = invoice_no
        self.reason = reason


class CommissionNotApplicable(DiveBillingError):
    """Raised when an invoice is not eligible for an agent's commission."""

    def __init__(self, invoice_id, agent_id, reason: str):
        super().__init__(f"No commission for invoice {invoice_id}, agent {agent_id}: {reason}")
        self.invoice_id = invoice_id
        self.agent_id = agent_id
        self.reason = reason


class ConcurrencyConflict(DiveBillingError):
    """Raised when a concurrent writer won the race (numbering or dive consumption)."""

    pass
