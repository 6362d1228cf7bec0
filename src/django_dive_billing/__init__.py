"""Django Dive Billing - pricing and billing core for dive centers.

Pure calculators (snapshots in, immutable results out):
    resolve_price: Price one price-list item for a dive count
    calculate_package_price: Price a package for a group with add-ons
    get_package_breakdown: Catalog breakdown of a package
    is_package_active: Whether a punch card can take another dive
    reconcile_invoice: Payments against an invoice total

Services (the only supported write path):
    consume_dive: Log a dive against a punch card under a row lock
    calculate_commission: Record an agent's commission on an invoice
    next_sequence_number: Allocate "INV-2026-001" style numbers
"""

__version__ = "0.1.0"

__all__ = [
    # Calculators
    "resolve_price",
    "calculate_package_price",
    "get_package_breakdown",
    "is_package_active",
    "reconcile_invoice",
    # Services
    "consume_dive",
    "calculate_commission",
    "next_sequence_number",
    # Exceptions
    "DiveBillingError",
    "ConfigurationError",
    "PriceNotApplicable",
    "OverlapConflict",
    "InsufficientDives",
    "PackageNotActive",
    "InvalidStateTransition",
    "InvoicingError",
    "DuplicateAdvanceInvoice",
    "InvoiceChainError",
    "PaymentRejected",
    "CommissionNotApplicable",
    "ConcurrencyConflict",
]

_CALCULATORS = {
    "resolve_price": "engine",
    "calculate_package_price": "packages",
    "get_package_breakdown": "packages",
    "is_package_active": "tracker",
    "reconcile_invoice": "reconciliation",
}

_SERVICES = ("consume_dive", "calculate_commission", "next_sequence_number")


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in _CALCULATORS:
        from importlib import import_module
        return getattr(import_module(f".{_CALCULATORS[name]}", __name__), name)

    if name in _SERVICES:
        from . import services
        return getattr(services, name)

    if name in __all__:
        from . import exceptions
        return getattr(exceptions, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
