"""Services: the only supported write path for billing state."""

from .commissions import (
    calculate_commission,
    calculate_commissions_for_agent,
    total_commission_earned,
)
from .dive_packages import change_dive_package_status, consume_dive, create_dive_package
from .invoicing import (
    add_invoice_item,
    create_invoice,
    finalize_invoice,
    generate_invoice_from_booking,
    record_payment,
)
from .packages import (
    create_package,
    package_breakdown,
    package_end_date,
    price_package,
    update_package,
)
from .sequences import next_sequence_number

__all__ = [
    "add_invoice_item",
    "calculate_commission",
    "calculate_commissions_for_agent",
    "change_dive_package_status",
    "consume_dive",
    "create_dive_package",
    "create_invoice",
    "create_package",
    "finalize_invoice",
    "generate_invoice_from_booking",
    "next_sequence_number",
    "package_breakdown",
    "package_end_date",
    "price_package",
    "record_payment",
    "total_commission_earned",
    "update_package",
]
