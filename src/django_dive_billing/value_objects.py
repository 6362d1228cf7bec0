"""Value objects for django-dive-billing.

Snapshots are immutable copies of the fields a calculator needs. Models build
them with ``to_snapshot()``; read-only collaborators owned by the booking
system (bookings, dives, equipment, customers) are passed in directly as
snapshots. Results are immutable too, so a calculation can be logged or
compared without touching the database.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .choices import CustomerType, DivePackageStatus, InvoiceStatus, InvoiceType
from .money import Money


# =============================================================================
# Price catalog
# =============================================================================


@dataclass(frozen=True)
class TierSnapshot:
    """Dive-count band of a TIERED price-list item."""

    id: int
    from_dives: int
    to_dives: int
    price_per_dive: Decimal
    total_price: Decimal | None = None
    sort_order: int = 0
    is_active: bool = True
    tier_name: str = ""

    def covers(self, dive_count: int) -> bool:
        """Both bounds are inclusive."""
        return self.from_dives <= dive_count <= self.to_dives

    def price_for(self, dive_count: int) -> Decimal:
        """Fixed package price if set, otherwise per-dive rate times dives."""
        if self.total_price is not None:
            return self.total_price
        return self.price_per_dive * dive_count


@dataclass(frozen=True)
class PriceItemSnapshot:
    """A price-list item together with its tiers."""

    id: int
    service_type: str
    base_price: Decimal
    pricing_model: str
    currency: str = "USD"
    name: str = ""
    min_dives: int | None = None
    max_dives: int | None = None
    priority: int = 0
    valid_from: date | None = None
    valid_until: date | None = None
    applicable_to: str = CustomerType.ALL
    is_active: bool = True
    tiers: tuple[TierSnapshot, ...] = ()


@dataclass(frozen=True)
class PriceQuery:
    """What is being priced; rule conditions are evaluated against it."""

    dive_count: int
    as_of: date
    service_type: str
    customer_type: str | None = None
    item_id: int | None = None


@dataclass(frozen=True)
class PricingRuleSnapshot:
    """A pricing rule with its condition already parsed."""

    id: int
    rule_type: str
    action: str
    condition: object = None
    sort_order: int = 0
    is_active: bool = True
    rule_name: str = ""


@dataclass(frozen=True)
class ResolvedPrice:
    """Immutable result of price resolution.

    ``unit_price`` is the price for the requested dive count, i.e. the unit
    price of the invoice line it feeds.
    """

    unit_price: Money
    item_id: int
    pricing_model: str
    priority: int = 0
    source_tier_id: int | None = None
    warnings: tuple[str, ...] = ()

    def explain(self) -> str:
        """Human-readable explanation of why this price was selected."""
        source = f"tier {self.source_tier_id}" if self.source_tier_id else "base price"
        text = f"{self.unit_price} (item {self.item_id}, {self.pricing_model}, {source}, priority {self.priority})"
        if self.warnings:
            text += " [" + "; ".join(self.warnings) + "]"
        return text


@dataclass(frozen=True)
class PriceSuggestion:
    item_id: int
    name: str
    pricing_model: str
    priority: int
    price: Money
    base_price: Money
    applicable_to: str
    min_dives: int | None = None
    max_dives: int | None = None


@dataclass(frozen=True)
class ItemOverlap:
    """Two items whose dive windows overlap."""

    item_a_id: int
    item_b_id: int
    overlap_start: int
    overlap_end: int
    winner_id: int


@dataclass(frozen=True)
class CustomerSnapshot:
    id: int
    is_member: bool = False
    is_corporate: bool = False
    dive_group_count: int = 0


# =============================================================================
# Packages
# =============================================================================


@dataclass(frozen=True)
class PackageComponentSnapshot:
    id: int
    component_type: str
    name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    unit: str = ""
    description: str = ""
    is_inclusive: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class PackageOptionSnapshot:
    id: int
    name: str
    price: Decimal
    is_active: bool = True
    max_quantity: int | None = None


@dataclass(frozen=True)
class PackageTierSnapshot:
    id: int
    min_persons: int
    max_persons: int | None
    price_per_person: Decimal
    discount_percentage: Decimal = Decimal("0")
    is_active: bool = True

    def covers(self, persons: int) -> bool:
        return self.min_persons <= persons and (
            self.max_persons is None or self.max_persons >= persons
        )


@dataclass(frozen=True)
class PackageSnapshot:
    id: int
    name: str
    base_price: Decimal
    price_per_person: Decimal
    currency: str = "USD"
    days: int | None = None
    nights: int | None = None
    total_dives: int | None = None
    is_active: bool = True
    valid_from: date | None = None
    valid_until: date | None = None
    components: tuple[PackageComponentSnapshot, ...] = ()
    options: tuple[PackageOptionSnapshot, ...] = ()
    tiers: tuple[PackageTierSnapshot, ...] = ()


@dataclass(frozen=True)
class BreakdownLine:
    """One display line of a package breakdown."""

    line_type: str
    name: str = ""
    description: str = ""
    unit_price: Decimal | None = None
    quantity: int | None = None
    unit: str = ""
    total: Decimal | None = None
    component_type: str = ""


@dataclass(frozen=True)
class BreakdownValidation:
    is_valid: bool
    base_price: Decimal
    components_total: Decimal
    difference: Decimal


# =============================================================================
# Dive packages
# =============================================================================


@dataclass(frozen=True)
class DivePackageSnapshot:
    id: int | None
    total_dives: int
    dives_used: int
    start_date: date
    end_date: date | None = None
    status: str = DivePackageStatus.ACTIVE
    total_price: Decimal = Decimal("0")
    per_dive_price: Decimal | None = None
    currency: str = "USD"


@dataclass(frozen=True)
class DiveConsumption:
    """Result of logging one dive against a punch-card package."""

    dive_package_id: int
    package_dive_number: int
    per_dive_price: Money
    remaining_dives: int
    status: str


# =============================================================================
# Invoices and commissions
# =============================================================================


@dataclass(frozen=True)
class InvoiceItemSnapshot:
    id: int | None
    total: Decimal
    booking_dive_id: int | None = None
    booking_equipment_id: int | None = None
    price_list_item_id: int | None = None
    description: str = ""

    @property
    def is_equipment(self) -> bool:
        return self.booking_equipment_id is not None

    @property
    def is_manual(self) -> bool:
        """Typed in by staff rather than generated from a dive, rental or price item."""
        return (
            self.booking_dive_id is None
            and self.booking_equipment_id is None
            and self.price_list_item_id is None
        )


@dataclass(frozen=True)
class PaymentSnapshot:
    id: int | None
    amount: Decimal


@dataclass(frozen=True)
class InvoiceSnapshot:
    id: int | None
    invoice_no: str
    total: Decimal
    currency: str = "USD"
    status: str = InvoiceStatus.DRAFT
    invoice_type: str = InvoiceType.FULL
    invoice_date: date | None = None
    booking_id: int | None = None
    agent_id: int | None = None
    items: tuple[InvoiceItemSnapshot, ...] = ()
    payments: tuple[PaymentSnapshot, ...] = ()


@dataclass(frozen=True)
class InvoiceBalance:
    total_paid: Money
    remaining_balance: Money
    is_fully_paid: bool
    can_add_payment: bool


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class CommissionTermSnapshot:
    agent_id: int
    commission_type: str
    commission_rate: Decimal
    exclude_equipment_from_commission: bool = False
    include_manual_items_in_commission: bool = True
    valid_from: date | None = None
    valid_until: date | None = None


@dataclass(frozen=True)
class CommissionQuote:
    commissionable_base: Money
    amount: Money
    excluded_item_ids: tuple = ()


@dataclass
class CommissionBatchResult:
    """Outcome of calculating commissions for several invoices."""

    commissions: list = field(default_factory=list)
    failures: list = field(default_factory=list)  # (invoice_id, DiveBillingError)

    @property
    def succeeded(self) -> bool:
        return not self.failures


# =============================================================================
# Booking inputs (read-only, owned by the booking system)
# =============================================================================


@dataclass(frozen=True)
class BookingDiveSnapshot:
    id: int
    price: Decimal | None
    status: str
    price_list_item_id: int | None = None
    description: str = ""


@dataclass(frozen=True)
class BookingEquipmentSnapshot:
    id: int
    price: Decimal | None
    description: str = ""


@dataclass(frozen=True)
class BookingSnapshot:
    id: int
    customer_id: int | None = None
    agent_id: int | None = None
    currency: str = "USD"
    dives: tuple[BookingDiveSnapshot, ...] = ()
    equipment: tuple[BookingEquipmentSnapshot, ...] = ()
