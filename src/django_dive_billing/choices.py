"""Choice enumerations shared by models and calculators.

TextChoices members compare equal to their stored string values, so
snapshots built from plain strings work with the calculators unchanged.
"""

from django.db import models


class PricingModel(models.TextChoices):
    SINGLE = "SINGLE", "Single price"
    RANGE = "RANGE", "Dive-count range"
    TIERED = "TIERED", "Tiered by dive count"


class CustomerType(models.TextChoices):
    ALL = "ALL", "All customers"
    MEMBER = "MEMBER", "Member"
    NON_MEMBER = "NON_MEMBER", "Non-member"
    GROUP = "GROUP", "Group"
    CORPORATE = "CORPORATE", "Corporate"


class RuleType(models.TextChoices):
    OVERLAP_HANDLING = "OVERLAP_HANDLING", "Overlap handling"
    VALIDATION = "VALIDATION", "Validation"
    DISCOUNT = "DISCOUNT", "Discount"
    SURCHARGE = "SURCHARGE", "Surcharge"


class RuleAction(models.TextChoices):
    APPLY_LOWEST = "APPLY_LOWEST", "Apply lowest price"
    APPLY_HIGHEST_PRIORITY = "APPLY_HIGHEST_PRIORITY", "Apply highest priority"
    REJECT = "REJECT", "Reject"
    WARN = "WARN", "Warn"


class ComponentType(models.TextChoices):
    TRANSFER = "TRANSFER", "Transfer"
    ACCOMMODATION = "ACCOMMODATION", "Accommodation"
    DIVE = "DIVE", "Dive"
    EXCURSION = "EXCURSION", "Excursion"
    MEAL = "MEAL", "Meal"
    EQUIPMENT = "EQUIPMENT", "Equipment"
    OTHER = "OTHER", "Other"


class DivePackageStatus(models.TextChoices):
    ACTIVE = "Active", "Active"
    COMPLETED = "Completed", "Completed"
    EXPIRED = "Expired", "Expired"
    CANCELLED = "Cancelled", "Cancelled"


class InvoiceStatus(models.TextChoices):
    DRAFT = "Draft", "Draft"
    PAID = "Paid", "Paid"
    PARTIALLY_PAID = "Partially Paid", "Partially Paid"
    REFUNDED = "Refunded", "Refunded"


class InvoiceType(models.TextChoices):
    ADVANCE = "Advance", "Advance"
    FINAL = "Final", "Final"
    FULL = "Full", "Full"


class PaymentType(models.TextChoices):
    ADVANCE = "Advance", "Advance"
    FINAL = "Final", "Final"


class PaymentMethod(models.TextChoices):
    CASH = "Cash", "Cash"
    CARD = "Card", "Card"
    BANK = "Bank", "Bank transfer"


class TaxMode(models.TextChoices):
    EXCLUSIVE = "exclusive", "Tax exclusive"
    INCLUSIVE = "inclusive", "Tax inclusive"


class CommissionType(models.TextChoices):
    PERCENTAGE = "Percentage", "Percentage"
    FIXED_AMOUNT = "FixedAmount", "Fixed Amount"


class CommissionStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    PAID = "Paid", "Paid"
    CANCELLED = "Cancelled", "Cancelled"


class SequenceScheme(models.TextChoices):
    """Numbering schemes; the value is the sequence scope, see SCHEME_PREFIXES."""

    INVOICE = "invoice", "Invoice"
    BASKET = "basket", "Equipment basket"
    EXPENSE = "expense", "Expense"


SCHEME_PREFIXES = {
    SequenceScheme.INVOICE.value: "INV",
    SequenceScheme.BASKET.value: "BASK",
    SequenceScheme.EXPENSE.value: "EXP",
}
