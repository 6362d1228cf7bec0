"""Models for django-dive-billing."""

from .agents import AgentCommercialTerm, AgentCommission
from .catalog import PriceList, PriceListItem, PricingRule, PriceTier
from .dive_packages import DivePackage
from .invoicing import Invoice, InvoiceItem, Payment
from .packages import Package, PackageComponent, PackageOption, PackagePricingTier
from .sequences import Sequence

__all__ = [
    "AgentCommercialTerm",
    "AgentCommission",
    "DivePackage",
    "Invoice",
    "InvoiceItem",
    "Package",
    "PackageComponent",
    "PackageOption",
    "PackagePricingTier",
    "Payment",
    "PriceList",
    "PriceListItem",
    "PriceTier",
    "PricingRule",
    "Sequence",
]
