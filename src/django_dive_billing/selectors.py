"""Selectors for price resolution.

Read-only queries that load price-list snapshots (items with tiers, active
rules) and hand them to the pure engine.
"""

import logging
from datetime import date

from django.db.models import Prefetch

from . import engine
from .models import PriceList, PriceListItem, PriceTier
from .value_objects import ItemOverlap, PriceSuggestion, ResolvedPrice

logger = logging.getLogger(__name__)


def _items_for(price_list: PriceList, service_type: str | None = None):
    qs = (
        PriceListItem.objects.filter(price_list=price_list)
        .select_related("price_list")
        .prefetch_related(Prefetch("tiers", queryset=PriceTier.objects.order_by("from_dives", "id")))
    )
    if service_type is not None:
        qs = qs.filter(service_type=service_type)
    return [item.to_snapshot() for item in qs]


def _log_warnings(result: ResolvedPrice) -> ResolvedPrice:
    for warning in result.warnings:
        logger.warning("Price overlap resolved with warning: %s", warning)
    return result


def resolve_item_price(
    item: PriceListItem,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
) -> ResolvedPrice:
    """Resolve one item's price using its price list's active rules."""
    rules = item.price_list.rule_snapshots()
    return _log_warnings(
        engine.resolve_price(item.to_snapshot(), dive_count, as_of, customer_type, rules)
    )


def resolve_service_price_for_list(
    price_list: PriceList,
    service_type: str,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
) -> ResolvedPrice:
    """Best price for a service type across all items of a price list."""
    return _log_warnings(
        engine.resolve_service_price(
            _items_for(price_list, service_type),
            service_type,
            dive_count,
            as_of,
            customer_type,
            price_list.rule_snapshots(),
        )
    )


def list_price_suggestions(
    price_list: PriceList,
    service_type: str,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
) -> list[PriceSuggestion]:
    return engine.price_suggestions(
        _items_for(price_list, service_type),
        service_type,
        dive_count,
        as_of,
        customer_type,
        price_list.rule_snapshots(),
    )


def find_overlapping_items(
    price_list: PriceList,
    service_type: str | None = None,
    dive_count: int | None = None,
) -> list[ItemOverlap]:
    """Pairs of items on a price list whose dive windows overlap."""
    return engine.find_item_overlaps(_items_for(price_list, service_type), dive_count)
