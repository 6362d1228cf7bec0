"""Price resolution over price-list snapshots.

Pure functions: no database access, safe to evaluate concurrently. The
selectors module loads snapshots from the database and calls in here.

Resolution for one item:
1. Applicability: active, valid on the date, customer type allowed.
2. Pricing model: SINGLE -> base price; RANGE -> base price inside the dive
   window; TIERED -> price of the tier containing the dive count.
3. Overlapping tiers are settled by the first active OVERLAP_HANDLING rule
   (sort_order, then id) whose condition matches the query.

resolve_service_price() applies the same overlap policy one level up, across
all items of a service type.
"""

from dataclasses import replace
from datetime import date

from django.utils import timezone

from . import conf
from .choices import CustomerType, PricingModel, RuleAction, RuleType
from .exceptions import ConfigurationError, OverlapConflict, PriceNotApplicable
from .money import Money
from .value_objects import (
    CustomerSnapshot,
    ItemOverlap,
    PriceItemSnapshot,
    PriceQuery,
    PriceSuggestion,
    PricingRuleSnapshot,
    ResolvedPrice,
    TierSnapshot,
)


# =============================================================================
# Catalog predicates
# =============================================================================


def is_valid_on(item: PriceItemSnapshot, on: date) -> bool:
    """Open (null) bounds are unbounded; both bounds inclusive."""
    if item.valid_from is not None and on < item.valid_from:
        return False
    if item.valid_until is not None and on > item.valid_until:
        return False
    return True


def matches_customer_type(applicable_to: str, customer_type: str | None) -> bool:
    """An ALL item matches any query; None means the caller did not filter.

    A query of ALL (customer type unknown) only matches ALL items.
    """
    if applicable_to == CustomerType.ALL or customer_type is None:
        return True
    return str(applicable_to) == str(customer_type)


def covers_dive_count(item: PriceItemSnapshot, dive_count: int) -> bool:
    """Whether dive_count lies in the item's [min_dives, max_dives] window."""
    if item.min_dives is not None and dive_count < item.min_dives:
        return False
    if item.max_dives is not None and dive_count > item.max_dives:
        return False
    return True


def customer_type_for(customer: CustomerSnapshot) -> str:
    """Derive the pricing customer type from a customer record."""
    if customer.is_corporate:
        return CustomerType.CORPORATE.value
    if customer.is_member:
        return CustomerType.MEMBER.value
    if customer.dive_group_count > 0:
        return CustomerType.GROUP.value
    return CustomerType.NON_MEMBER.value


def check_applicable(item: PriceItemSnapshot, as_of: date, customer_type: str | None) -> None:
    """Raise PriceNotApplicable unless the item may price this query."""
    if not item.is_active:
        raise PriceNotApplicable("item is inactive", item_id=item.id)
    if not is_valid_on(item, as_of):
        raise PriceNotApplicable(
            f"not valid on {as_of.isoformat()} "
            f"(valid {item.valid_from or 'open'} to {item.valid_until or 'open'})",
            item_id=item.id,
        )
    if not matches_customer_type(item.applicable_to, customer_type):
        raise PriceNotApplicable(
            f"applicable to {item.applicable_to}, not {customer_type}",
            item_id=item.id,
        )


# =============================================================================
# Overlap handling
# =============================================================================


def select_overlap_rule(
    rules, query: PriceQuery
) -> PricingRuleSnapshot | None:
    """Return the first active OVERLAP_HANDLING rule matching the query."""
    ordered = sorted(rules, key=lambda r: (r.sort_order, r.id))
    for rule in ordered:
        if not rule.is_active or rule.rule_type != RuleType.OVERLAP_HANDLING:
            continue
        if rule.condition is None or rule.condition.matches(query):
            return rule
    return None


def _overlap_policy(rules, query: PriceQuery) -> tuple[str, int | None]:
    rule = select_overlap_rule(rules, query)
    if rule is not None:
        return rule.action, rule.id
    return conf.default_overlap_action(), None


def _pick_tier(
    item: PriceItemSnapshot,
    tiers: list[TierSnapshot],
    dive_count: int,
    query: PriceQuery,
    rules,
) -> tuple[TierSnapshot, tuple[str, ...]]:
    action, rule_id = _overlap_policy(rules, query)
    tier_ids = [t.id for t in tiers]

    if action == RuleAction.REJECT:
        raise OverlapConflict(dive_count, tier_ids, rule_id=rule_id, level="tier")

    if action == RuleAction.APPLY_LOWEST:
        chosen = min(tiers, key=lambda t: (t.price_for(dive_count), -t.sort_order, t.id))
        return chosen, ()

    # APPLY_HIGHEST_PRIORITY and WARN share the ordering
    chosen = min(tiers, key=lambda t: (-t.sort_order, -item.priority, t.id))
    if action == RuleAction.WARN:
        return chosen, (
            f"Tiers {tier_ids} overlap at {dive_count} dives; "
            f"used tier {chosen.id} by priority",
        )
    return chosen, ()


# =============================================================================
# Resolution
# =============================================================================


def resolve_price(
    item: PriceItemSnapshot,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
    rules=(),
) -> ResolvedPrice:
    """Resolve the price of one item for a dive count.

    Args:
        item: Price-list item snapshot (tiers included for TIERED items)
        dive_count: Number of dives being priced
        as_of: Date the price must be valid on (defaults to today)
        customer_type: Customer type of the buyer, None for unfiltered
        rules: Pricing rule snapshots of the item's price list

    Returns:
        ResolvedPrice with the price, source tier and any WARN messages.

    Raises:
        PriceNotApplicable: No validity window, range or tier matches.
        OverlapConflict: Tiers overlap and the governing rule is REJECT.
        ConfigurationError: dive_count is not positive.
    """
    if dive_count <= 0:
        raise ConfigurationError(f"Dive count must be positive, got {dive_count}")

    check_date = as_of or timezone.localdate()
    check_applicable(item, check_date, customer_type)

    if item.pricing_model == PricingModel.SINGLE:
        return _result(item, item.base_price)

    if item.pricing_model == PricingModel.RANGE:
        if not covers_dive_count(item, dive_count):
            raise PriceNotApplicable(
                f"{dive_count} dives outside range {item.min_dives}-{item.max_dives}",
                item_id=item.id,
                dive_count=dive_count,
            )
        return _result(item, item.base_price)

    if item.pricing_model == PricingModel.TIERED:
        matching = [t for t in item.tiers if t.is_active and t.covers(dive_count)]
        if not matching:
            raise PriceNotApplicable(
                f"no active tier covers {dive_count} dives",
                item_id=item.id,
                dive_count=dive_count,
            )
        warnings = ()
        if len(matching) == 1:
            tier = matching[0]
        else:
            query = PriceQuery(
                dive_count=dive_count,
                as_of=check_date,
                service_type=item.service_type,
                customer_type=customer_type,
                item_id=item.id,
            )
            tier, warnings = _pick_tier(item, matching, dive_count, query, rules)
        return _result(item, tier.price_for(dive_count), tier_id=tier.id, warnings=warnings)

    raise ConfigurationError(f"Unknown pricing model {item.pricing_model!r} on item {item.id}")


def _result(item, amount, tier_id=None, warnings=()) -> ResolvedPrice:
    return ResolvedPrice(
        unit_price=Money(amount, item.currency).quantized(),
        item_id=item.id,
        pricing_model=item.pricing_model,
        priority=item.priority,
        source_tier_id=tier_id,
        warnings=tuple(warnings),
    )


def _resolve_candidates(
    items, service_type, dive_count, as_of, customer_type, rules, skip_conflicts=False
):
    """Resolve every item of the service type; items that do not apply drop out.

    With skip_conflicts, an item whose own tiers are rejected as overlapping
    drops out too instead of failing the whole lookup.
    """
    resolved = []
    for item in items:
        if item.service_type != service_type:
            continue
        try:
            resolved.append(resolve_price(item, dive_count, as_of, customer_type, rules))
        except PriceNotApplicable:
            continue
        except OverlapConflict:
            if not skip_conflicts:
                raise
    return resolved


def resolve_service_price(
    items,
    service_type: str,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
    rules=(),
) -> ResolvedPrice:
    """Resolve the best price across all items of a service type.

    When several items apply (overlapping dive windows), the overlap rule
    matched with no item in scope decides: APPLY_LOWEST compares computed
    prices, APPLY_HIGHEST_PRIORITY and WARN use item priority then id.

    Raises:
        PriceNotApplicable: No item of the service type applies.
        OverlapConflict: Items overlap and the governing rule is REJECT.
    """
    check_date = as_of or timezone.localdate()
    resolved = _resolve_candidates(items, service_type, dive_count, check_date, customer_type, rules)

    if not resolved:
        raise PriceNotApplicable(
            f"no {service_type} price applies to {dive_count} dives",
            dive_count=dive_count,
        )
    if len(resolved) == 1:
        return resolved[0]

    query = PriceQuery(
        dive_count=dive_count,
        as_of=check_date,
        service_type=service_type,
        customer_type=customer_type,
    )
    action, rule_id = _overlap_policy(rules, query)
    item_ids = [r.item_id for r in resolved]

    if action == RuleAction.REJECT:
        raise OverlapConflict(dive_count, item_ids, rule_id=rule_id, level="item")

    if action == RuleAction.APPLY_LOWEST:
        return min(resolved, key=lambda r: (r.unit_price.amount, -r.priority, r.item_id))

    chosen = min(resolved, key=lambda r: (-r.priority, r.item_id))
    if action == RuleAction.WARN:
        warning = (
            f"Items {item_ids} overlap at {dive_count} dives; "
            f"used item {chosen.item_id} by priority"
        )
        return replace(chosen, warnings=chosen.warnings + (warning,))
    return chosen


def price_suggestions(
    items,
    service_type: str,
    dive_count: int,
    as_of: date | None = None,
    customer_type: str | None = None,
    rules=(),
) -> list[PriceSuggestion]:
    """List every applicable item with its computed price.

    Ordered by priority (highest first), then price (lowest first).
    Items whose overlapping tiers are rejected by a REJECT rule have no
    price and are left out.
    """
    check_date = as_of or timezone.localdate()
    by_id = {item.id: item for item in items}
    resolved = _resolve_candidates(
        items, service_type, dive_count, check_date, customer_type, rules, skip_conflicts=True
    )

    suggestions = []
    for result in resolved:
        item = by_id[result.item_id]
        suggestions.append(
            PriceSuggestion(
                item_id=item.id,
                name=item.name,
                pricing_model=item.pricing_model,
                priority=item.priority,
                price=result.unit_price,
                base_price=Money(item.base_price, item.currency),
                applicable_to=item.applicable_to,
                min_dives=item.min_dives,
                max_dives=item.max_dives,
            )
        )
    suggestions.sort(key=lambda s: (-s.priority, s.price.amount, s.item_id))
    return suggestions


def find_item_overlaps(items, dive_count: int | None = None) -> list[ItemOverlap]:
    """Report pairs of active items whose dive windows overlap.

    Only items with both min_dives and max_dives set take part. With a
    dive_count, only items covering that count are compared.
    """
    windowed = [
        item for item in items
        if item.is_active and item.min_dives is not None and item.max_dives is not None
    ]
    if dive_count is not None:
        windowed = [item for item in windowed if covers_dive_count(item, dive_count)]
    windowed.sort(key=lambda i: i.id)

    overlaps = []
    for index, first in enumerate(windowed):
        for second in windowed[index + 1:]:
            if first.service_type != second.service_type:
                continue
            start = max(first.min_dives, second.min_dives)
            end = min(first.max_dives, second.max_dives)
            if start > end:
                continue
            winner = min((first, second), key=lambda i: (-i.priority, i.id))
            overlaps.append(
                ItemOverlap(
                    item_a_id=first.id,
                    item_b_id=second.id,
                    overlap_start=start,
                    overlap_end=end,
                    winner_id=winner.id,
                )
            )
    return overlaps
