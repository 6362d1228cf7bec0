"""Rule conditions: a small closed predicate language for PricingRule.condition.

Stored as JSON on the rule and parsed (and validated) when the rule is saved:

    null                                                  always matches
    {"scope": "service_type", "service_types": ["Dive Trip"]}
    {"scope": "item", "item_ids": [12, 14]}
    {"scope": "date_range", "from": "2026-01-01", "until": "2026-03-31"}
    {"scope": "customer_type", "customer_types": ["MEMBER"]}
    {"scope": "all_of", "conditions": [<condition>, ...]}

Any other shape is a ConfigurationError.
"""

from dataclasses import dataclass
from datetime import date

from .choices import CustomerType
from .exceptions import ConfigurationError
from .value_objects import PriceQuery


@dataclass(frozen=True)
class Always:
    def matches(self, query: PriceQuery) -> bool:
        return True

    def to_json(self):
        return None


@dataclass(frozen=True)
class ServiceTypeScope:
    service_types: frozenset

    def matches(self, query: PriceQuery) -> bool:
        return query.service_type in self.service_types

    def to_json(self):
        return {"scope": "service_type", "service_types": sorted(self.service_types)}


@dataclass(frozen=True)
class ItemScope:
    item_ids: frozenset

    def matches(self, query: PriceQuery) -> bool:
        return query.item_id is not None and query.item_id in self.item_ids

    def to_json(self):
        return {"scope": "item", "item_ids": sorted(self.item_ids)}


@dataclass(frozen=True)
class DateRangeScope:
    start: date | None
    end: date | None

    def matches(self, query: PriceQuery) -> bool:
        if self.start is not None and query.as_of < self.start:
            return False
        if self.end is not None and query.as_of > self.end:
            return False
        return True

    def to_json(self):
        return {
            "scope": "date_range",
            "from": self.start.isoformat() if self.start else None,
            "until": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class CustomerTypeScope:
    customer_types: frozenset

    def matches(self, query: PriceQuery) -> bool:
        return query.customer_type is not None and str(query.customer_type) in self.customer_types

    def to_json(self):
        return {"scope": "customer_type", "customer_types": sorted(self.customer_types)}


@dataclass(frozen=True)
class AllOf:
    conditions: tuple

    def matches(self, query: PriceQuery) -> bool:
        return all(c.matches(query) for c in self.conditions)

    def to_json(self):
        return {"scope": "all_of", "conditions": [c.to_json() for c in self.conditions]}


def _string_set(raw: dict, key: str) -> frozenset:
    values = raw.get(key)
    if not isinstance(values, list) or not values:
        raise ConfigurationError(
            f"Condition '{raw.get('scope')}' needs a non-empty '{key}' list",
            errors=[f"{key} missing or empty"],
        )
    if not all(isinstance(v, str) and v for v in values):
        raise ConfigurationError(f"'{key}' must contain non-empty strings")
    return frozenset(values)


def _parse_date(raw: dict, key: str) -> date | None:
    value = raw.get(key)
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid '{key}' date in date_range condition: {value!r}",
            errors=[f"{key} must be an ISO date"],
        )


def parse_condition(raw):
    """Parse a stored condition into a predicate object.

    Raises:
        ConfigurationError: If the condition is not part of the language.
    """
    if raw is None or raw == {}:
        return Always()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Condition must be an object or null, got {type(raw).__name__}")

    scope = raw.get("scope")

    if scope == "service_type":
        return ServiceTypeScope(_string_set(raw, "service_types"))

    if scope == "item":
        item_ids = raw.get("item_ids")
        if (
            not isinstance(item_ids, list)
            or not item_ids
            or not all(isinstance(i, int) and not isinstance(i, bool) for i in item_ids)
        ):
            raise ConfigurationError(
                "Condition 'item' needs a non-empty list of integer 'item_ids'",
                errors=["item_ids missing or invalid"],
            )
        return ItemScope(frozenset(item_ids))

    if scope == "date_range":
        start = _parse_date(raw, "from")
        end = _parse_date(raw, "until")
        if start is None and end is None:
            raise ConfigurationError("Condition 'date_range' needs 'from' or 'until'")
        if start and end and start > end:
            raise ConfigurationError(
                f"Condition 'date_range' starts after it ends ({start} > {end})"
            )
        return DateRangeScope(start, end)

    if scope == "customer_type":
        types = _string_set(raw, "customer_types")
        unknown = types - set(CustomerType.values)
        if unknown:
            raise ConfigurationError(
                f"Unknown customer types in condition: {sorted(unknown)}",
                errors=[f"unknown customer type {t}" for t in sorted(unknown)],
            )
        return CustomerTypeScope(types)

    if scope == "all_of":
        children = raw.get("conditions")
        if not isinstance(children, list) or not children:
            raise ConfigurationError("Condition 'all_of' needs a non-empty 'conditions' list")
        return AllOf(tuple(parse_condition(child) for child in children))

    raise ConfigurationError(
        f"Unknown condition scope: {scope!r}",
        errors=["scope must be one of service_type, item, date_range, customer_type, all_of"],
    )
