"""Django Dive Billing configuration.

All settings can be overridden in your Django settings.py with the
DIVE_BILLING_ prefix. Values are read at call time so tests can use
override_settings.

Example:
    # settings.py
    DIVE_BILLING_DEFAULT_CURRENCY = 'MXN'
    DIVE_BILLING_DEFAULT_OVERLAP_ACTION = 'APPLY_LOWEST'
"""

from decimal import Decimal

from django.conf import settings


DEFAULTS = {
    "DEFAULT_CURRENCY": "USD",
    # Used when overlapping prices match but no OVERLAP_HANDLING rule applies
    "DEFAULT_OVERLAP_ACTION": "APPLY_HIGHEST_PRIORITY",
    "BREAKDOWN_TOLERANCE": "0.01",
    "SEQUENCE_PAD_WIDTH": 3,
    "SEQUENCE_MAX_RETRIES": 3,
}


def get_setting(name: str, default=None):
    """Get a setting with DIVE_BILLING_ prefix."""
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"DIVE_BILLING_{name}", default)


def default_currency() -> str:
    return get_setting("DEFAULT_CURRENCY")


def default_overlap_action() -> str:
    return get_setting("DEFAULT_OVERLAP_ACTION")


def breakdown_tolerance() -> Decimal:
    return Decimal(str(get_setting("BREAKDOWN_TOLERANCE")))


def sequence_pad_width() -> int:
    return int(get_setting("SEQUENCE_PAD_WIDTH"))


def sequence_max_retries() -> int:
    return int(get_setting("SEQUENCE_MAX_RETRIES"))
