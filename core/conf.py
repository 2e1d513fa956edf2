"""
Access to the RENEWAL_SETTINGS tunables with defaults.
"""

from decimal import Decimal
from typing import Any

from django.conf import settings

DEFAULTS = {
    "EXPIRING_SOON_DAYS": 30,
    "GRACE_PERIOD_DAYS": 7,
    "STATUS_TIMEZONE": "UTC",
    "QUOTE_BASE_PRICE": Decimal("100.00"),
    "DEFAULT_MARGIN_PERCENT": Decimal("20"),
    "MAX_MARGIN_PERCENT": Decimal("1000"),
    "DIRECT_PRICE_PER_DEVICE_YEAR": Decimal("200.00"),
    "CURRENCY": "GBP",
    "MAX_RENEWAL_YEARS": 10,
    "EXTERNAL_RETRY_ATTEMPTS": 3,
    "EXTERNAL_RETRY_BACKOFF_SECONDS": 0.5,
}


def renewal_setting(name: str) -> Any:
    """
    Look up a renewal tunable.

    Args:
        name: Key in RENEWAL_SETTINGS

    Returns:
        The configured value, or the built-in default
    """
    configured = getattr(settings, "RENEWAL_SETTINGS", {})
    if name in configured:
        value = configured[name]
        if isinstance(DEFAULTS.get(name), Decimal) and not isinstance(value, Decimal):
            return Decimal(str(value))
        return value
    return DEFAULTS[name]
