"""
Status resolver configured from RENEWAL_SETTINGS.
"""

from core.conf import renewal_setting
from devices.domain.status import StatusResolver


def configured_resolver() -> StatusResolver:
    return StatusResolver(
        expiring_soon_days=int(renewal_setting("EXPIRING_SOON_DAYS")),
        tz_name=renewal_setting("STATUS_TIMEZONE"),
    )
