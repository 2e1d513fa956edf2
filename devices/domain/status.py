"""
Device state resolver.

Pure functions that derive a device's license status from its expiry
date and a caller-supplied clock. Every comparison happens on calendar
dates in a single reference timezone so a device near midnight never
resolves differently for two callers.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo

from core.domain.value_objects import DeviceStatus

DEFAULT_EXPIRING_SOON_DAYS = 30
DEFAULT_TIMEZONE = "UTC"


def reference_date(now: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    """
    Convert an instant to the calendar date used for status decisions.

    Naive datetimes are taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date()


def resolve_status(
    expiry_date: date,
    grace_token_expiry: Optional[date],
    now: datetime,
    suspended: bool = False,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
    tz_name: str = DEFAULT_TIMEZONE,
) -> DeviceStatus:
    """
    Resolve the underlying license status of a device.

    Grace tokens do not change the underlying status: an EXPIRED device
    with an active token is still EXPIRED (see ``in_grace_period``).

    Args:
        expiry_date: License expiry date
        grace_token_expiry: Grace token expiry, if any (not consulted)
        now: Current instant
        suspended: External SUSPENDED override
        expiring_soon_days: Length of the warning window
        tz_name: Reference timezone for "today"

    Returns:
        DeviceStatus
    """
    if suspended:
        return DeviceStatus.SUSPENDED
    today = reference_date(now, tz_name)
    if today >= expiry_date:
        return DeviceStatus.EXPIRED
    if today >= expiry_date - timedelta(days=expiring_soon_days):
        return DeviceStatus.EXPIRING_SOON
    return DeviceStatus.ACTIVE


def in_grace_period(
    grace_token_expiry: Optional[date],
    now: datetime,
    tz_name: str = DEFAULT_TIMEZONE,
) -> bool:
    """True while a grace token is outstanding."""
    if grace_token_expiry is None:
        return False
    return grace_token_expiry > reference_date(now, tz_name)


@dataclass(frozen=True)
class StatusResolver:
    """Resolver bound to a configured window and timezone."""

    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS
    tz_name: str = DEFAULT_TIMEZONE

    def today(self, now: datetime) -> date:
        return reference_date(now, self.tz_name)

    def status_of(self, device, now: datetime) -> DeviceStatus:
        return resolve_status(
            device.expiry_date,
            device.grace_token_expiry,
            now,
            suspended=device.suspended,
            expiring_soon_days=self.expiring_soon_days,
            tz_name=self.tz_name,
        )

    def in_grace(self, device, now: datetime) -> bool:
        return in_grace_period(device.grace_token_expiry, now, self.tz_name)
