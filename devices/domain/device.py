"""
Device domain entity.

A device is a licensed unit in an organization's fleet. Its license
status is never stored; it is derived from the expiry date by the
status resolver whenever it is needed.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from core.domain.value_objects import Location


def add_years(value: date, years: int) -> date:
    """
    Advance a date by whole calendar years.

    Feb 29 lands on Feb 28 when the target year is not a leap year.
    """
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


@dataclass(frozen=True)
class Device:
    """
    Device domain entity.

    ``version`` increases on every expiry or grace mutation so adapters
    can detect concurrent writers.
    """

    id: uuid.UUID
    org_id: uuid.UUID
    serial_number: str
    name: str
    location: Location
    expiry_date: date
    grace_token_expiry: Optional[date]
    suspended: bool
    version: int
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        """Validate device entity."""
        if not self.org_id:
            raise ValueError("Owning organization is required")
        if not self.serial_number or not self.serial_number.strip():
            raise ValueError("Serial number cannot be empty")
        if len(self.serial_number) > 100:
            raise ValueError("Serial number too long")
        if self.grace_token_expiry is not None and self.grace_token_expiry <= self.expiry_date:
            raise ValueError("Grace token must expire after the license expiry date")

    @classmethod
    def create(
        cls,
        org_id: uuid.UUID,
        serial_number: str,
        name: str,
        location: Location,
        expiry_date: date,
        device_id: Optional[uuid.UUID] = None,
    ) -> "Device":
        """
        Create a new Device entity.

        Args:
            org_id: Owning organization UUID
            serial_number: Hardware serial, unique across the registry
            name: Display name
            location: Installation location
            expiry_date: License expiry date
            device_id: Optional UUID (generated if not provided)

        Returns:
            Device entity instance
        """
        now = datetime.now(timezone.utc)
        return cls(
            id=device_id or uuid.uuid4(),
            org_id=org_id,
            serial_number=serial_number.strip(),
            name=(name or serial_number).strip(),
            location=location,
            expiry_date=expiry_date,
            grace_token_expiry=None,
            suspended=False,
            version=1,
            created_at=now,
            updated_at=now,
        )

    def with_grace_token(self, today: date, grace_days: int) -> "Device":
        """
        Return a copy carrying a grace token valid for ``grace_days`` from ``today``.

        Eligibility (EXPIRED, no active token) is checked by the policy engine.
        """
        if grace_days < 1:
            raise ValueError("Grace period must be at least one day")
        return replace(
            self,
            grace_token_expiry=today + timedelta(days=grace_days),
            version=self.version + 1,
            updated_at=datetime.now(timezone.utc),
        )

    def extended_by(self, years: int) -> "Device":
        """
        Return a copy whose expiry is ``years`` after the current expiry.

        A paid extension supersedes any outstanding grace token.
        """
        if years < 1:
            raise ValueError("Renewal must be at least one year")
        return replace(
            self,
            expiry_date=add_years(self.expiry_date, years),
            grace_token_expiry=None,
            version=self.version + 1,
            updated_at=datetime.now(timezone.utc),
        )
