"""
Device domain events.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from core.domain.events import DomainEvent


class DeviceRegistered(DomainEvent):
    """Event raised when a device is added to a fleet."""

    def __init__(
        self,
        device_id: uuid.UUID,
        organization_id: uuid.UUID,
        serial_number: str,
        expiry_date: date,
        occurred_at: Optional[datetime] = None,
    ):
        self._init_base(device_id, occurred_at)
        self.device_id = device_id
        self.organization_id = organization_id
        self.serial_number = serial_number
        self.expiry_date = expiry_date


class DeviceRemoved(DomainEvent):
    """Event raised when an expired or suspended device is removed."""

    def __init__(
        self,
        device_id: uuid.UUID,
        organization_id: uuid.UUID,
        removed_by: uuid.UUID,
        status: str,
        occurred_at: Optional[datetime] = None,
    ):
        self._init_base(device_id, occurred_at)
        self.device_id = device_id
        self.organization_id = organization_id
        self.removed_by = removed_by
        self.status = status


class GraceTokenIssued(DomainEvent):
    """Event raised when a parent grants an expired device a grace period."""

    def __init__(
        self,
        device_id: uuid.UUID,
        organization_id: uuid.UUID,
        issued_by: uuid.UUID,
        grace_token_expiry: date,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize GraceTokenIssued event.

        Args:
            device_id: Device UUID
            organization_id: Owning organization UUID
            issued_by: Parent organization that issued the token
            grace_token_expiry: Last day of the grace period (exclusive)
            occurred_at: When the event occurred
        """
        self._init_base(device_id, occurred_at)
        self.device_id = device_id
        self.organization_id = organization_id
        self.issued_by = issued_by
        self.grace_token_expiry = grace_token_expiry
