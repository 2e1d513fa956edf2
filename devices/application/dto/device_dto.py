"""
Device DTOs for API responses.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


@dataclass
class DeviceDTO:
    """DTO for a device with its resolved status."""

    id: uuid.UUID
    organization_id: uuid.UUID
    organization_name: str
    serial_number: str
    name: str
    location: str
    latitude: Optional[float]
    longitude: Optional[float]
    expiry_date: date
    grace_token_expiry: Optional[date]
    status: str
    in_grace_period: bool
    renewal_action: Optional[str]
    available_actions: List[str] = field(default_factory=list)


@dataclass
class FleetStatsDTO:
    """DTO for aggregate fleet statistics."""

    total: int = 0
    active: int = 0
    expiring_soon: int = 0
    expired: int = 0
    suspended: int = 0
    in_grace: int = 0
    at_risk: int = 0


@dataclass
class ClientOverviewDTO:
    """DTO for one managed client on the dashboard."""

    id: uuid.UUID
    name: str
    type: str
    total_devices: int
    at_risk: int


@dataclass
class RenewalPathDTO:
    """DTO describing the policy decision for renewing one device."""

    device_id: uuid.UUID
    status: str
    action: Optional[str]
    allowed: bool
    next_step: Optional[str] = None
    addressee_id: Optional[uuid.UUID] = None
    error_code: Optional[str] = None
    reason: Optional[str] = None
