"""
RegisterDeviceCommand.

Command to add a device to an organization's fleet.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class RegisterDeviceCommand:
    """Command to register a device for ``organization_id``."""

    actor_id: uuid.UUID
    organization_id: uuid.UUID
    serial_number: str
    name: str
    location_label: str
    expiry_date: date
    latitude: Optional[float] = None
    longitude: Optional[float] = None
