"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects.

    Value objects are immutable and compared by value.
    """

    def __eq__(self, other):
        """Compare value objects by their attributes."""
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    def __hash__(self):
        """Make value objects hashable."""
        return hash(tuple(sorted(self.__dict__.items())))


class OrganizationType(Enum):
    """Role an organization plays in the hierarchy."""

    PARENT = "parent"
    CHILD = "child"
    RESELLER = "reseller"

    def __str__(self) -> str:
        return self.value


class BillingMode(Enum):
    """How a parent organization pays for renewals."""

    DIRECT = "direct"
    RESELLER_ONLY = "reseller_only"

    def __str__(self) -> str:
        return self.value


class DeviceStatus(Enum):
    """Derived license status of a device."""

    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    SUSPENDED = "suspended"

    def __str__(self) -> str:
        return self.value


class RequestType(Enum):
    """Kind of renewal request."""

    RENEWAL = "renewal"
    QUOTE = "quote"

    def __str__(self) -> str:
        return self.value


class RequestStatus(Enum):
    """Renewal request lifecycle state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    QUOTED = "quoted"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Location(ValueObject):
    """Installation location of a device: a free-text label plus optional coordinates."""

    label: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def __post_init__(self):
        """Validate location."""
        if not self.label or not self.label.strip():
            raise ValueError("Location label cannot be empty")
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together")
        if self.latitude is not None and not -90 <= self.latitude <= 90:
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if self.longitude is not None and not -180 <= self.longitude <= 180:
            raise ValueError(f"Invalid longitude: {self.longitude}")

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None

    def __str__(self) -> str:
        return self.label
