"""
Device registry port (interface).

The registry is the sole owner of device records. Callers re-read
device state on every operation rather than caching it.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from devices.domain.device import Device


class DeviceRegistry(ABC):
    """
    Abstract repository for Device entities.
    """

    @abstractmethod
    async def save(self, device: Device) -> Device:
        """
        Save a device entity.

        Updates are compare-and-set on ``version``: an existing device is
        written only if its stored version is ``device.version - 1``.
        Expiry extensions happen inside the bulk renewal ledger's
        transaction, not through this port.

        Args:
            device: Device entity to save

        Returns:
            Saved device entity

        Raises:
            ConflictError: If the device changed since it was read
            ValidationError: If the serial number is already registered
        """
        pass

    @abstractmethod
    async def find_by_id(self, device_id: uuid.UUID) -> Optional[Device]:
        """
        Find a device by ID.

        Args:
            device_id: Device UUID

        Returns:
            Device entity or None if not found
        """
        pass

    @abstractmethod
    async def find_many(self, device_ids: Iterable[uuid.UUID]) -> List[Device]:
        """
        Find every device whose ID is in ``device_ids``.

        Missing IDs are silently skipped; callers compare lengths.
        """
        pass

    @abstractmethod
    async def find_by_serial_number(self, serial_number: str) -> Optional[Device]:
        pass

    @abstractmethod
    async def list_by_organizations(self, organization_ids: Iterable[uuid.UUID]) -> List[Device]:
        """
        List devices owned by any of the given organizations.

        Args:
            organization_ids: Owning organization UUIDs

        Returns:
            Devices ordered by expiry date, then name
        """
        pass

    @abstractmethod
    async def delete(self, device_id: uuid.UUID) -> bool:
        """
        Delete a device.

        Returns:
            True if a row was removed
        """
        pass
