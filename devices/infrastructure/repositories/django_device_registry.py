"""
Django implementation of DeviceRegistry port.

This adapter converts between domain entities and Django ORM models.
"""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.domain.exceptions import ConflictError, DeviceNotFoundError, ValidationError
from core.domain.value_objects import Location
from devices.domain.device import Device
from devices.infrastructure.models import Device as DeviceModel
from devices.ports.device_registry import DeviceRegistry

logger = logging.getLogger(__name__)


def device_to_domain(model: DeviceModel) -> Device:
    """
    Convert Django model to domain entity.

    Args:
        model: Django Device model

    Returns:
        Device domain entity
    """
    return Device(
        id=model.id,
        org_id=model.organization_id,
        serial_number=model.serial_number,
        name=model.name,
        location=Location(
            label=model.location_label,
            latitude=model.latitude,
            longitude=model.longitude,
        ),
        expiry_date=model.expiry_date,
        grace_token_expiry=model.grace_token_expiry,
        suspended=model.suspended,
        version=model.version,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def extend_expiry_locked(
    device_ids: Iterable[uuid.UUID],
    years: int,
    allowed_organization_ids: Iterable[uuid.UUID],
) -> Dict[uuid.UUID, Dict[str, date]]:
    """
    Extend expiry for a device set. Must run inside ``transaction.atomic``.

    Rows are locked in ID order so overlapping batches serialize
    instead of deadlocking.

    Raises:
        DeviceNotFoundError: If any device is missing or outside the allowed organizations
    """
    wanted = sorted(set(device_ids), key=str)
    allowed = set(allowed_organization_ids)
    # pylint: disable=no-member
    rows = list(
        DeviceModel.objects.select_for_update().filter(id__in=wanted).order_by("id")
    )
    if len(rows) != len(wanted) or any(row.organization_id not in allowed for row in rows):
        raise DeviceNotFoundError("One or more devices were not found in your fleet")

    changes = {}
    for row in rows:
        renewed = device_to_domain(row).extended_by(years)
        changes[row.id] = {"previous": row.expiry_date, "new": renewed.expiry_date}
        row.expiry_date = renewed.expiry_date
        row.grace_token_expiry = renewed.grace_token_expiry
        row.version = renewed.version
        row.save(update_fields=["expiry_date", "grace_token_expiry", "version", "updated_at"])
    logger.info("Extended expiry of %d device(s) by %d year(s)", len(rows), years)
    return changes


class DjangoDeviceRegistry(DeviceRegistry):
    """
    Django ORM implementation of DeviceRegistry.

    Writes to an existing device are conditional on ``version`` so a
    stale read never overwrites a concurrent expiry extension.
    """

    def _to_domain(self, model: DeviceModel) -> Device:
        return device_to_domain(model)

    @staticmethod
    def _columns(device: Device) -> Dict[str, object]:
        """Column values for a device, excluding id, version and timestamps."""
        return {
            "organization_id": device.org_id,
            "serial_number": device.serial_number,
            "name": device.name,
            "location_label": device.location.label,
            "latitude": device.location.latitude,
            "longitude": device.location.longitude,
            "expiry_date": device.expiry_date,
            "grace_token_expiry": device.grace_token_expiry,
            "suspended": device.suspended,
        }

    def _insert(self, device: Device) -> None:
        # pylint: disable=no-member
        try:
            with transaction.atomic():
                DeviceModel.objects.create(id=device.id, version=device.version, **self._columns(device))
        except IntegrityError as e:
            if DeviceModel.objects.filter(serial_number=device.serial_number).exists():
                raise ValidationError(
                    f"A device with serial number {device.serial_number} already exists",
                    code="DUPLICATE_SERIAL_NUMBER",
                ) from e
            raise

    @sync_to_async
    def save(self, device: Device) -> Device:
        """
        Save a device entity.

        A new device is inserted. An existing device is only updated if
        its stored version is the one ``device`` was derived from
        (``device.version - 1``).

        Args:
            device: Device entity to save

        Returns:
            Saved device entity

        Raises:
            ConflictError: If the device changed since it was read
            ValidationError: If the serial number is already registered
        """
        # pylint: disable=no-member
        updated = DeviceModel.objects.filter(id=device.id, version=device.version - 1).update(
            version=device.version,
            updated_at=timezone.now(),
            **self._columns(device),
        )
        if not updated:
            if DeviceModel.objects.filter(id=device.id).exists():
                logger.warning(
                    "Stale device write rejected",
                    extra={"device_id": str(device.id), "version": device.version},
                )
                raise ConflictError(
                    f"Device {device.id} was modified concurrently; reload and retry",
                    code="DEVICE_MODIFIED",
                )
            self._insert(device)
        return self._to_domain(DeviceModel.objects.get(id=device.id))

    @sync_to_async
    def find_by_id(self, device_id: uuid.UUID) -> Optional[Device]:
        """
        Find a device by ID.

        Args:
            device_id: Device UUID

        Returns:
            Device entity or None if not found
        """
        try:
            # pylint: disable=no-member
            return self._to_domain(DeviceModel.objects.get(id=device_id))
        except DeviceModel.DoesNotExist:  # pylint: disable=no-member
            return None

    @sync_to_async
    def find_many(self, device_ids: Iterable[uuid.UUID]) -> List[Device]:
        # pylint: disable=no-member
        qs = DeviceModel.objects.filter(id__in=list(device_ids))
        return [self._to_domain(model) for model in qs]

    @sync_to_async
    def find_by_serial_number(self, serial_number: str) -> Optional[Device]:
        # pylint: disable=no-member
        model = DeviceModel.objects.filter(serial_number=serial_number).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def list_by_organizations(self, organization_ids: Iterable[uuid.UUID]) -> List[Device]:
        # pylint: disable=no-member
        qs = DeviceModel.objects.filter(organization_id__in=list(organization_ids)).order_by(
            "expiry_date", "name"
        )
        return [self._to_domain(model) for model in qs]

    @sync_to_async
    def delete(self, device_id: uuid.UUID) -> bool:
        # pylint: disable=no-member
        deleted, _ = DeviceModel.objects.filter(id=device_id).delete()
        return deleted > 0
