"""
Register device handler.

Adds a device to a fleet, geocoding its location when the caller did
not supply coordinates.
"""
import logging

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import Action, require
from core.domain.exceptions import ValidationError
from core.domain.value_objects import Location
from core.infrastructure.events import event_bus as default_event_bus
from core.infrastructure.retry import call_with_retry
from core.metrics import devices_registered_total
from devices.application.commands.register_device import RegisterDeviceCommand
from devices.application.resolver import configured_resolver
from devices.domain.device import Device
from devices.domain.events import DeviceRegistered
from devices.ports.device_registry import DeviceRegistry
from devices.ports.geocoder import Geocoder
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


class RegisterDeviceHandler:
    """Handler for RegisterDeviceCommand."""

    def __init__(
        self,
        device_registry: DeviceRegistry,
        organization_repository: OrganizationRepository,
        geocoder: Geocoder,
        event_bus=None,
    ):
        """Initialize handler with repositories and the geocoder."""
        self.device_registry = device_registry
        self.organization_repository = organization_repository
        self.geocoder = geocoder
        self.event_bus = event_bus or default_event_bus
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def _location_for(self, command: RegisterDeviceCommand) -> Location:
        if command.latitude is not None or command.longitude is not None:
            try:
                return Location(command.location_label, command.latitude, command.longitude)
            except ValueError as e:
                raise ValidationError(str(e)) from e
        if not command.location_label or not command.location_label.strip():
            raise ValidationError("Location is required")
        coordinates = await call_with_retry(
            "geocoder.geocode", lambda: self.geocoder.geocode(command.location_label)
        )
        return Location(command.location_label.strip(), coordinates.latitude, coordinates.longitude)

    async def handle(self, command: RegisterDeviceCommand) -> Device:
        """
        Handle register device command.

        Args:
            command: RegisterDeviceCommand

        Returns:
            Registered Device entity

        Raises:
            AuthorizationError: If the actor cannot register for the organization
            ValidationError: If the serial number is taken or input is invalid
            ExternalServiceError: If geocoding fails
        """
        actor = await self.targets.organization(command.actor_id)
        require(actor, Action.REGISTER_DEVICE, await self.targets.organization_target(command.organization_id))

        if await self.device_registry.find_by_serial_number(command.serial_number.strip()):
            raise ValidationError(
                f"A device with serial number {command.serial_number} already exists",
                code="DUPLICATE_SERIAL_NUMBER",
            )

        location = await self._location_for(command)
        try:
            device = Device.create(
                org_id=command.organization_id,
                serial_number=command.serial_number,
                name=command.name,
                location=location,
                expiry_date=command.expiry_date,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        saved = await self.device_registry.save(device)
        devices_registered_total.inc()
        logger.info(
            "Device registered",
            extra={"device_id": str(saved.id), "organization_id": str(saved.org_id)},
        )

        await self.event_bus.publish(
            DeviceRegistered(
                device_id=saved.id,
                organization_id=saved.org_id,
                serial_number=saved.serial_number,
                expiry_date=saved.expiry_date,
            )
        )
        return saved
