"""
Device lifecycle handlers.

Handlers for grace token issuance and device removal.
"""
import logging

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import Action, require
from core.conf import renewal_setting
from core.domain.clock import Clock, utc_now
from core.domain.exceptions import DeviceNotFoundError
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import devices_removed_total, grace_tokens_issued_total
from devices.application.commands.device_lifecycle import (
    IssueGraceTokenCommand,
    RemoveDeviceCommand,
)
from devices.application.resolver import configured_resolver
from devices.domain.device import Device
from devices.domain.events import DeviceRemoved, GraceTokenIssued
from devices.ports.device_registry import DeviceRegistry
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


class IssueGraceTokenHandler:
    """Handler for IssueGraceTokenCommand."""

    def __init__(
        self,
        device_registry: DeviceRegistry,
        organization_repository: OrganizationRepository,
        event_bus=None,
        clock: Clock = utc_now,
    ):
        """Initialize handler with repositories."""
        self.device_registry = device_registry
        self.event_bus = event_bus or default_event_bus
        self.clock = clock
        self.resolver = configured_resolver()
        self.targets = TargetLoader(organization_repository, device_registry, self.resolver)

    async def handle(self, command: IssueGraceTokenCommand) -> Device:
        """
        Handle issue grace token command.

        Args:
            command: IssueGraceTokenCommand

        Returns:
            Device carrying the new grace token

        Raises:
            AuthorizationError: If the actor is not a parent organization
            DeviceNotFoundError: If the device is not in the actor's fleet
            ValidationError: If the device is not expired or already in grace
            ConflictError: If the device was renewed or graced since it was read
        """
        now = self.clock()
        actor = await self.targets.organization(command.actor_id)
        target = await self.targets.device_target(command.device_id, now)
        require(actor, Action.ISSUE_GRACE, target)

        updated = target.device.with_grace_token(
            self.resolver.today(now), int(renewal_setting("GRACE_PERIOD_DAYS"))
        )
        saved = await self.device_registry.save(updated)
        grace_tokens_issued_total.inc()
        logger.info(
            "Grace token issued until %s",
            saved.grace_token_expiry,
            extra={"device_id": str(saved.id), "issued_by": str(actor.id)},
        )

        await self.event_bus.publish(
            GraceTokenIssued(
                device_id=saved.id,
                organization_id=saved.org_id,
                issued_by=actor.id,
                grace_token_expiry=saved.grace_token_expiry,
            )
        )
        return saved


class RemoveDeviceHandler:
    """Handler for RemoveDeviceCommand."""

    def __init__(
        self,
        device_registry: DeviceRegistry,
        organization_repository: OrganizationRepository,
        event_bus=None,
        clock: Clock = utc_now,
    ):
        """Initialize handler with repositories."""
        self.device_registry = device_registry
        self.event_bus = event_bus or default_event_bus
        self.clock = clock
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def handle(self, command: RemoveDeviceCommand) -> None:
        """
        Handle remove device command.

        Args:
            command: RemoveDeviceCommand

        Raises:
            AuthorizationError: If the actor is a reseller
            DeviceNotFoundError: If the device is not in the actor's fleet
            ValidationError: If the device is neither expired nor suspended
        """
        now = self.clock()
        actor = await self.targets.organization(command.actor_id)
        target = await self.targets.device_target(command.device_id, now)
        require(actor, Action.REMOVE_DEVICE, target)

        if not await self.device_registry.delete(command.device_id):
            raise DeviceNotFoundError(f"Device {command.device_id} not found")
        devices_removed_total.inc()
        logger.info(
            "Device removed",
            extra={"device_id": str(command.device_id), "removed_by": str(actor.id)},
        )

        await self.event_bus.publish(
            DeviceRemoved(
                device_id=command.device_id,
                organization_id=target.device.org_id,
                removed_by=actor.id,
                status=target.status.value,
            )
        )
