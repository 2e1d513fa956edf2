"""
Fleet query handlers.

Read-side handlers for device lists, dashboard statistics, the client
overview and per-device renewal paths. Every device is decorated with
the actions the policy engine currently allows so all clients render
the same buttons.
"""
import uuid
from typing import Dict, List, Optional, Tuple

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import (
    Action,
    Allowed,
    DeviceTarget,
    available_actions,
    decide,
    renewal_action_for,
    require,
)
from core.domain.clock import Clock, utc_now
from core.domain.exceptions import NotFoundError
from core.domain.value_objects import DeviceStatus
from devices.application.dto.device_dto import (
    ClientOverviewDTO,
    DeviceDTO,
    FleetStatsDTO,
    RenewalPathDTO,
)
from devices.application.queries.fleet_queries import (
    ClientOverviewQuery,
    FleetStatsQuery,
    ListDevicesQuery,
    RenewalPathQuery,
)
from devices.application.resolver import configured_resolver
from devices.ports.device_registry import DeviceRegistry
from organizations.application.scope import managed_clients, visible_organizations
from organizations.domain.organization import Organization, ParentOrganization
from organizations.ports.organization_repository import OrganizationRepository


def tally(targets: List[DeviceTarget]) -> FleetStatsDTO:
    """Count devices per resolved status."""
    stats = FleetStatsDTO(total=len(targets))
    for target in targets:
        if target.status is DeviceStatus.ACTIVE:
            stats.active += 1
        elif target.status is DeviceStatus.EXPIRING_SOON:
            stats.expiring_soon += 1
        elif target.status is DeviceStatus.EXPIRED:
            stats.expired += 1
        elif target.status is DeviceStatus.SUSPENDED:
            stats.suspended += 1
        if target.in_grace:
            stats.in_grace += 1
    stats.at_risk = stats.expiring_soon + stats.expired
    return stats


class _FleetReader:
    """Shared scope resolution for the fleet read handlers."""

    def __init__(
        self,
        device_registry: DeviceRegistry,
        organization_repository: OrganizationRepository,
        clock: Clock = utc_now,
    ):
        """Initialize handler with repositories."""
        self.device_registry = device_registry
        self.organization_repository = organization_repository
        self.clock = clock
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def _scope(
        self, actor: Organization, client_id: Optional[uuid.UUID]
    ) -> Tuple[List[Organization], Dict[uuid.UUID, Organization]]:
        """
        Resolve which fleets to read.

        Returns:
            (owners whose devices are listed, every organization needed
            to build device targets keyed by ID)
        """
        if client_id is None:
            owners = await visible_organizations(actor, self.organization_repository)
            return owners, {org.id: org for org in owners}

        target = await self.targets.organization_target(client_id)
        require(actor, Action.VIEW_FLEET, target)
        owners = [target.organization]
        if isinstance(target.organization, ParentOrganization):
            owners.extend(await self.organization_repository.find_children(client_id))
        known = {org.id: org for org in owners}
        if target.parent is not None:
            known[target.parent.id] = target.parent
        return owners, known

    async def _device_targets(
        self, actor: Organization, client_id: Optional[uuid.UUID]
    ) -> List[DeviceTarget]:
        now = self.clock()
        owners, known = await self._scope(actor, client_id)
        devices = await self.device_registry.list_by_organizations([org.id for org in owners])
        return [self.targets.device_target_for(device, known, now) for device in devices]


class ListDevicesHandler(_FleetReader):
    """Handler for ListDevicesQuery."""

    async def handle(self, query: ListDevicesQuery) -> List[DeviceDTO]:
        """
        Handle list devices query.

        Args:
            query: ListDevicesQuery

        Returns:
            Devices ordered by expiry date, each with its resolved status
            and the actions currently available to the actor

        Raises:
            OrganizationNotFoundError: If client_id is outside the actor's scope
        """
        actor = await self.targets.organization(query.actor_id)
        renewal_action = renewal_action_for(actor)
        result = []
        for target in await self._device_targets(actor, query.client_id):
            device = target.device
            result.append(
                DeviceDTO(
                    id=device.id,
                    organization_id=device.org_id,
                    organization_name=target.owner.name,
                    serial_number=device.serial_number,
                    name=device.name,
                    location=device.location.label,
                    latitude=device.location.latitude,
                    longitude=device.location.longitude,
                    expiry_date=device.expiry_date,
                    grace_token_expiry=device.grace_token_expiry,
                    status=target.status.value,
                    in_grace_period=target.in_grace,
                    renewal_action=renewal_action.value if renewal_action else None,
                    available_actions=[a.value for a in available_actions(actor, target)],
                )
            )
        return result


class FleetStatsHandler(_FleetReader):
    """Handler for FleetStatsQuery."""

    async def handle(self, query: FleetStatsQuery) -> FleetStatsDTO:
        actor = await self.targets.organization(query.actor_id)
        return tally(await self._device_targets(actor, query.client_id))


class ClientOverviewHandler(_FleetReader):
    """Handler for ClientOverviewQuery."""

    async def handle(self, query: ClientOverviewQuery) -> List[ClientOverviewDTO]:
        """
        Handle client overview query.

        A parent's clients are its children; a reseller's clients are
        the parents it manages (their children's devices count towards
        the parent). A child has no clients.
        """
        actor = await self.targets.organization(query.actor_id)
        overview = []
        for client in await managed_clients(actor, self.organization_repository):
            stats = tally(await self._device_targets(actor, client.id))
            overview.append(
                ClientOverviewDTO(
                    id=client.id,
                    name=client.name,
                    type=client.type.value,
                    total_devices=stats.total,
                    at_risk=stats.at_risk,
                )
            )
        return overview


class RenewalPathHandler(_FleetReader):
    """Handler for RenewalPathQuery."""

    async def handle(self, query: RenewalPathQuery) -> RenewalPathDTO:
        """
        Report how the actor would renew a device.

        Raises:
            DeviceNotFoundError: If the device does not exist or is outside the actor's view
        """
        actor = await self.targets.organization(query.actor_id)
        target = await self.targets.device_target(query.device_id, self.clock())
        require(actor, Action.VIEW_FLEET, target)
        action = renewal_action_for(actor) or Action.REQUEST_RENEWAL
        decision = decide(actor, action, target)
        if isinstance(decision, Allowed):
            return RenewalPathDTO(
                device_id=target.device.id,
                status=target.status.value,
                action=action.value,
                allowed=True,
                next_step=decision.next_step.value,
                addressee_id=decision.addressee_id,
            )
        if isinstance(decision.error, NotFoundError):
            raise decision.error
        own_action = renewal_action_for(actor)
        return RenewalPathDTO(
            device_id=target.device.id,
            status=target.status.value,
            action=own_action.value if own_action else None,
            allowed=False,
            error_code=decision.error.code,
            reason=decision.reason,
        )
