"""
Loads policy targets from the repositories.

Every decision re-reads current device state; nothing here is cached
between calls.
"""

import uuid
from datetime import datetime
from typing import Dict, Iterable, List

from authorization.domain.policy import (
    DeviceSetTarget,
    DeviceTarget,
    OrganizationTarget,
    RequestTarget,
)
from core.domain.exceptions import DeviceNotFoundError, OrganizationNotFoundError
from devices.domain.device import Device
from devices.domain.status import StatusResolver
from devices.ports.device_registry import DeviceRegistry
from organizations.domain.organization import ChildOrganization, Organization
from organizations.ports.organization_repository import OrganizationRepository
from renewals.domain.renewal_request import RenewalRequest


class TargetLoader:
    """Builds DeviceTarget / RequestTarget / OrganizationTarget values."""

    def __init__(
        self,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
        resolver: StatusResolver,
    ):
        self.organization_repository = organization_repository
        self.device_registry = device_registry
        self.resolver = resolver

    async def organization(self, organization_id: uuid.UUID) -> Organization:
        organization = await self.organization_repository.find_by_id(organization_id)
        if organization is None:
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")
        return organization

    async def _with_parents(self, organizations: Iterable[Organization]) -> Dict[uuid.UUID, Organization]:
        by_id = {org.id: org for org in organizations}
        missing = {
            org.parent_id
            for org in by_id.values()
            if isinstance(org, ChildOrganization) and org.parent_id not in by_id
        }
        if missing:
            for parent in await self.organization_repository.find_many(missing):
                by_id[parent.id] = parent
        return by_id

    async def organization_target(self, organization_id: uuid.UUID) -> OrganizationTarget:
        organization = await self.organization(organization_id)
        parent = None
        if isinstance(organization, ChildOrganization):
            parent = await self.organization_repository.find_by_id(organization.parent_id)
        return OrganizationTarget(organization=organization, parent=parent)

    def device_target_for(
        self, device: Device, organizations: Dict[uuid.UUID, Organization], now: datetime
    ) -> DeviceTarget:
        owner = organizations[device.org_id]
        owner_parent = (
            organizations.get(owner.parent_id) if isinstance(owner, ChildOrganization) else None
        )
        return DeviceTarget(
            device=device,
            owner=owner,
            status=self.resolver.status_of(device, now),
            in_grace=self.resolver.in_grace(device, now),
            owner_parent=owner_parent,
        )

    async def device_targets_for(self, devices: List[Device], now: datetime) -> List[DeviceTarget]:
        owners = await self.organization_repository.find_many({d.org_id for d in devices})
        organizations = await self._with_parents(owners)
        return [self.device_target_for(device, organizations, now) for device in devices]

    async def device_target(self, device_id: uuid.UUID, now: datetime) -> DeviceTarget:
        device = await self.device_registry.find_by_id(device_id)
        if device is None:
            raise DeviceNotFoundError(f"Device {device_id} not found")
        return (await self.device_targets_for([device], now))[0]

    async def device_set_target(
        self, device_ids: Iterable[uuid.UUID], now: datetime
    ) -> DeviceSetTarget:
        """
        Load several devices, preserving the order given.

        Raises:
            DeviceNotFoundError: If any ID does not exist
        """
        ordered = list(dict.fromkeys(device_ids))
        devices = {d.id: d for d in await self.device_registry.find_many(ordered)}
        missing = [device_id for device_id in ordered if device_id not in devices]
        if missing:
            raise DeviceNotFoundError(f"Device {missing[0]} not found")
        targets = await self.device_targets_for([devices[i] for i in ordered], now)
        return DeviceSetTarget(devices=tuple(targets))

    async def request_target(self, request: RenewalRequest) -> RequestTarget:
        requester = await self.organization(request.requester_org_id)
        return RequestTarget(request=request, requester=requester)
