"""
Fleet scope: which organizations' devices an actor can see.
"""

from typing import List

from organizations.domain.organization import (
    ChildOrganization,
    Organization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.ports.organization_repository import OrganizationRepository


async def visible_organizations(
    actor: Organization, repository: OrganizationRepository
) -> List[Organization]:
    """
    Organizations whose fleets ``actor`` may read.

    A parent sees itself and its children, a child sees itself, and a
    reseller sees the parents it manages and their children.
    """
    if isinstance(actor, ChildOrganization):
        return [actor]
    if isinstance(actor, ParentOrganization):
        return [actor] + await repository.find_children(actor.id)
    if isinstance(actor, ResellerOrganization):
        visible: List[Organization] = []
        for parent in await repository.find_managed_by_reseller(actor.id):
            visible.append(parent)
            visible.extend(await repository.find_children(parent.id))
        return visible
    return []


async def managed_clients(
    actor: Organization, repository: OrganizationRepository
) -> List[Organization]:
    """Direct clients of ``actor``: a parent's children or a reseller's parents."""
    if isinstance(actor, ParentOrganization):
        return await repository.find_children(actor.id)
    if isinstance(actor, ResellerOrganization):
        return await repository.find_managed_by_reseller(actor.id)
    return []
