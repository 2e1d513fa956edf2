"""
Organization repository port (interface).

This defines the contract for organization persistence operations.
Implementations are in the infrastructure layer.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from organizations.domain.organization import Organization


class OrganizationRepository(ABC):
    """
    Abstract repository for Organization entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def save(self, organization: Organization) -> Organization:
        """
        Save an organization entity.

        Args:
            organization: Organization entity to save

        Returns:
            Saved organization entity
        """
        pass

    @abstractmethod
    async def find_by_id(self, organization_id: uuid.UUID) -> Optional[Organization]:
        """
        Find an organization by ID.

        Args:
            organization_id: Organization UUID

        Returns:
            Organization entity or None if not found
        """
        pass

    @abstractmethod
    async def find_many(self, organization_ids: Iterable[uuid.UUID]) -> List[Organization]:
        """Find every organization whose ID is in ``organization_ids``."""
        pass

    @abstractmethod
    async def find_children(self, parent_id: uuid.UUID) -> List[Organization]:
        """
        List the child organizations of a parent.

        Args:
            parent_id: Parent organization UUID

        Returns:
            List of ChildOrganization entities, ordered by name
        """
        pass

    @abstractmethod
    async def find_managed_by_reseller(self, reseller_id: uuid.UUID) -> List[Organization]:
        """
        List the parent organizations a reseller manages.

        Args:
            reseller_id: Reseller organization UUID

        Returns:
            List of ParentOrganization entities, ordered by name
        """
        pass
