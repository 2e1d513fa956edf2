"""
Renewal request repository port (interface).

This defines the contract for request persistence. Status changes go
through ``transition``, a compare-and-set on the PENDING status.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from renewals.domain.quote import QuoteArtifact
from renewals.domain.renewal_request import RenewalRequest


class RenewalRequestRepository(ABC):
    """
    Abstract repository for RenewalRequest entities.
    """

    @abstractmethod
    async def add(self, request: RenewalRequest) -> RenewalRequest:
        """
        Persist a newly created PENDING request.

        Args:
            request: RenewalRequest entity to insert

        Returns:
            Saved request entity
        """
        pass

    @abstractmethod
    async def find_by_id(self, request_id: uuid.UUID) -> Optional[RenewalRequest]:
        """
        Find a request by ID.

        Args:
            request_id: Request UUID

        Returns:
            RenewalRequest entity or None if not found
        """
        pass

    @abstractmethod
    async def transition(
        self,
        resolved: RenewalRequest,
        artifact: Optional[QuoteArtifact] = None,
    ) -> RenewalRequest:
        """
        Atomically move a PENDING request to ``resolved.status``.

        The write only succeeds if the stored status is still PENDING.
        When ``artifact`` is given it is inserted in the same transaction.

        Args:
            resolved: The request as it should look after the transition
            artifact: Quote artifact to store with a QUOTED transition

        Returns:
            The stored request

        Raises:
            RenewalRequestNotFoundError: If the request does not exist
            ConflictError: If the request is no longer PENDING
        """
        pass

    @abstractmethod
    async def list_for_organizations(
        self, organization_ids: Iterable[uuid.UUID]
    ) -> List[RenewalRequest]:
        """Requests filed by, or covering the fleet of, any of the organizations. Newest first."""
        pass

    @abstractmethod
    async def list_addressed_to(self, organization_id: uuid.UUID) -> List[RenewalRequest]:
        """Requests an organization must resolve. Newest first."""
        pass

    @abstractmethod
    async def find_artifact(self, request_id: uuid.UUID) -> Optional[QuoteArtifact]:
        """
        Load the stored quote artifact for a request.

        Args:
            request_id: Request UUID

        Returns:
            QuoteArtifact or None if the request has not been quoted
        """
        pass
