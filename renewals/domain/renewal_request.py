"""
Renewal request domain entity.

A request is created PENDING and resolved exactly once into APPROVED,
REJECTED or QUOTED. The transition methods return new instances; the
repository applies them with a compare-and-set on the PENDING status.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Tuple

from core.domain.exceptions import ConflictError, ValidationError
from core.domain.value_objects import RequestStatus, RequestType


@dataclass(frozen=True)
class RenewalRequest:
    """
    RenewalRequest domain entity.

    ``subject_org_id`` is the organization whose devices are covered. It
    differs from ``requester_org_id`` only when a parent files on behalf
    of one of its children.
    """

    id: uuid.UUID
    requester_org_id: uuid.UUID
    subject_org_id: uuid.UUID
    addressee_org_id: uuid.UUID
    device_ids: Tuple[uuid.UUID, ...]
    type: RequestType
    status: RequestStatus
    notes: str
    response_message: Optional[str]
    quote_artifact_id: Optional[uuid.UUID]
    resolved_by_org_id: Optional[uuid.UUID]
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate renewal request entity."""
        if len(set(self.device_ids)) != len(self.device_ids):
            raise ValueError("Device IDs must be unique within a request")
        if self.addressee_org_id == self.requester_org_id:
            raise ValueError("A request cannot be addressed to its requester")
        if self.status is RequestStatus.QUOTED and self.quote_artifact_id is None:
            raise ValueError("A quoted request must reference its quote artifact")
        if self.status is not RequestStatus.QUOTED and self.quote_artifact_id is not None:
            raise ValueError("Only quoted requests carry a quote artifact")

    @classmethod
    def create(
        cls,
        requester_org_id: uuid.UUID,
        addressee_org_id: uuid.UUID,
        request_type: RequestType,
        device_ids: Tuple[uuid.UUID, ...] = (),
        notes: str = "",
        subject_org_id: Optional[uuid.UUID] = None,
        request_id: Optional[uuid.UUID] = None,
    ) -> "RenewalRequest":
        """
        Create a new PENDING request.

        Args:
            requester_org_id: Organization filing the request
            addressee_org_id: Organization that must resolve it
            request_type: RENEWAL or QUOTE
            device_ids: Devices covered, in the order given
            notes: Free-text notes from the requester
            subject_org_id: Owner of the devices (defaults to the requester)
            request_id: Optional UUID (generated if not provided)

        Returns:
            RenewalRequest entity instance
        """
        now = datetime.now(timezone.utc)
        return cls(
            id=request_id or uuid.uuid4(),
            requester_org_id=requester_org_id,
            subject_org_id=subject_org_id or requester_org_id,
            addressee_org_id=addressee_org_id,
            device_ids=tuple(device_ids),
            type=request_type,
            status=RequestStatus.PENDING,
            notes=(notes or "").strip(),
            response_message=None,
            quote_artifact_id=None,
            resolved_by_org_id=None,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.PENDING

    def _resolve(
        self,
        status: RequestStatus,
        actor_id: uuid.UUID,
        message: Optional[str] = None,
        quote_artifact_id: Optional[uuid.UUID] = None,
    ) -> "RenewalRequest":
        if not self.is_pending:
            raise ConflictError(
                f"Request {self.id} is already {self.status.value}",
                code="REQUEST_ALREADY_RESOLVED",
            )
        now = datetime.now(timezone.utc)
        return replace(
            self,
            status=status,
            response_message=message,
            quote_artifact_id=quote_artifact_id,
            resolved_by_org_id=actor_id,
            resolved_at=now,
            updated_at=now,
        )

    def approve(self, actor_id: uuid.UUID, message: Optional[str] = None) -> "RenewalRequest":
        """PENDING -> APPROVED. Only renewal requests can be approved."""
        if self.type is not RequestType.RENEWAL:
            raise ValidationError(
                "Only renewal requests can be approved; quote requests are answered with a quote",
                code="REQUEST_NOT_APPROVABLE",
            )
        return self._resolve(RequestStatus.APPROVED, actor_id, message)

    def reject(self, actor_id: uuid.UUID, message: Optional[str] = None) -> "RenewalRequest":
        """PENDING -> REJECTED."""
        return self._resolve(RequestStatus.REJECTED, actor_id, message)

    def respond_with_quote(
        self,
        actor_id: uuid.UUID,
        quote_artifact_id: uuid.UUID,
        message: Optional[str] = None,
    ) -> "RenewalRequest":
        """PENDING -> QUOTED, attaching the stored artifact."""
        if quote_artifact_id is None:
            raise ValidationError("A quote response requires an artifact")
        return self._resolve(RequestStatus.QUOTED, actor_id, message, quote_artifact_id)
