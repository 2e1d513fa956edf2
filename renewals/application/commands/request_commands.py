"""
Renewal request commands.

Commands to file a request and to resolve it.
"""
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from core.domain.value_objects import RequestType


@dataclass
class CreateRenewalRequestCommand:
    """Command to file a renewal or quote request."""

    actor_id: uuid.UUID
    request_type: RequestType
    device_ids: List[uuid.UUID] = field(default_factory=list)
    notes: str = ""
    on_behalf_of: Optional[uuid.UUID] = None


@dataclass
class ApproveRequestCommand:
    """Command to approve a child's pending renewal request."""

    actor_id: uuid.UUID
    request_id: uuid.UUID
    message: Optional[str] = None


@dataclass
class RejectRequestCommand:
    """Command to reject a pending request."""

    actor_id: uuid.UUID
    request_id: uuid.UUID
    message: Optional[str] = None


@dataclass
class RespondWithQuoteCommand:
    """Command to answer a pending request with a caller-supplied quote document."""

    actor_id: uuid.UUID
    request_id: uuid.UUID
    content: bytes
    content_type: str
    filename: str
    message: Optional[str] = None
