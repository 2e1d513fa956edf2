"""
Renewal request and quote queries.
"""
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

OWNER_VIEW = "owner"
INCOMING_VIEW = "incoming"


@dataclass
class ListRequestsQuery:
    """
    List requests for an organization.

    ``view`` is "owner" (requests it filed or that cover its devices) or
    "incoming" (requests it must resolve).
    """

    actor_id: uuid.UUID
    view: str = OWNER_VIEW


@dataclass
class GetQuoteArtifactQuery:
    """Fetch the stored quote for a request."""

    actor_id: uuid.UUID
    request_id: uuid.UUID


@dataclass
class QuotePreviewQuery:
    """Price devices for a client without storing anything."""

    actor_id: uuid.UUID
    client_id: uuid.UUID
    device_ids: List[uuid.UUID] = field(default_factory=list)
    margin_percent: Optional[Decimal] = None
