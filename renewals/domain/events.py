"""
Renewal domain events.

Domain events represent something that happened to a renewal request
or a bulk renewal.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from core.domain.events import DomainEvent


class RenewalRequestCreated(DomainEvent):
    """Event raised when a renewal or quote request is filed."""

    def __init__(
        self,
        request_id: uuid.UUID,
        organization_id: uuid.UUID,
        addressee_id: uuid.UUID,
        request_type: str,
        device_ids: List[uuid.UUID],
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize RenewalRequestCreated event.

        Args:
            request_id: Request UUID
            organization_id: Requesting organization UUID
            addressee_id: Organization that must resolve the request
            request_type: "renewal" or "quote"
            device_ids: Devices covered by the request
            occurred_at: When the event occurred
        """
        self._init_base(request_id, occurred_at)
        self.request_id = request_id
        self.organization_id = organization_id
        self.addressee_id = addressee_id
        self.request_type = request_type
        self.device_ids = list(device_ids)


class _RequestResolved(DomainEvent):
    def __init__(
        self,
        request_id: uuid.UUID,
        organization_id: uuid.UUID,
        request_type: str,
        message: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ):
        self._init_base(request_id, occurred_at)
        self.request_id = request_id
        self.organization_id = organization_id
        self.request_type = request_type
        self.message = message


class RenewalRequestApproved(_RequestResolved):
    """Event raised when a parent approves a child's renewal request."""


class RenewalRequestRejected(_RequestResolved):
    """Event raised when a request is rejected."""


class RenewalRequestQuoted(DomainEvent):
    """Event raised when a request is answered with a quote."""

    def __init__(
        self,
        request_id: uuid.UUID,
        organization_id: uuid.UUID,
        request_type: str,
        quote_artifact_id: uuid.UUID,
        grand_total: Optional[Decimal] = None,
        currency: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ):
        self._init_base(request_id, occurred_at)
        self.request_id = request_id
        self.organization_id = organization_id
        self.request_type = request_type
        self.quote_artifact_id = quote_artifact_id
        self.grand_total = grand_total
        self.currency = currency


class DevicesRenewed(DomainEvent):
    """Event raised when a bulk renewal extends device expiry dates."""

    def __init__(
        self,
        receipt_id: uuid.UUID,
        organization_id: uuid.UUID,
        payment_token: str,
        years: int,
        amount: Decimal,
        currency: str,
        new_expiries: Dict[uuid.UUID, object],
        occurred_at: Optional[datetime] = None,
    ):
        self._init_base(receipt_id, occurred_at)
        self.organization_id = organization_id
        self.payment_token = payment_token
        self.years = years
        self.amount = amount
        self.currency = currency
        self.new_expiries = dict(new_expiries)
