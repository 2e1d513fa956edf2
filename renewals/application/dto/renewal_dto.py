"""
Renewal DTOs for API responses.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


@dataclass
class RenewalRequestDTO:
    """DTO for a renewal request."""

    id: uuid.UUID
    requester_id: uuid.UUID
    requester_name: str
    subject_id: uuid.UUID
    addressee_id: uuid.UUID
    addressee_name: str
    device_ids: List[uuid.UUID]
    type: str
    status: str
    notes: str
    response_message: Optional[str]
    quote_artifact_id: Optional[uuid.UUID]
    created_at: datetime
    resolved_at: Optional[datetime]


@dataclass
class QuoteLineItemDTO:
    device_id: uuid.UUID
    serial_number: str
    description: str
    base_price: Decimal
    line_total: Decimal


@dataclass
class QuoteDTO:
    """DTO for a priced quote (preview or stored)."""

    margin_percent: Optional[Decimal]
    grand_total: Optional[Decimal]
    currency: Optional[str]
    line_items: List[QuoteLineItemDTO] = field(default_factory=list)


@dataclass
class QuoteArtifactDTO:
    """DTO for a stored quote document."""

    id: uuid.UUID
    request_id: uuid.UUID
    content: bytes
    content_type: str
    filename: str
    checksum: str
    quote: QuoteDTO
    created_at: datetime


@dataclass
class RenewedDeviceDTO:
    device_id: uuid.UUID
    previous_expiry: Optional[date]
    new_expiry: Optional[date]


@dataclass
class BulkRenewalResultDTO:
    """DTO for the outcome of a bulk renewal."""

    receipt_id: uuid.UUID
    payment_token: str
    status: str
    years: int
    amount: Decimal
    currency: str
    charge_reference: Optional[str]
    devices: List[RenewedDeviceDTO]
    replayed: bool
