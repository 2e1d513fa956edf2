"""
Quote pricing and quote artifacts.

A Quote is computed once and frozen; the artifact stored alongside a
QUOTED request keeps the exact bytes and totals that were sent, so a
later change to the reseller's margin never alters an issued quote.
"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from devices.domain.device import Device

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class QuoteLineItem:
    device_id: uuid.UUID
    serial_number: str
    description: str
    base_price: Decimal
    line_total: Decimal

    def to_dict(self) -> dict:
        return {
            "device_id": str(self.device_id),
            "serial_number": self.serial_number,
            "description": self.description,
            "base_price": str(self.base_price),
            "line_total": str(self.line_total),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteLineItem":
        return cls(
            device_id=uuid.UUID(data["device_id"]),
            serial_number=data["serial_number"],
            description=data["description"],
            base_price=Decimal(data["base_price"]),
            line_total=Decimal(data["line_total"]),
        )


@dataclass(frozen=True)
class Quote:
    """A priced, immutable quote for a set of devices."""

    line_items: Tuple[QuoteLineItem, ...]
    margin_percent: Decimal
    grand_total: Decimal
    currency: str
    priced_at: datetime

    @property
    def device_count(self) -> int:
        return len(self.line_items)


def price_devices(
    devices: Iterable[Device],
    base_price: Decimal,
    margin_percent: Decimal,
    currency: str,
    max_margin_percent: Decimal = Decimal("1000"),
) -> Quote:
    """
    Price a renewal quote.

    Each device costs ``base_price * (1 + margin/100)``; the grand total
    is the sum of the line totals. Amounts are rounded half-up to cents.

    Args:
        devices: Devices to quote, in presentation order
        base_price: Per-device base price
        margin_percent: Reseller margin as a percentage
        currency: ISO currency code
        max_margin_percent: Upper bound on the margin

    Returns:
        Frozen Quote

    Raises:
        ValueError: If there are no devices or the margin is out of range
    """
    margin = Decimal(margin_percent)
    if margin < 0 or margin > max_margin_percent:
        raise ValueError(f"Margin must be between 0 and {max_margin_percent} percent")
    base = to_money(base_price)
    multiplier = Decimal(1) + margin / Decimal(100)

    items: List[QuoteLineItem] = []
    for device in devices:
        items.append(
            QuoteLineItem(
                device_id=device.id,
                serial_number=device.serial_number,
                description=f"1-year license renewal: {device.name}",
                base_price=base,
                line_total=to_money(base * multiplier),
            )
        )
    if not items:
        raise ValueError("A quote needs at least one device")

    return Quote(
        line_items=tuple(items),
        margin_percent=margin,
        grand_total=to_money(sum((item.line_total for item in items), Decimal(0))),
        currency=currency,
        priced_at=datetime.now(timezone.utc),
    )


@dataclass(frozen=True)
class RenderedDocument:
    """Opaque output of a document renderer."""

    content: bytes
    content_type: str
    filename: str


@dataclass(frozen=True)
class QuoteArtifact:
    """
    Stored quote attached to a QUOTED request.

    Pricing fields are None when the responder uploaded their own
    document instead of using the quote generator.
    """

    id: uuid.UUID
    request_id: uuid.UUID
    content: bytes
    content_type: str
    filename: str
    checksum: str
    margin_percent: Optional[Decimal]
    grand_total: Optional[Decimal]
    currency: Optional[str]
    line_items: Tuple[QuoteLineItem, ...]
    created_at: datetime

    def __post_init__(self):
        """Validate quote artifact."""
        if not self.content:
            raise ValueError("Quote artifact cannot be empty")
        if hashlib.sha256(self.content).hexdigest() != self.checksum:
            raise ValueError("Quote artifact checksum mismatch")

    @classmethod
    def create(
        cls,
        request_id: uuid.UUID,
        document: RenderedDocument,
        quote: Optional[Quote] = None,
        artifact_id: Optional[uuid.UUID] = None,
    ) -> "QuoteArtifact":
        """
        Create an artifact from rendered bytes and, optionally, the quote they show.

        Args:
            request_id: Request the artifact answers
            document: Rendered bytes and metadata
            quote: Pricing behind the document, when generated here
            artifact_id: Optional UUID (generated if not provided)

        Returns:
            QuoteArtifact entity instance
        """
        return cls(
            id=artifact_id or uuid.uuid4(),
            request_id=request_id,
            content=document.content,
            content_type=document.content_type,
            filename=document.filename,
            checksum=hashlib.sha256(document.content).hexdigest(),
            margin_percent=quote.margin_percent if quote else None,
            grand_total=quote.grand_total if quote else None,
            currency=quote.currency if quote else None,
            line_items=quote.line_items if quote else (),
            created_at=datetime.now(timezone.utc),
        )
