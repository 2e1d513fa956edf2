"""
Bulk renewal receipt.

The receipt is the idempotency record for a bulk renewal, keyed on the
payment confirmation token. Its status tells a replay what is left to
do: nothing (COMPLETED), apply the extension (CHARGED), re-confirm the
charge (PENDING) or refuse (DECLINED).
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple


class ReceiptStatus(Enum):
    PENDING = "pending"
    CHARGED = "charged"
    COMPLETED = "completed"
    DECLINED = "declined"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BulkRenewalReceipt:
    """Idempotency record for one payment token."""

    id: uuid.UUID
    payment_token: str
    organization_id: uuid.UUID
    device_ids: Tuple[uuid.UUID, ...]
    years: int
    amount: Decimal
    currency: str
    status: ReceiptStatus
    charge_reference: Optional[str]
    failure_reason: Optional[str]
    previous_expiries: Dict[uuid.UUID, date] = field(default_factory=dict)
    new_expiries: Dict[uuid.UUID, date] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def matches(self, organization_id: uuid.UUID, device_ids, years: int) -> bool:
        """True when a replay asks for exactly what this receipt covers."""
        return (
            self.organization_id == organization_id
            and self.years == years
            and tuple(sorted(device_ids, key=str)) == self.device_ids
        )


def normalize_device_ids(device_ids) -> Tuple[uuid.UUID, ...]:
    """Sorted, de-duplicated device IDs; the canonical form stored on receipts."""
    return tuple(sorted(set(device_ids), key=str))
