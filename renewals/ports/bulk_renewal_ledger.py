"""
Bulk renewal ledger port (interface).

The ledger owns BulkRenewalReceipt rows and applies the expiry
extension in the same transaction that marks a receipt COMPLETED.
"""

import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from renewals.domain.bulk_renewal import BulkRenewalReceipt


class BulkRenewalLedger(ABC):
    """Idempotency ledger for bulk renewals."""

    @abstractmethod
    async def find(self, payment_token: str) -> Optional[BulkRenewalReceipt]:
        """Return the receipt for ``payment_token`` without creating or locking it."""
        pass

    @abstractmethod
    async def claim(
        self,
        payment_token: str,
        organization_id: uuid.UUID,
        device_ids: Tuple[uuid.UUID, ...],
        years: int,
        amount: Decimal,
        currency: str,
    ) -> BulkRenewalReceipt:
        """
        Return the receipt for ``payment_token``, creating a PENDING one if none exists.

        An existing receipt is returned as stored; the caller decides
        whether it matches the replayed request.
        """
        pass

    @abstractmethod
    async def mark_charged(self, payment_token: str, charge_reference: str) -> BulkRenewalReceipt:
        pass

    @abstractmethod
    async def mark_declined(self, payment_token: str, reason: str) -> BulkRenewalReceipt:
        pass

    @abstractmethod
    async def complete(
        self,
        payment_token: str,
        allowed_organization_ids: Iterable[uuid.UUID],
    ) -> Tuple[BulkRenewalReceipt, bool]:
        """
        Extend every device on a CHARGED receipt and mark it COMPLETED, atomically.

        If the receipt is already COMPLETED (a concurrent replay won the
        race) it is returned unchanged and nothing is extended again.

        Returns:
            (receipt, True if this call applied the extension)

        Raises:
            DeviceNotFoundError: If a device vanished or left the allowed scope
            ConflictError: If the receipt is not CHARGED or COMPLETED
        """
        pass
