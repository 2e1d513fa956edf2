"""
BulkRenewCommand.

Command to extend the expiry of several devices after payment.
"""
import uuid
from dataclasses import dataclass
from typing import List


@dataclass
class BulkRenewCommand:
    """Command to renew ``device_ids`` for ``years`` against a payment token."""

    actor_id: uuid.UUID
    device_ids: List[uuid.UUID]
    years: int
    payment_token: str
