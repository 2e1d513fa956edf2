"""
GenerateQuoteCommand.

Command to price, render and send a quote for a pending request.
"""
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass
class GenerateQuoteCommand:
    """
    Command to generate and send a quote.

    ``device_ids`` is only used when the request itself lists no devices.
    ``margin_percent`` falls back to the reseller's default margin.
    """

    actor_id: uuid.UUID
    request_id: uuid.UUID
    margin_percent: Optional[Decimal] = None
    device_ids: List[uuid.UUID] = field(default_factory=list)
    message: Optional[str] = None
