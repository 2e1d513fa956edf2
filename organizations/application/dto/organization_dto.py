"""
Organization DTOs (Data Transfer Objects).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class OrganizationDTO:
    """DTO for the calling organization's profile."""

    id: uuid.UUID
    name: str
    type: str
    billing_mode: Optional[str]
    parent_id: Optional[uuid.UUID]
    reseller_id: Optional[uuid.UUID]
    default_margin_percent: Optional[Decimal]
    renewal_action: Optional[str]
    created_at: datetime
