"""
Update quote settings command.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class UpdateQuoteSettingsCommand:
    """Command to change a reseller's default quote margin."""

    actor_id: uuid.UUID
    default_margin_percent: Decimal
