"""
Get organization query.
"""

import uuid
from dataclasses import dataclass


@dataclass
class GetOrganizationQuery:
    """Query for the calling organization's profile."""

    actor_id: uuid.UUID
