"""
Fleet read queries.
"""
import uuid
from dataclasses import dataclass
from typing import Optional


@dataclass
class ListDevicesQuery:
    """List devices visible to the actor, optionally for one client."""

    actor_id: uuid.UUID
    client_id: Optional[uuid.UUID] = None


@dataclass
class FleetStatsQuery:
    """Aggregate status counts for the actor's fleet or one client."""

    actor_id: uuid.UUID
    client_id: Optional[uuid.UUID] = None


@dataclass
class ClientOverviewQuery:
    """Per-client device totals for a parent or reseller."""

    actor_id: uuid.UUID


@dataclass
class RenewalPathQuery:
    """How the actor would renew a given device."""

    actor_id: uuid.UUID
    device_id: uuid.UUID
