"""
Device lifecycle commands: grace tokens and removal.
"""
import uuid
from dataclasses import dataclass


@dataclass
class IssueGraceTokenCommand:
    """Command to grant an expired device a grace period."""

    actor_id: uuid.UUID
    device_id: uuid.UUID


@dataclass
class RemoveDeviceCommand:
    """Command to remove an expired or suspended device."""

    actor_id: uuid.UUID
    device_id: uuid.UUID
