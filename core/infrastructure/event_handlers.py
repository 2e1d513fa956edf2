"""
Event handlers for domain events.

Every domain event is written to the audit log and counted. The same
functions back the in-memory handlers and the Celery task that consumes
events published to RabbitMQ.
"""

import logging
from typing import Any, Dict

from asgiref.sync import sync_to_async

from core.domain.events import DomainEvent, EventBus, EventHandler
from core.metrics import domain_events_total
from devices.domain.events import DeviceRegistered, DeviceRemoved, GraceTokenIssued
from renewals.domain.events import (
    DevicesRenewed,
    RenewalRequestApproved,
    RenewalRequestCreated,
    RenewalRequestQuoted,
    RenewalRequestRejected,
)

logger = logging.getLogger(__name__)

ENTITY_TYPES = {
    DeviceRegistered: "device",
    DeviceRemoved: "device",
    GraceTokenIssued: "device",
    RenewalRequestCreated: "renewal_request",
    RenewalRequestApproved: "renewal_request",
    RenewalRequestRejected: "renewal_request",
    RenewalRequestQuoted: "renewal_request",
    DevicesRenewed: "bulk_renewal",
}

_ENTITY_BY_NAME = {event_type.__name__: entity for event_type, entity in ENTITY_TYPES.items()}


def write_audit_log(record: Dict[str, Any]):
    """
    Append an AuditLog row for a serialized event.

    Args:
        record: Output of ``DomainEvent.to_dict()``

    Returns:
        The created AuditLog model
    """
    from renewals.infrastructure.models import AuditLog

    data = record.get("data", {})
    # pylint: disable=no-member
    return AuditLog.objects.create(
        organization_id=data.get("organization_id"),
        entity_type=_ENTITY_BY_NAME.get(record["event_type"], "unknown"),
        entity_id=record["aggregate_id"],
        action=record["event_type"],
        changes=data,
    )


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Writes every domain event to the AuditLog table.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        await sync_to_async(write_audit_log)(event.to_dict())
        logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
            },
        )


class MetricsEventHandler(EventHandler):
    """Counts domain events by type."""

    async def handle(self, event: DomainEvent) -> None:
        domain_events_total.labels(event_type=event.event_type).inc()


def register_event_handlers(bus: EventBus = None) -> None:
    """Register the audit and metrics handlers for every domain event."""
    if bus is None:
        from core.infrastructure.events import event_bus as bus

    audit_handler = AuditLogEventHandler()
    metrics_handler = MetricsEventHandler()
    for event_type in ENTITY_TYPES:
        bus.subscribe(event_type, audit_handler)
        bus.subscribe(event_type, metrics_handler)

    logger.info("Event handlers registered for %d event type(s)", len(ENTITY_TYPES))
