"""
Celery tasks for background processing.
"""
import logging

from FleetRenewalService.celery import app

from core.infrastructure.event_handlers import write_audit_log
from core.metrics import domain_events_total

logger = logging.getLogger(__name__)


@app.task(bind=True, max_retries=3)
def process_event_from_rabbitmq(self, event_data: dict):
    """
    Process an event consumed from RabbitMQ.

    Args:
        event_data: Serialized event (``DomainEvent.to_dict()``)
    """
    event_type = event_data.get("event_type")
    try:
        write_audit_log(event_data)
    except Exception as exc:
        logger.error("Audit write for %s failed: %s", event_type, exc, exc_info=True)
        raise self.retry(exc=exc, countdown=2**self.request.retries)
    domain_events_total.labels(event_type=event_type).inc()
