"""
Unit tests for the RabbitMQ event bus.
"""

import uuid

from core.infrastructure.rabbitmq_event_bus import RabbitMQEventBus
from renewals.domain.events import RenewalRequestCreated


class StubMessage:
    def __init__(self):
        self.acked = False
        self.requeued = None

    def ack(self):
        self.acked = True

    def reject(self, requeue=False):
        self.requeued = requeue


def created_event():
    return RenewalRequestCreated(
        request_id=uuid.uuid4(),
        organization_id=uuid.uuid4(),
        addressee_id=uuid.uuid4(),
        request_type="renewal",
        device_ids=[uuid.uuid4()],
    )


def test_routing_key_uses_event_type():
    assert RabbitMQEventBus.routing_key(created_event()) == "event.renewalrequestcreated"


def test_queue_binds_every_event():
    queue = RabbitMQEventBus(exchange_name="test_events").get_queue("audit")

    assert queue.name == "audit"
    assert queue.routing_key == "event.*"
    assert queue.exchange.name == "test_events"


def test_message_handed_to_celery(monkeypatch):
    from FleetRenewalService.celery import app

    sent = []
    monkeypatch.setattr(app, "send_task", lambda name, args: sent.append((name, args)))
    body = created_event().to_dict()
    message = StubMessage()

    RabbitMQEventBus()._handle_message(body, message)  # pylint: disable=protected-access

    assert sent == [("core.tasks.process_event_from_rabbitmq", [body])]
    assert message.acked


def test_message_requeued_when_celery_is_down(monkeypatch):
    from FleetRenewalService.celery import app

    def fail(name, args):
        raise ConnectionError("broker down")

    monkeypatch.setattr(app, "send_task", fail)
    message = StubMessage()

    RabbitMQEventBus()._handle_message(created_event().to_dict(), message)  # pylint: disable=protected-access

    assert message.requeued is True
    assert not message.acked
