"""
Django management command to register event handlers.

Handlers are registered automatically when the project app is ready;
this command is for worker processes started outside Django's app
loading (and for checking which event types are wired).
"""
import logging

from django.core.management.base import BaseCommand

from core.infrastructure.event_handlers import ENTITY_TYPES, register_event_handlers

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to register event handlers."""

    help = "Register audit and metrics handlers with the event bus"

    def handle(self, *args, **options):
        """Execute the command."""
        register_event_handlers()
        for event_type, entity_type in ENTITY_TYPES.items():
            self.stdout.write(f"  {event_type.__name__} -> {entity_type}")
        # pylint: disable=no-member
        self.stdout.write(self.style.SUCCESS("Event handlers registered successfully"))
