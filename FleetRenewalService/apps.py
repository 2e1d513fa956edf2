"""
App configuration for Fleet Renewal Service.
"""

import logging
import sys

from django.apps import AppConfig

logger = logging.getLogger(__name__)

SKIP_COMMANDS = ("migrate", "makemigrations", "collectstatic", "check")


class FleetRenewalServiceConfig(AppConfig):
    """Wires observability and event handlers once apps are loaded."""

    name = "FleetRenewalService"
    verbose_name = "Fleet Renewal Service"

    def ready(self):
        """Called when Django starts."""
        import core.schema_extensions  # noqa: F401

        if len(sys.argv) > 1 and sys.argv[1] in SKIP_COMMANDS:
            return

        from core.infrastructure.event_handlers import register_event_handlers
        from core.instrumentation import setup_opentelemetry

        setup_opentelemetry()
        register_event_handlers()
        logger.debug("Fleet renewal service ready")
