"""
Celery configuration for background tasks.

Used to process domain events consumed from RabbitMQ.
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "FleetRenewalService.settings.dev")

app = Celery("FleetRenewalService")

# Load configuration from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
