"""
Model registration for the devices app.

The ORM models live in devices.infrastructure.models; importing them here
lets Django register them when the app loads.
"""

from devices.infrastructure.models import *  # noqa: F401, F403
