"""
Model registration for the organizations app.

The ORM models live in organizations.infrastructure.models; importing them here
lets Django register them when the app loads.
"""

from organizations.infrastructure.models import *  # noqa: F401, F403
