"""
Model registration for the renewals app.

The ORM models live in renewals.infrastructure.models; importing them here
lets Django register them when the app loads.
"""

from renewals.infrastructure.models import *  # noqa: F401, F403
