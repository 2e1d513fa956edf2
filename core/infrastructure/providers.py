"""
Loads collaborator adapters named in settings.

Each setting is a dict ``{"BACKEND": "dotted.path.Class", "OPTIONS": {...}}``;
the class is instantiated with OPTIONS as keyword arguments.
"""

import logging
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


def load_backend(setting_name: str) -> Any:
    """
    Instantiate the backend configured under ``setting_name``.

    Raises:
        ImproperlyConfigured: If the setting is missing or malformed
    """
    config = getattr(settings, setting_name, None)
    if not config or "BACKEND" not in config:
        raise ImproperlyConfigured(f"{setting_name} must define a BACKEND")
    backend_class = import_string(config["BACKEND"])
    logger.debug("Loading %s backend %s", setting_name, config["BACKEND"])
    return backend_class(**config.get("OPTIONS", {}))


def get_payment_gateway():
    return load_backend("PAYMENT_GATEWAY")


def get_document_renderer():
    return load_backend("DOCUMENT_RENDERER")


def get_geocoder():
    return load_backend("GEOCODER")
