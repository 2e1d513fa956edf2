"""
HTTP geocoder.

Queries a Nominatim-compatible ``/search`` endpoint with ``requests``.
"""

import logging
from typing import Optional

import requests
from asgiref.sync import sync_to_async

from core.domain.exceptions import ExternalServiceError, TransientExternalServiceError
from devices.ports.geocoder import Coordinates, Geocoder

logger = logging.getLogger(__name__)


class NominatimGeocoder(Geocoder):
    """Geocoder backed by a Nominatim-style search API."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        timeout_seconds: float = 10,
        user_agent: str = "Fleet-Renewal-Service/1.0",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.session = session or requests.Session()

    def _lookup(self, query: str) -> Coordinates:
        try:
            response = self.session.get(
                f"{self.base_url}/search",
                params={"q": query, "format": "json", "limit": 1},
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            raise TransientExternalServiceError(f"Geocoder unreachable: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ExternalServiceError(f"Geocoder request failed: {e}") from e

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientExternalServiceError(
                f"Geocoder unavailable (HTTP {response.status_code})"
            )
        if response.status_code >= 400:
            raise ExternalServiceError(f"Geocoder rejected query (HTTP {response.status_code})")

        try:
            results = response.json()
        except ValueError as e:
            raise ExternalServiceError("Geocoder returned malformed JSON") from e
        if not results:
            raise ExternalServiceError(f"No coordinates found for location '{query}'")

        best = results[0]
        logger.debug("Geocoded %r to %s,%s", query, best.get("lat"), best.get("lon"))
        return Coordinates(latitude=float(best["lat"]), longitude=float(best["lon"]))

    async def geocode(self, query: str) -> Coordinates:
        """
        Look up coordinates for a location name.

        Args:
            query: Free-text location

        Returns:
            Coordinates of the best match
        """
        return await sync_to_async(self._lookup, thread_sensitive=False)(query)
