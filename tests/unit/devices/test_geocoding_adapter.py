"""
Unit tests for NominatimGeocoder.
"""

import pytest
import requests

from core.domain.exceptions import ExternalServiceError, TransientExternalServiceError
from devices.infrastructure.geocoding import NominatimGeocoder


class StubResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class StubSession:
    def __init__(self, outcome):
        self.outcome = outcome
        self.gets = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.gets.append({"url": url, "params": params, "headers": headers})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.mark.asyncio
class TestNominatimGeocoder:
    """Test cases for NominatimGeocoder."""

    async def test_best_match(self):
        session = StubSession(StubResponse(200, [{"lat": "53.8008", "lon": "-1.5491"}]))
        geocoder = NominatimGeocoder("https://geo.example.com/", session=session)

        coordinates = await geocoder.geocode("Leeds, UK")

        assert coordinates.latitude == pytest.approx(53.8008)
        assert coordinates.longitude == pytest.approx(-1.5491)
        assert session.gets[0]["url"] == "https://geo.example.com/search"
        assert session.gets[0]["params"]["q"] == "Leeds, UK"

    async def test_no_results(self):
        geocoder = NominatimGeocoder(session=StubSession(StubResponse(200, [])))

        with pytest.raises(ExternalServiceError):
            await geocoder.geocode("Nowhere")

    async def test_rate_limited_is_transient(self):
        geocoder = NominatimGeocoder(session=StubSession(StubResponse(429)))

        with pytest.raises(TransientExternalServiceError):
            await geocoder.geocode("Leeds")

    async def test_connection_error_is_transient(self):
        geocoder = NominatimGeocoder(session=StubSession(requests.exceptions.ConnectionError("refused")))

        with pytest.raises(TransientExternalServiceError):
            await geocoder.geocode("Leeds")
