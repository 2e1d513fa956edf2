"""
API key authentication middleware.

Resolves the ``X-API-Key`` header to the calling organization for every
request under ``/api/v1/``.
"""

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils.deprecation import MiddlewareMixin

from organizations.infrastructure.models import ApiKey

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/api/v1/"


def extract_api_key(request: HttpRequest) -> Optional[str]:
    """Read the API key from ``X-API-Key`` or a bearer Authorization header."""
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return api_key
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def _unauthorized(code: str, message: str) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=401)


class APIKeyAuthenticationMiddleware(MiddlewareMixin):
    """
    Middleware for API key authentication.

    On success the request carries ``organization`` (the Django model) and
    ``api_key``. Returns 401 if the key is missing, unknown or expired.
    """

    def process_request(self, request: HttpRequest) -> Optional[HttpResponse]:
        """
        Process request and validate authentication.

        Args:
            request: HTTP request

        Returns:
            HttpResponse with 401 if authentication fails, None otherwise
        """
        if not request.path.startswith(PROTECTED_PREFIX):
            return None

        api_key = extract_api_key(request)
        if not api_key:
            return _unauthorized("MISSING_API_KEY", "Missing API key. Provide X-API-Key header.")

        # pylint: disable=no-member
        api_key_obj = (
            ApiKey.objects.select_related("organization")
            .filter(key_hash=ApiKey.hash_key(api_key))
            .first()
        )
        if not api_key_obj:
            logger.warning("Invalid API key attempted: %s...", api_key[:8])
            return _unauthorized("INVALID_API_KEY", "Invalid API key")
        if not api_key_obj.is_valid():
            logger.warning("Expired API key attempted: %s...", api_key[:8])
            return _unauthorized("API_KEY_EXPIRED", "API key expired")

        api_key_obj.mark_used()
        request.organization = api_key_obj.organization  # type: ignore
        request.api_key = api_key_obj  # type: ignore
        return None
