"""
DRF authentication backed by the API key middleware.

``APIKeyAuthenticationMiddleware`` resolves the key before DRF runs;
this class exposes the organization it found as ``request.user`` and the
key as ``request.auth``.
"""

import uuid

from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from rest_framework.request import Request


class OrganizationAPIKeyAuthentication(BaseAuthentication):
    """Authenticates the organization attached by the API key middleware."""

    def authenticate(self, request: Request):
        django_request = request._request  # pylint: disable=protected-access
        organization = getattr(django_request, "organization", None)
        if organization is None:
            return None
        return organization, getattr(django_request, "api_key", None)

    def authenticate_header(self, request: Request) -> str:
        return "X-API-Key"


class IsOrganization(BasePermission):
    """Allows access only to requests acting as an organization."""

    message = "Missing API key. Provide X-API-Key header."

    def has_permission(self, request, view) -> bool:
        return request.auth is not None


def acting_organization_id(request: Request) -> uuid.UUID:
    """ID of the organization making the request."""
    return request.user.id
