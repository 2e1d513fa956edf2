"""
drf-spectacular extension documenting the X-API-Key header.
"""

from drf_spectacular.extensions import OpenApiAuthenticationExtension


class ApiKeyAuthenticationExtension(OpenApiAuthenticationExtension):
    """Adds API key authentication to the OpenAPI schema."""

    target_class = "api.authentication.OrganizationAPIKeyAuthentication"
    name = "ApiKeyAuth"

    def get_security_definition(self, auto_schema):
        """Return security scheme definition."""
        return {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
            "description": "Organization API key issued when the organization is created.",
        }
