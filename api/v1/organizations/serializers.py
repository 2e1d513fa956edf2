"""
Serializers for organization endpoints.
"""

from rest_framework import serializers


class OrganizationSerializer(serializers.Serializer):
    """Serializer for OrganizationDTO."""

    id = serializers.UUIDField()
    name = serializers.CharField()
    type = serializers.CharField()
    billing_mode = serializers.CharField(allow_null=True)
    parent_id = serializers.UUIDField(allow_null=True)
    reseller_id = serializers.UUIDField(allow_null=True)
    default_margin_percent = serializers.DecimalField(
        max_digits=7, decimal_places=2, allow_null=True
    )
    renewal_action = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()


class QuoteSettingsSerializer(serializers.Serializer):
    """Serializer for a reseller's quote settings update."""

    default_margin_percent = serializers.DecimalField(max_digits=7, decimal_places=2, min_value=0)
