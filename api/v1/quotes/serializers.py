"""
Serializers for quote preview.
"""

from rest_framework import serializers


class QuotePreviewRequestSerializer(serializers.Serializer):
    """Serializer for quote preview request."""

    client_id = serializers.UUIDField()
    device_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )
    margin = serializers.DecimalField(
        max_digits=7, decimal_places=2, required=False, allow_null=True, min_value=0
    )
