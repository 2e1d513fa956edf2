"""
Serializers for renewal request and quote endpoints.
"""

import base64
import binascii

from rest_framework import serializers

from renewals.application.queries.request_queries import INCOMING_VIEW, OWNER_VIEW


class RequestViewQuerySerializer(serializers.Serializer):
    """``view`` query parameter of the request list."""

    view = serializers.ChoiceField(choices=[OWNER_VIEW, INCOMING_VIEW], default=OWNER_VIEW)


class CreateRenewalRequestSerializer(serializers.Serializer):
    """Serializer for create request."""

    type = serializers.ChoiceField(choices=["renewal", "quote"])
    device_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)
    on_behalf_of = serializers.UUIDField(required=False, allow_null=True)


class RenewalRequestSerializer(serializers.Serializer):
    """Serializer for RenewalRequestDTO."""

    id = serializers.UUIDField()
    requester_id = serializers.UUIDField()
    requester_name = serializers.CharField()
    subject_id = serializers.UUIDField()
    addressee_id = serializers.UUIDField()
    addressee_name = serializers.CharField()
    device_ids = serializers.ListField(child=serializers.UUIDField())
    type = serializers.CharField()
    status = serializers.CharField()
    notes = serializers.CharField(allow_blank=True)
    response_message = serializers.CharField(allow_null=True)
    quote_artifact_id = serializers.UUIDField(allow_null=True)
    created_at = serializers.DateTimeField()
    resolved_at = serializers.DateTimeField(allow_null=True)


class ResolutionSerializer(serializers.Serializer):
    """Serializer for approve and reject requests."""

    message = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=2000
    )


class RespondWithQuoteSerializer(serializers.Serializer):
    """Serializer for answering a request with an uploaded quote document."""

    artifact = serializers.CharField(help_text="Base64-encoded document")
    content_type = serializers.CharField(max_length=100, default="application/pdf")
    filename = serializers.CharField(max_length=255, required=False, allow_blank=True)
    message = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=2000
    )

    def validate_artifact(self, value):
        """Decode the document."""
        try:
            content = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise serializers.ValidationError("artifact must be valid base64") from e
        if not content:
            raise serializers.ValidationError("artifact cannot be empty")
        return content


class GenerateQuoteSerializer(serializers.Serializer):
    """Serializer for generate quote request."""

    margin = serializers.DecimalField(
        max_digits=7, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    device_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )
    message = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=2000
    )


class QuoteLineItemSerializer(serializers.Serializer):
    """Serializer for QuoteLineItemDTO."""

    device_id = serializers.UUIDField()
    serial_number = serializers.CharField()
    description = serializers.CharField()
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)


class QuoteSerializer(serializers.Serializer):
    """Serializer for QuoteDTO."""

    margin_percent = serializers.DecimalField(max_digits=7, decimal_places=2, allow_null=True)
    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    currency = serializers.CharField(allow_null=True)
    line_items = QuoteLineItemSerializer(many=True)


class QuoteArtifactSerializer(serializers.Serializer):
    """Serializer for QuoteArtifactDTO; the document is base64-encoded."""

    id = serializers.UUIDField()
    request_id = serializers.UUIDField()
    artifact = serializers.SerializerMethodField()
    content_type = serializers.CharField()
    filename = serializers.CharField()
    checksum = serializers.CharField()
    quote = QuoteSerializer()
    created_at = serializers.DateTimeField()

    def get_artifact(self, obj) -> str:
        return base64.b64encode(obj.content).decode("ascii")
