"""
Serializers for device API endpoints.
"""

from rest_framework import serializers


class ClientScopeQuerySerializer(serializers.Serializer):
    """Optional ``client_id`` query parameter narrowing a fleet read."""

    client_id = serializers.UUIDField(required=False, allow_null=True)


class DeviceSerializer(serializers.Serializer):
    """Serializer for DeviceDTO."""

    id = serializers.UUIDField()
    organization_id = serializers.UUIDField()
    organization_name = serializers.CharField()
    serial_number = serializers.CharField()
    name = serializers.CharField()
    location = serializers.CharField()
    latitude = serializers.FloatField(allow_null=True)
    longitude = serializers.FloatField(allow_null=True)
    expiry_date = serializers.DateField()
    grace_token_expiry = serializers.DateField(allow_null=True)
    status = serializers.CharField()
    in_grace_period = serializers.BooleanField()
    renewal_action = serializers.CharField(allow_null=True)
    available_actions = serializers.ListField(child=serializers.CharField())


class DeviceRecordSerializer(serializers.Serializer):
    """Serializer for a Device entity returned by a write."""

    id = serializers.UUIDField()
    organization_id = serializers.UUIDField(source="org_id")
    serial_number = serializers.CharField()
    name = serializers.CharField()
    location = serializers.CharField(source="location.label")
    latitude = serializers.FloatField(source="location.latitude", allow_null=True)
    longitude = serializers.FloatField(source="location.longitude", allow_null=True)
    expiry_date = serializers.DateField()
    grace_token_expiry = serializers.DateField(allow_null=True)
    suspended = serializers.BooleanField()


class RegisterDeviceRequestSerializer(serializers.Serializer):
    """Serializer for register device request."""

    organization_id = serializers.UUIDField(required=False, allow_null=True)
    serial_number = serializers.CharField(max_length=100)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    location = serializers.CharField(max_length=255)
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(
        required=False, allow_null=True, min_value=-180, max_value=180
    )
    expiry_date = serializers.DateField()

    def validate(self, attrs):
        """Coordinates come in pairs."""
        if (attrs.get("latitude") is None) != (attrs.get("longitude") is None):
            raise serializers.ValidationError("latitude and longitude must be provided together")
        return attrs


class BulkRenewRequestSerializer(serializers.Serializer):
    """Serializer for bulk renew request."""

    device_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    years = serializers.IntegerField(min_value=1)
    payment_token = serializers.CharField(max_length=255)


class RenewedDeviceSerializer(serializers.Serializer):
    """Serializer for RenewedDeviceDTO."""

    device_id = serializers.UUIDField()
    previous_expiry = serializers.DateField(allow_null=True)
    new_expiry = serializers.DateField(allow_null=True)


class BulkRenewalResultSerializer(serializers.Serializer):
    """Serializer for BulkRenewalResultDTO."""

    receipt_id = serializers.UUIDField()
    payment_token = serializers.CharField()
    status = serializers.CharField()
    years = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    charge_reference = serializers.CharField(allow_null=True)
    devices = RenewedDeviceSerializer(many=True)
    replayed = serializers.BooleanField()


class RenewalPathSerializer(serializers.Serializer):
    """Serializer for RenewalPathDTO."""

    device_id = serializers.UUIDField()
    status = serializers.CharField()
    action = serializers.CharField(allow_null=True)
    allowed = serializers.BooleanField()
    next_step = serializers.CharField(allow_null=True)
    addressee_id = serializers.UUIDField(allow_null=True)
    error_code = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_null=True)
