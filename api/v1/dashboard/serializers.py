"""
Serializers for dashboard endpoints.
"""

from rest_framework import serializers


class FleetStatsSerializer(serializers.Serializer):
    """Serializer for FleetStatsDTO."""

    total = serializers.IntegerField()
    active = serializers.IntegerField()
    expiring_soon = serializers.IntegerField()
    expired = serializers.IntegerField()
    suspended = serializers.IntegerField()
    in_grace = serializers.IntegerField()
    at_risk = serializers.IntegerField()


class ClientOverviewSerializer(serializers.Serializer):
    """Serializer for ClientOverviewDTO."""

    id = serializers.UUIDField()
    name = serializers.CharField()
    type = serializers.CharField()
    total_devices = serializers.IntegerField()
    at_risk = serializers.IntegerField()
