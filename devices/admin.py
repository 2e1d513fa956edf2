"""
Django admin configuration for devices app.
"""

from django.contrib import admin
from django.utils import timezone

from devices.application.resolver import configured_resolver
from devices.infrastructure.models import Device


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    """Admin interface for Device model."""

    list_display = [
        "name",
        "serial_number",
        "organization",
        "expiry_date",
        "status_display",
        "grace_token_expiry",
        "suspended",
    ]
    list_filter = ["suspended", "expiry_date", "organization"]
    search_fields = ["name", "serial_number", "organization__name", "location_label"]
    readonly_fields = ["id", "version", "created_at", "updated_at"]
    actions = ["suspend_devices", "unsuspend_devices"]

    def status_display(self, obj):
        """Resolved license status."""
        return configured_resolver().status_of(obj, timezone.now()).value

    status_display.short_description = "Status"

    def get_queryset(self, request):
        """Optimize queryset."""
        return super().get_queryset(request).select_related("organization")

    @admin.action(description="Suspend selected devices")
    def suspend_devices(self, request, queryset):
        queryset.update(suspended=True)

    @admin.action(description="Clear suspension on selected devices")
    def unsuspend_devices(self, request, queryset):
        queryset.update(suspended=False)
