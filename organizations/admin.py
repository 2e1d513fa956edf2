"""
Django admin configuration for organizations app.
"""

from django.contrib import admin
from django.utils.html import format_html

from organizations.infrastructure.models import ApiKey, Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    """Admin interface for Organization model."""

    list_display = ["name", "type", "billing_mode", "parent", "reseller", "created_at"]
    list_filter = ["type", "billing_mode"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("id", "name", "type"),
            },
        ),
        (
            "Hierarchy",
            {
                "fields": ("billing_mode", "parent", "reseller", "default_margin_percent"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def get_queryset(self, request):
        """Optimize queryset."""
        return super().get_queryset(request).select_related("parent", "reseller")


@admin.register(ApiKey)
class ApiKeyAdmin(admin.ModelAdmin):
    """Admin interface for ApiKey model."""

    list_display = [
        "organization",
        "key_prefix_display",
        "is_valid_display",
        "expires_at",
        "last_used_at",
        "created_at",
    ]
    list_filter = ["expires_at", "created_at"]
    search_fields = ["key_prefix", "organization__name"]
    readonly_fields = ["id", "key_prefix", "key_hash", "created_at", "last_used_at"]

    def key_prefix_display(self, obj):
        """Display key prefix with ellipsis."""
        return f"{obj.key_prefix}..."

    key_prefix_display.short_description = "Key Prefix"

    def is_valid_display(self, obj):
        """Display validity status with color."""
        if obj.is_valid():
            return format_html('<span style="color: green;">Valid</span>')
        return format_html('<span style="color: red;">Expired</span>')

    is_valid_display.short_description = "Status"

    def save_model(self, request, obj, form, change):
        """Save model and show raw key if new."""
        super().save_model(request, obj, form, change)
        if not change and hasattr(obj, "_raw_key"):
            self.message_user(
                request,
                f"API Key created! Raw key: {obj._raw_key} "
                "(Save this - it won't be shown again)",
                level="WARNING",
            )
