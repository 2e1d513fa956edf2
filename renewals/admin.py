"""
Django admin configuration for renewals app.
"""

from django.contrib import admin

from renewals.infrastructure.models import (
    AuditLog,
    BulkRenewalReceipt,
    QuoteArtifact,
    RenewalRequest,
)


@admin.register(RenewalRequest)
class RenewalRequestAdmin(admin.ModelAdmin):
    """Admin interface for RenewalRequest model."""

    list_display = ["id", "type", "status", "requester", "addressee", "created_at", "resolved_at"]
    list_filter = ["type", "status", "created_at"]
    search_fields = ["requester__name", "addressee__name", "notes"]
    readonly_fields = [
        "id",
        "requester",
        "subject",
        "addressee",
        "device_ids",
        "type",
        "status",
        "resolved_by",
        "resolved_at",
        "created_at",
        "updated_at",
    ]

    def get_queryset(self, request):
        """Optimize queryset."""
        return super().get_queryset(request).select_related("requester", "addressee")


@admin.register(QuoteArtifact)
class QuoteArtifactAdmin(admin.ModelAdmin):
    """Read-only admin for stored quotes."""

    list_display = ["filename", "request", "grand_total", "currency", "created_at"]
    search_fields = ["filename", "checksum"]
    exclude = ["content"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(BulkRenewalReceipt)
class BulkRenewalReceiptAdmin(admin.ModelAdmin):
    """Admin interface for BulkRenewalReceipt model."""

    list_display = ["payment_token", "organization", "status", "years", "amount", "currency", "created_at"]
    list_filter = ["status", "currency"]
    search_fields = ["payment_token", "charge_reference", "organization__name"]
    readonly_fields = ["id", "previous_expiries", "new_expiries", "created_at", "updated_at", "completed_at"]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Admin interface for AuditLog model."""

    list_display = ["action", "entity_type", "entity_id", "organization_id", "created_at"]
    list_filter = ["entity_type", "action"]
    search_fields = ["entity_id", "action"]
    readonly_fields = ["id", "organization_id", "entity_type", "entity_id", "action", "changes", "created_at"]
