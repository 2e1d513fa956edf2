"""
RenewalRequest, QuoteArtifact, BulkRenewalReceipt and AuditLog models.
"""

import uuid

from django.db import models


class RenewalRequest(models.Model):
    """
    A renewal or quote request awaiting (or past) resolution.

    Rows are never deleted; status moves from pending exactly once.
    """

    TYPE_CHOICES = [
        ("renewal", "Renewal"),
        ("quote", "Quote"),
    ]

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
        ("quoted", "Quoted"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    requester = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="filed_requests",
    )
    subject = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="covering_requests",
        help_text="Organization whose devices the request covers",
    )
    addressee = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="incoming_requests",
    )
    device_ids = models.JSONField(default=list, help_text="Ordered device UUIDs")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    notes = models.TextField(blank=True, default="")
    response_message = models.TextField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="resolved_requests",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        db_table = "renewal_requests"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["addressee", "status"]),
            models.Index(fields=["requester", "created_at"]),
            models.Index(fields=["subject", "created_at"]),
        ]

    def __str__(self):
        return f"{self.type} request {self.id} ({self.status})"


class QuoteArtifact(models.Model):
    """
    Write-once quote document attached to a quoted request.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request = models.OneToOneField(
        RenewalRequest,
        on_delete=models.PROTECT,
        related_name="quote_artifact",
    )
    content = models.BinaryField()
    content_type = models.CharField(max_length=100)
    filename = models.CharField(max_length=255)
    checksum = models.CharField(max_length=64, help_text="SHA-256 of content")
    margin_percent = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, null=True, blank=True)
    line_items = models.JSONField(default=list)
    created_at = models.DateTimeField()

    class Meta:
        db_table = "quote_artifacts"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Quote {self.filename} for request {self.request_id}"

    def save(self, *args, **kwargs):
        """Insert only; stored quotes never change."""
        if not self._state.adding:
            raise ValueError("Quote artifacts are immutable")
        kwargs["force_insert"] = True
        super().save(*args, **kwargs)


class BulkRenewalReceipt(models.Model):
    """
    Idempotency record for a bulk renewal, one per payment token.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("charged", "Charged"),
        ("completed", "Completed"),
        ("declined", "Declined"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment_token = models.CharField(max_length=255, unique=True)
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="bulk_renewals",
    )
    device_ids = models.JSONField(help_text="Sorted device UUIDs")
    years = models.PositiveSmallIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    charge_reference = models.CharField(max_length=255, null=True, blank=True)
    failure_reason = models.TextField(null=True, blank=True)
    previous_expiries = models.JSONField(default=dict)
    new_expiries = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "bulk_renewal_receipts"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization", "created_at"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self):
        return f"Bulk renewal {self.payment_token} ({self.status})"


class AuditLog(models.Model):
    """
    Immutable audit trail of renewal-related changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization_id = models.UUIDField(null=True, blank=True, db_index=True)
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=64)
    action = models.CharField(max_length=64)
    changes = models.JSONField(default=dict, help_text="Details of the change")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["created_at"]),
            models.Index(fields=["action"]),
        ]

    def __str__(self):
        return f"{self.action} - {self.entity_type} {self.entity_id}"
