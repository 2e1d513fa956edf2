"""
Device model.
"""

import uuid

from django.db import models


class Device(models.Model):
    """
    A licensed device in an organization's fleet.

    Status is not stored; it is derived from expiry_date at read time.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="devices",
    )
    serial_number = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    location_label = models.CharField(max_length=255)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    expiry_date = models.DateField(db_index=True)
    grace_token_expiry = models.DateField(null=True, blank=True)
    suspended = models.BooleanField(
        default=False,
        help_text="Set by the registry operator; overrides the date-derived status",
    )
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "devices"
        ordering = ["expiry_date", "name"]
        indexes = [
            models.Index(fields=["organization", "expiry_date"]),
            models.Index(fields=["serial_number"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(grace_token_expiry__isnull=True)
                | models.Q(grace_token_expiry__gt=models.F("expiry_date")),
                name="device_grace_after_expiry",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.serial_number})"
