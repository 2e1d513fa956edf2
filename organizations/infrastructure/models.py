"""
Organization and API key models.
"""

import hashlib
import secrets
import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Organization(models.Model):
    """
    A parent account, a child sub-account, or a reseller.

    billing_mode and reseller apply to parents only; parent applies to
    children only; default_margin_percent applies to resellers only.
    """

    TYPE_CHOICES = [
        ("parent", "Parent"),
        ("child", "Child"),
        ("reseller", "Reseller"),
    ]

    BILLING_MODE_CHOICES = [
        ("direct", "Direct"),
        ("reseller_only", "Reseller only"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, help_text="Organization display name")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    billing_mode = models.CharField(
        max_length=20,
        choices=BILLING_MODE_CHOICES,
        null=True,
        blank=True,
        help_text="Parent organizations only",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="children",
        help_text="Child organizations only",
    )
    reseller = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="managed_parents",
        help_text="Managing reseller of a parent organization",
    )
    default_margin_percent = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Reseller quote margin used when none is given",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "organizations"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["type"]),
            models.Index(fields=["parent"]),
            models.Index(fields=["reseller"]),
        ]

    def clean(self):
        """Validate the hierarchy shape for the organization type."""
        from django.core.exceptions import ValidationError

        if self.type == "parent":
            if not self.billing_mode:
                raise ValidationError("Parent organizations need a billing mode")
            if self.billing_mode == "reseller_only" and not self.reseller_id:
                raise ValidationError("Reseller-only parents must name a reseller")
            if self.parent_id:
                raise ValidationError("Parent organizations cannot have a parent")
        elif self.type == "child":
            if not self.parent_id:
                raise ValidationError("Child organizations need a parent")
            if self.billing_mode or self.reseller_id:
                raise ValidationError("Child organizations inherit billing from their parent")
        elif self.type == "reseller":
            if self.parent_id or self.reseller_id or self.billing_mode:
                raise ValidationError("Resellers sit outside the parent/child hierarchy")

    def save(self, *args, **kwargs):
        """Save organization with validation."""
        if self.type == "reseller" and self.default_margin_percent is None:
            self.default_margin_percent = Decimal("20")
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.type})"

    def generate_api_key(self):
        """
        Generate a new API key for this organization.

        Returns:
            ApiKey instance with _raw_key attribute set
        """
        return ApiKey.objects.create(organization=self)


class ApiKey(models.Model):
    """
    API keys for organization authentication.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="api_keys"
    )
    key_prefix = models.CharField(max_length=8, editable=False)
    key_hash = models.CharField(max_length=64, editable=False, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "organization_api_keys"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["key_hash"]),
        ]

    def __str__(self):
        return f"{self.organization.name} - {self.key_prefix}..."

    @staticmethod
    def hash_key(raw_key: str) -> str:
        return hashlib.sha256(raw_key.encode()).hexdigest()

    def save(self, *args, **kwargs):
        """Generate API key on first save."""
        if not self.key_hash:
            raw_key = secrets.token_urlsafe(32)
            self.key_prefix = raw_key[:8]
            self.key_hash = self.hash_key(raw_key)
            # Only available on the instance that created it
            self._raw_key = raw_key
        super().save(*args, **kwargs)

    def is_valid(self) -> bool:
        """
        Check if the API key is still valid.

        Returns:
            True if key is valid, False if expired
        """
        if self.expires_at and self.expires_at < timezone.now():
            return False
        return True

    def mark_used(self):
        """Update last_used_at timestamp."""
        self.last_used_at = timezone.now()
        self.save(update_fields=["last_used_at"])
