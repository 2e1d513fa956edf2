"""
Organization domain entities.

An organization is one of three variants. Behaviour that differs by
role lives on the variant, so callers never branch on a type tag
paired with optional fields.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from core.domain.value_objects import BillingMode, OrganizationType


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BaseOrganization:
    """Fields shared by every organization variant."""

    id: uuid.UUID
    name: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        """Validate organization entity."""
        if not self.name or len(self.name.strip()) == 0:
            raise ValueError("Organization name cannot be empty")
        if len(self.name) > 255:
            raise ValueError("Organization name too long")


@dataclass(frozen=True)
class ParentOrganization(BaseOrganization):
    """
    Top-level account that owns a fleet and manages child accounts.

    A RESELLER_ONLY parent transacts exclusively through ``reseller_id``.
    """

    billing_mode: BillingMode = BillingMode.DIRECT
    reseller_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        super().__post_init__()
        if self.billing_mode is BillingMode.RESELLER_ONLY and self.reseller_id is None:
            raise ValueError("A reseller-only parent must name its reseller")

    @property
    def type(self) -> OrganizationType:
        return OrganizationType.PARENT

    @property
    def pays_directly(self) -> bool:
        return self.billing_mode is BillingMode.DIRECT

    @classmethod
    def create(
        cls,
        name: str,
        billing_mode: BillingMode = BillingMode.DIRECT,
        reseller_id: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None,
    ) -> "ParentOrganization":
        """
        Create a new parent organization.

        Args:
            name: Display name
            billing_mode: DIRECT or RESELLER_ONLY
            reseller_id: Managing reseller (required for RESELLER_ONLY)
            organization_id: Optional UUID (generated if not provided)

        Returns:
            ParentOrganization entity
        """
        now = _now()
        return cls(
            id=organization_id or uuid.uuid4(),
            name=name.strip(),
            created_at=now,
            updated_at=now,
            billing_mode=billing_mode,
            reseller_id=reseller_id,
        )


@dataclass(frozen=True)
class ChildOrganization(BaseOrganization):
    """Sub-account whose billing always routes through its parent."""

    parent_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        super().__post_init__()
        if self.parent_id is None:
            raise ValueError("A child organization must have a parent")

    @property
    def type(self) -> OrganizationType:
        return OrganizationType.CHILD

    @classmethod
    def create(
        cls,
        name: str,
        parent_id: uuid.UUID,
        organization_id: Optional[uuid.UUID] = None,
    ) -> "ChildOrganization":
        now = _now()
        return cls(
            id=organization_id or uuid.uuid4(),
            name=name.strip(),
            created_at=now,
            updated_at=now,
            parent_id=parent_id,
        )


@dataclass(frozen=True)
class ResellerOrganization(BaseOrganization):
    """
    Independent billing intermediary.

    Has no fleet of its own; it only fulfils quote requests routed to it
    by the reseller-only parents it manages.
    """

    default_margin_percent: Decimal = Decimal("20")

    def __post_init__(self):
        super().__post_init__()
        if self.default_margin_percent < 0:
            raise ValueError("Default margin cannot be negative")

    @property
    def type(self) -> OrganizationType:
        return OrganizationType.RESELLER

    @classmethod
    def create(
        cls,
        name: str,
        default_margin_percent: Decimal = Decimal("20"),
        organization_id: Optional[uuid.UUID] = None,
    ) -> "ResellerOrganization":
        now = _now()
        return cls(
            id=organization_id or uuid.uuid4(),
            name=name.strip(),
            created_at=now,
            updated_at=now,
            default_margin_percent=Decimal(default_margin_percent),
        )

    def with_default_margin(self, margin_percent: Decimal) -> "ResellerOrganization":
        """
        Return a copy with a new default margin.

        Quotes already generated keep the margin they were priced with.
        """
        return replace(
            self,
            default_margin_percent=Decimal(margin_percent),
            updated_at=_now(),
        )


Organization = Union[ParentOrganization, ChildOrganization, ResellerOrganization]
