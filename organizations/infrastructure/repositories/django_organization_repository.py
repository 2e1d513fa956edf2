"""
Django implementation of OrganizationRepository port.

This adapter converts between the organization variants and the single
Organization table.
"""

import uuid
from decimal import Decimal
from typing import Iterable, List, Optional

from asgiref.sync import sync_to_async

from core.domain.value_objects import BillingMode
from organizations.domain.organization import (
    ChildOrganization,
    Organization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.infrastructure.models import Organization as OrganizationModel
from organizations.ports.organization_repository import OrganizationRepository


def organization_to_domain(model: OrganizationModel) -> Organization:
    """
    Convert Django model to the matching organization variant.

    Args:
        model: Django Organization model

    Returns:
        ParentOrganization, ChildOrganization or ResellerOrganization
    """
    common = {
        "id": model.id,
        "name": model.name,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
    }
    if model.type == "parent":
        return ParentOrganization(
            billing_mode=BillingMode(model.billing_mode),
            reseller_id=model.reseller_id,
            **common,
        )
    if model.type == "child":
        return ChildOrganization(parent_id=model.parent_id, **common)
    if model.type == "reseller":
        margin = model.default_margin_percent
        return ResellerOrganization(
            default_margin_percent=Decimal(margin) if margin is not None else Decimal("20"),
            **common,
        )
    raise ValueError(f"Unknown organization type: {model.type}")


class DjangoOrganizationRepository(OrganizationRepository):
    """
    Django ORM implementation of OrganizationRepository.
    """

    def _to_domain(self, model: OrganizationModel) -> Organization:
        return organization_to_domain(model)

    def _apply(self, model: OrganizationModel, organization: Organization) -> None:
        model.name = organization.name
        model.type = organization.type.value
        model.billing_mode = None
        model.parent_id = None
        model.reseller_id = None
        model.default_margin_percent = None
        if isinstance(organization, ParentOrganization):
            model.billing_mode = organization.billing_mode.value
            model.reseller_id = organization.reseller_id
        elif isinstance(organization, ChildOrganization):
            model.parent_id = organization.parent_id
        elif isinstance(organization, ResellerOrganization):
            model.default_margin_percent = organization.default_margin_percent

    @sync_to_async
    def save(self, organization: Organization) -> Organization:
        """
        Save an organization entity.

        Args:
            organization: Organization entity to save

        Returns:
            Saved organization entity
        """
        # pylint: disable=no-member
        model = OrganizationModel.objects.filter(id=organization.id).first()
        if model is None:
            model = OrganizationModel(id=organization.id)
        self._apply(model, organization)
        model.save()
        return self._to_domain(model)

    @sync_to_async
    def find_by_id(self, organization_id: uuid.UUID) -> Optional[Organization]:
        """
        Find an organization by ID.

        Args:
            organization_id: Organization UUID

        Returns:
            Organization entity or None if not found
        """
        try:
            # pylint: disable=no-member
            return self._to_domain(OrganizationModel.objects.get(id=organization_id))
        except OrganizationModel.DoesNotExist:  # pylint: disable=no-member
            return None

    @sync_to_async
    def find_many(self, organization_ids: Iterable[uuid.UUID]) -> List[Organization]:
        # pylint: disable=no-member
        qs = OrganizationModel.objects.filter(id__in=list(organization_ids))
        return [self._to_domain(model) for model in qs]

    @sync_to_async
    def find_children(self, parent_id: uuid.UUID) -> List[Organization]:
        # pylint: disable=no-member
        qs = OrganizationModel.objects.filter(type="child", parent_id=parent_id).order_by("name")
        return [self._to_domain(model) for model in qs]

    @sync_to_async
    def find_managed_by_reseller(self, reseller_id: uuid.UUID) -> List[Organization]:
        # pylint: disable=no-member
        qs = OrganizationModel.objects.filter(type="parent", reseller_id=reseller_id).order_by(
            "name"
        )
        return [self._to_domain(model) for model in qs]
