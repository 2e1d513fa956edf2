"""
Pytest configuration and shared fixtures.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from asgiref.sync import async_to_sync

from core.domain.value_objects import BillingMode, Location
from core.infrastructure.events import InMemoryEventBus
from devices.domain.device import Device
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.domain.organization import (
    ChildOrganization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)
from renewals.infrastructure.repositories.django_bulk_renewal_ledger import (
    DjangoBulkRenewalLedger,
)
from renewals.infrastructure.repositories.django_renewal_request_repository import (
    DjangoRenewalRequestRepository,
)


@pytest.fixture
def organization_repository():
    """Fixture for OrganizationRepository."""
    return DjangoOrganizationRepository()


@pytest.fixture
def device_registry():
    """Fixture for DeviceRegistry."""
    return DjangoDeviceRegistry()


@pytest.fixture
def request_repository():
    """Fixture for RenewalRequestRepository."""
    return DjangoRenewalRequestRepository()


@pytest.fixture
def ledger():
    """Fixture for BulkRenewalLedger."""
    return DjangoBulkRenewalLedger()


@pytest.fixture
def quiet_bus():
    """Event bus with no subscribers."""
    return InMemoryEventBus()


@pytest.fixture
def db_hierarchy(db, organization_repository):
    """
    Organizations saved in database.

    reseller -> ro_parent (reseller-only) -> ro_child
    direct_parent (direct billing) -> direct_child, other_child
    """
    save = async_to_sync(organization_repository.save)
    reseller = save(ResellerOrganization.create("Northwind Resellers"))
    ro_parent = save(
        ParentOrganization.create(
            "Contoso Holdings", billing_mode=BillingMode.RESELLER_ONLY, reseller_id=reseller.id
        )
    )
    ro_child = save(ChildOrganization.create("Contoso Leeds", parent_id=ro_parent.id))
    direct_parent = save(ParentOrganization.create("Fabrikam Group"))
    direct_child = save(ChildOrganization.create("Fabrikam North", parent_id=direct_parent.id))
    other_child = save(ChildOrganization.create("Fabrikam South", parent_id=direct_parent.id))
    return SimpleNamespace(
        reseller=reseller,
        ro_parent=ro_parent,
        ro_child=ro_child,
        direct_parent=direct_parent,
        direct_child=direct_child,
        other_child=other_child,
    )


@pytest.fixture
def make_db_device(db, device_registry):
    """Factory saving a device whose expiry is ``days`` from today."""
    save = async_to_sync(device_registry.save)

    def make(organization, days=200, suspended=False, name=None):
        serial = f"SN-{uuid.uuid4().hex[:10].upper()}"
        device = Device.create(
            org_id=organization.id,
            serial_number=serial,
            name=name or serial,
            location=Location("Leeds, UK", 53.8, -1.55),
            expiry_date=datetime.now(timezone.utc).date() + timedelta(days=days),
        )
        if suspended:
            device = replace(device, suspended=True)
        return save(device)

    return make


@pytest.fixture
def api_client():
    """Fixture for DRF API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def client_for(db):
    """Factory returning an APIClient authenticated as an organization."""
    from rest_framework.test import APIClient

    from organizations.infrastructure.models import ApiKey

    def make(organization):
        api_key = ApiKey.objects.create(organization_id=organization.id)  # pylint: disable=no-member
        client = APIClient()
        client.credentials(HTTP_X_API_KEY=api_key._raw_key)  # pylint: disable=protected-access
        return client

    return make
