"""
In-memory fakes for handler tests.

The fakes implement the same ports as the Django adapters so handlers can
be exercised without a database.
"""

import hashlib
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

from core.domain.exceptions import (
    ConflictError,
    DeviceNotFoundError,
    NotFoundError,
    PaymentDeclinedError,
    RenewalRequestNotFoundError,
    TransientExternalServiceError,
)
from core.domain.value_objects import BillingMode, Location, RequestStatus
from devices.domain.device import Device
from devices.ports.device_registry import DeviceRegistry
from devices.ports.geocoder import Coordinates, Geocoder
from organizations.domain.organization import (
    ChildOrganization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.ports.organization_repository import OrganizationRepository
from renewals.domain.bulk_renewal import BulkRenewalReceipt, ReceiptStatus
from renewals.domain.quote import RenderedDocument
from renewals.ports.bulk_renewal_ledger import BulkRenewalLedger
from renewals.ports.document_renderer import DocumentRenderer
from renewals.ports.payment_gateway import PaymentConfirmation, PaymentGateway
from renewals.ports.renewal_request_repository import RenewalRequestRepository

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


class FakeOrganizationRepository(OrganizationRepository):
    def __init__(self):
        self.organizations = {}

    async def save(self, organization):
        self.organizations[organization.id] = organization
        return organization

    async def find_by_id(self, organization_id):
        return self.organizations.get(organization_id)

    async def find_many(self, organization_ids):
        return [self.organizations[i] for i in organization_ids if i in self.organizations]

    async def find_children(self, parent_id):
        return sorted(
            (
                org
                for org in self.organizations.values()
                if isinstance(org, ChildOrganization) and org.parent_id == parent_id
            ),
            key=lambda org: org.name,
        )

    async def find_managed_by_reseller(self, reseller_id):
        return sorted(
            (
                org
                for org in self.organizations.values()
                if isinstance(org, ParentOrganization) and org.reseller_id == reseller_id
            ),
            key=lambda org: org.name,
        )


class FakeDeviceRegistry(DeviceRegistry):
    def __init__(self):
        self.devices: Dict[uuid.UUID, Device] = {}

    async def save(self, device):
        current = self.devices.get(device.id)
        if current is not None and current.version != device.version - 1:
            raise ConflictError(f"Device {device.id} was modified concurrently", code="DEVICE_MODIFIED")
        self.devices[device.id] = device
        return device

    async def find_by_id(self, device_id):
        return self.devices.get(device_id)

    async def find_many(self, device_ids):
        return [self.devices[i] for i in device_ids if i in self.devices]

    async def find_by_serial_number(self, serial_number):
        for device in self.devices.values():
            if device.serial_number == serial_number:
                return device
        return None

    async def list_by_organizations(self, organization_ids):
        wanted = set(organization_ids)
        return sorted(
            (d for d in self.devices.values() if d.org_id in wanted),
            key=lambda d: (d.expiry_date, d.name),
        )

    async def delete(self, device_id):
        return self.devices.pop(device_id, None) is not None

    def extend_now(self, device_ids, years, allowed_organization_ids):
        allowed = set(allowed_organization_ids)
        for device_id in device_ids:
            device = self.devices.get(device_id)
            if device is None or device.org_id not in allowed:
                raise DeviceNotFoundError(f"Device {device_id} not found")
        changes = {}
        for device_id in device_ids:
            renewed = self.devices[device_id].extended_by(years)
            changes[device_id] = {
                "previous": self.devices[device_id].expiry_date,
                "new": renewed.expiry_date,
            }
            self.devices[device_id] = renewed
        return changes


class FakeRenewalRequestRepository(RenewalRequestRepository):
    def __init__(self):
        self.requests = {}
        self.artifacts = {}

    async def add(self, request):
        self.requests[request.id] = request
        return request

    async def find_by_id(self, request_id):
        return self.requests.get(request_id)

    async def transition(self, resolved, artifact=None):
        current = self.requests.get(resolved.id)
        if current is None:
            raise RenewalRequestNotFoundError()
        if current.status is not RequestStatus.PENDING:
            raise ConflictError(f"Request {resolved.id} is already {current.status.value}")
        self.requests[resolved.id] = resolved
        if artifact is not None:
            self.artifacts[resolved.id] = artifact
        return resolved

    async def list_for_organizations(self, organization_ids):
        ids = set(organization_ids)
        found = [
            r
            for r in self.requests.values()
            if r.requester_org_id in ids or r.subject_org_id in ids
        ]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def list_addressed_to(self, organization_id):
        found = [r for r in self.requests.values() if r.addressee_org_id == organization_id]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def find_artifact(self, request_id):
        return self.artifacts.get(request_id)


class FakeBulkRenewalLedger(BulkRenewalLedger):
    def __init__(self, registry: FakeDeviceRegistry):
        self.registry = registry
        self.receipts: Dict[str, BulkRenewalReceipt] = {}
        self.completions = 0

    async def find(self, payment_token):
        return self.receipts.get(payment_token)

    async def claim(self, payment_token, organization_id, device_ids, years, amount, currency):
        if payment_token not in self.receipts:
            self.receipts[payment_token] = BulkRenewalReceipt(
                id=uuid.uuid4(),
                payment_token=payment_token,
                organization_id=organization_id,
                device_ids=tuple(device_ids),
                years=years,
                amount=amount,
                currency=currency,
                status=ReceiptStatus.PENDING,
                charge_reference=None,
                failure_reason=None,
            )
        return self.receipts[payment_token]

    def _get(self, payment_token):
        if payment_token not in self.receipts:
            raise NotFoundError(payment_token)
        return self.receipts[payment_token]

    async def mark_charged(self, payment_token, charge_reference):
        receipt = self._get(payment_token)
        if receipt.status is ReceiptStatus.PENDING:
            receipt = replace(receipt, status=ReceiptStatus.CHARGED, charge_reference=charge_reference)
            self.receipts[payment_token] = receipt
        return receipt

    async def mark_declined(self, payment_token, reason):
        receipt = self._get(payment_token)
        if receipt.status is ReceiptStatus.PENDING:
            receipt = replace(receipt, status=ReceiptStatus.DECLINED, failure_reason=reason)
            self.receipts[payment_token] = receipt
        return receipt

    async def complete(self, payment_token, allowed_organization_ids):
        receipt = self._get(payment_token)
        if receipt.status is ReceiptStatus.COMPLETED:
            return receipt, False
        if receipt.status is not ReceiptStatus.CHARGED:
            raise ConflictError("not charged")
        changes = self.registry.extend_now(receipt.device_ids, receipt.years, allowed_organization_ids)
        receipt = replace(
            receipt,
            status=ReceiptStatus.COMPLETED,
            previous_expiries={k: v["previous"] for k, v in changes.items()},
            new_expiries={k: v["new"] for k, v in changes.items()},
        )
        self.receipts[payment_token] = receipt
        self.completions += 1
        return receipt, True


class FakePaymentGateway(PaymentGateway):
    """Confirms every token once; ``failures`` transient errors come first."""

    def __init__(self, failures: int = 0, decline: bool = False):
        self.failures = failures
        self.decline = decline
        self.calls: List[str] = []
        self.charged: Dict[str, PaymentConfirmation] = {}

    async def charge(self, payment_token, amount, currency, description):
        self.calls.append(payment_token)
        if self.failures:
            self.failures -= 1
            raise TransientExternalServiceError("gateway timeout")
        if self.decline:
            raise PaymentDeclinedError("Insufficient funds")
        if payment_token not in self.charged:
            self.charged[payment_token] = PaymentConfirmation(
                reference=f"ch_{len(self.charged) + 1}", amount=amount, currency=currency
            )
        return self.charged[payment_token]


class FakeRenderer(DocumentRenderer):
    def __init__(self):
        self.rendered = []

    async def render(self, quote, reference, client_name, issuer_name, message=None):
        self.rendered.append((quote, reference, client_name, issuer_name, message))
        body = f"{reference}|{client_name}|{quote.grand_total}".encode()
        return RenderedDocument(content=body, content_type="text/plain", filename=f"quote-{reference}.txt")


class FakeGeocoder(Geocoder):
    def __init__(self, coordinates: Optional[Coordinates] = None, error: Exception = None):
        self.coordinates = coordinates or Coordinates(51.5072, -0.1276)
        self.error = error
        self.queries = []

    async def geocode(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.coordinates


class RecordingEventBus:
    def __init__(self):
        self.events = []

    def subscribe(self, event_type, handler):
        pass

    async def publish(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


def build_device(org_id, expiry: date, suspended=False, grace: Optional[date] = None, name="Kiosk"):
    device = Device.create(
        org_id=org_id,
        serial_number=f"SN-{uuid.uuid4().hex[:10].upper()}",
        name=name,
        location=Location("Leeds, UK", 53.8, -1.55),
        expiry_date=expiry,
    )
    return replace(device, suspended=suspended, grace_token_expiry=grace)


def sha256(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def orgs():
    return FakeOrganizationRepository()


@pytest.fixture
def registry():
    return FakeDeviceRegistry()


@pytest.fixture
def requests_repo():
    return FakeRenewalRequestRepository()


@pytest.fixture
def fake_ledger(registry):
    return FakeBulkRenewalLedger(registry)


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def events():
    return RecordingEventBus()


@pytest.fixture
def hierarchy(orgs):
    """
    reseller -> ro_parent (reseller-only) -> ro_child
    direct_parent (direct billing) -> direct_child
    stranger: unrelated direct parent
    """
    reseller = ResellerOrganization.create("Northwind Resellers", default_margin_percent=Decimal("20"))
    ro_parent = ParentOrganization.create(
        "Contoso Holdings", billing_mode=BillingMode.RESELLER_ONLY, reseller_id=reseller.id
    )
    ro_child = ChildOrganization.create("Contoso Leeds", parent_id=ro_parent.id)
    direct_parent = ParentOrganization.create("Fabrikam Group")
    direct_child = ChildOrganization.create("Fabrikam North", parent_id=direct_parent.id)
    stranger = ParentOrganization.create("Unrelated Ltd")
    for org in (reseller, ro_parent, ro_child, direct_parent, direct_child, stranger):
        orgs.organizations[org.id] = org
    return SimpleNamespace(
        reseller=reseller,
        ro_parent=ro_parent,
        ro_child=ro_child,
        direct_parent=direct_parent,
        direct_child=direct_child,
        stranger=stranger,
    )


@pytest.fixture
def add_device(registry):
    """Factory adding a device expiring ``days`` after the fixed test date."""

    def add(organization, days=200, suspended=False, grace_days=None, name="Kiosk"):
        expiry = TODAY + timedelta(days=days)
        grace = TODAY + timedelta(days=grace_days) if grace_days is not None else None
        device = build_device(organization.id, expiry, suspended=suspended, grace=grace, name=name)
        registry.devices[device.id] = device
        return device

    return add


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def failing_geocoder():
    return FakeGeocoder(error=TransientExternalServiceError("geocoder down"))


@pytest.fixture
def flaky_gateway():
    """Gateway that times out twice before confirming."""
    return FakePaymentGateway(failures=2)


@pytest.fixture
def declining_gateway():
    return FakePaymentGateway(decline=True)


@pytest.fixture
def down_gateway():
    return FakePaymentGateway(failures=100)
