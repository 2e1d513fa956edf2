"""
Unit tests for quote generation, preview and retrieval.
"""

import uuid
from decimal import Decimal

import pytest

from core.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DeviceNotFoundError,
    OrganizationNotFoundError,
    QuoteArtifactNotFoundError,
    RenewalRequestNotFoundError,
    TransientExternalServiceError,
    ValidationError,
)
from core.domain.value_objects import RequestStatus, RequestType
from renewals.application.commands.generate_quote import GenerateQuoteCommand
from renewals.application.handlers.quote_handlers import (
    GenerateQuoteHandler,
    GetQuoteArtifactHandler,
    QuotePreviewHandler,
)
from renewals.application.queries.request_queries import GetQuoteArtifactQuery, QuotePreviewQuery
from renewals.domain.events import RenewalRequestQuoted
from renewals.domain.quote import RenderedDocument
from renewals.domain.renewal_request import RenewalRequest
from renewals.ports.document_renderer import DocumentRenderer


class FlakyRenderer(DocumentRenderer):
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    async def render(self, quote, reference, client_name, issuer_name, message=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise TransientExternalServiceError("renderer busy")
        return RenderedDocument(b"%PDF-1.4", "application/pdf", f"quote-{reference}.pdf")


@pytest.fixture
def generate_handler(requests_repo, orgs, registry, renderer, events):
    return GenerateQuoteHandler(requests_repo, orgs, registry, renderer=renderer, event_bus=events)


@pytest.fixture
def quote_request(hierarchy, add_device, requests_repo):
    """Pending quote request from Contoso Holdings to its reseller, two devices."""

    def make(with_devices=True):
        devices = [
            add_device(hierarchy.ro_parent, days=-1, name="Atrium"),
            add_device(hierarchy.ro_parent, days=12, name="Canteen"),
        ]
        request = RenewalRequest.create(
            requester_org_id=hierarchy.ro_parent.id,
            addressee_org_id=hierarchy.reseller.id,
            request_type=RequestType.QUOTE,
            device_ids=tuple(d.id for d in devices) if with_devices else (),
        )
        requests_repo.requests[request.id] = request
        return request, devices

    return make


@pytest.mark.asyncio
class TestGenerateQuoteHandler:
    """Test cases for GenerateQuoteHandler."""

    async def test_generates_and_sends_quote(self, hierarchy, quote_request, generate_handler, requests_repo, renderer, events):
        request, devices = quote_request()

        dto = await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id, message="Best price"))

        assert dto.status == "quoted"
        assert dto.response_message == "Best price"
        artifact = requests_repo.artifacts[request.id]
        assert artifact.margin_percent == Decimal("20")
        assert artifact.grand_total == Decimal("240.00")
        assert [item.device_id for item in artifact.line_items] == [d.id for d in devices]

        quote, reference, client_name, issuer_name, message = renderer.rendered[0]
        assert reference == str(request.id).split("-")[0].upper()
        assert client_name == "Contoso Holdings"
        assert issuer_name == "Northwind Resellers"
        assert message == "Best price"

        quoted = events.of_type(RenewalRequestQuoted)
        assert quoted[0].grand_total == Decimal("240.00")

    async def test_explicit_margin(self, hierarchy, quote_request, generate_handler, requests_repo):
        request, _ = quote_request()

        await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id, margin_percent=Decimal("25")))

        assert requests_repo.artifacts[request.id].grand_total == Decimal("250.00")

    async def test_invalid_margin(self, hierarchy, quote_request, generate_handler, requests_repo):
        request, _ = quote_request()

        with pytest.raises(ValidationError):
            await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id, margin_percent=Decimal("-5")))
        assert requests_repo.requests[request.id].status is RequestStatus.PENDING

    async def test_request_without_devices_needs_device_ids(self, hierarchy, quote_request, generate_handler):
        request, devices = quote_request(with_devices=False)

        with pytest.raises(ValidationError) as exc_info:
            await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))
        assert exc_info.value.code == "NO_DEVICES"

        dto = await generate_handler.handle(
            GenerateQuoteCommand(hierarchy.reseller.id, request.id, device_ids=[devices[0].id])
        )
        assert dto.status == "quoted"

    async def test_foreign_device_ids_rejected(self, hierarchy, quote_request, generate_handler, add_device):
        request, _ = quote_request(with_devices=False)
        foreign = add_device(hierarchy.direct_parent)

        with pytest.raises(DeviceNotFoundError):
            await generate_handler.handle(
                GenerateQuoteCommand(hierarchy.reseller.id, request.id, device_ids=[foreign.id])
            )

    async def test_quote_is_frozen_after_margin_change(self, hierarchy, quote_request, generate_handler, requests_repo, orgs):
        request, _ = quote_request()
        await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))
        original = requests_repo.artifacts[request.id]

        orgs.organizations[hierarchy.reseller.id] = hierarchy.reseller.with_default_margin(Decimal("30"))
        stored = await GetQuoteArtifactHandler(requests_repo, orgs).handle(
            GetQuoteArtifactQuery(hierarchy.ro_parent.id, request.id)
        )

        assert stored.content == original.content
        assert stored.checksum == original.checksum
        assert stored.quote.margin_percent == Decimal("20")
        assert stored.quote.grand_total == Decimal("240.00")

    async def test_second_generation_conflicts(self, hierarchy, quote_request, generate_handler):
        request, _ = quote_request()
        await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))

        with pytest.raises(ConflictError):
            await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))

    async def test_direct_parent_cannot_generate(self, hierarchy, add_device, requests_repo, generate_handler):
        device = add_device(hierarchy.direct_child, days=-1)
        request = RenewalRequest.create(
            hierarchy.direct_child.id, hierarchy.direct_parent.id, RequestType.RENEWAL, (device.id,)
        )
        requests_repo.requests[request.id] = request

        with pytest.raises(AuthorizationError):
            await generate_handler.handle(GenerateQuoteCommand(hierarchy.direct_parent.id, request.id))

    async def test_renderer_retried_on_transient_failure(self, hierarchy, quote_request, requests_repo, orgs, registry, events):
        request, _ = quote_request()
        renderer = FlakyRenderer(failures=1)
        handler = GenerateQuoteHandler(requests_repo, orgs, registry, renderer=renderer, event_bus=events)

        dto = await handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))

        assert renderer.calls == 2
        assert dto.status == "quoted"

    async def test_renderer_outage_leaves_request_pending(self, hierarchy, quote_request, requests_repo, orgs, registry, events):
        request, _ = quote_request()
        handler = GenerateQuoteHandler(
            requests_repo, orgs, registry, renderer=FlakyRenderer(failures=10), event_bus=events
        )

        with pytest.raises(TransientExternalServiceError):
            await handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))

        assert requests_repo.requests[request.id].status is RequestStatus.PENDING
        assert request.id not in requests_repo.artifacts


@pytest.mark.asyncio
class TestQuotePreviewHandler:
    """Test cases for QuotePreviewHandler."""

    async def test_prices_whole_client_fleet(self, hierarchy, add_device, orgs, registry):
        add_device(hierarchy.ro_child, days=10)
        add_device(hierarchy.ro_child, days=-1)
        handler = QuotePreviewHandler(orgs, registry)

        quote = await handler.handle(QuotePreviewQuery(hierarchy.reseller.id, hierarchy.ro_child.id))

        assert len(quote.line_items) == 2
        assert quote.grand_total == Decimal("240.00")

    async def test_reseller_only_parent_uses_configured_default(self, hierarchy, add_device, orgs, registry):
        device = add_device(hierarchy.ro_child, days=10)
        handler = QuotePreviewHandler(orgs, registry)

        quote = await handler.handle(
            QuotePreviewQuery(hierarchy.ro_parent.id, hierarchy.ro_child.id, device_ids=[device.id], margin_percent=Decimal("5"))
        )

        assert quote.margin_percent == Decimal("5")
        assert quote.grand_total == Decimal("105.00")

    async def test_unmanaged_client_not_found(self, hierarchy, add_device, orgs, registry):
        add_device(hierarchy.direct_parent)
        handler = QuotePreviewHandler(orgs, registry)

        with pytest.raises(OrganizationNotFoundError):
            await handler.handle(QuotePreviewQuery(hierarchy.reseller.id, hierarchy.direct_parent.id))

    async def test_direct_parent_not_authorized(self, hierarchy, orgs, registry):
        handler = QuotePreviewHandler(orgs, registry)

        with pytest.raises(AuthorizationError):
            await handler.handle(QuotePreviewQuery(hierarchy.direct_parent.id, hierarchy.direct_child.id))

    async def test_empty_fleet_invalid(self, hierarchy, orgs, registry):
        handler = QuotePreviewHandler(orgs, registry)

        with pytest.raises(ValidationError):
            await handler.handle(QuotePreviewQuery(hierarchy.reseller.id, hierarchy.ro_parent.id))


@pytest.mark.asyncio
class TestGetQuoteArtifactHandler:
    """Test cases for GetQuoteArtifactHandler."""

    async def test_participants_only(self, hierarchy, quote_request, generate_handler, requests_repo, orgs):
        request, _ = quote_request()
        await generate_handler.handle(GenerateQuoteCommand(hierarchy.reseller.id, request.id))
        handler = GetQuoteArtifactHandler(requests_repo, orgs)

        for actor in (hierarchy.reseller, hierarchy.ro_parent):
            artifact = await handler.handle(GetQuoteArtifactQuery(actor.id, request.id))
            assert artifact.request_id == request.id

        with pytest.raises(RenewalRequestNotFoundError):
            await handler.handle(GetQuoteArtifactQuery(hierarchy.direct_parent.id, request.id))

    async def test_pending_request_has_no_quote(self, hierarchy, quote_request, requests_repo, orgs):
        request, _ = quote_request()

        with pytest.raises(QuoteArtifactNotFoundError):
            await GetQuoteArtifactHandler(requests_repo, orgs).handle(GetQuoteArtifactQuery(hierarchy.ro_parent.id, request.id))

    async def test_missing_request(self, hierarchy, requests_repo, orgs):
        with pytest.raises(RenewalRequestNotFoundError):
            await GetQuoteArtifactHandler(requests_repo, orgs).handle(GetQuoteArtifactQuery(hierarchy.ro_parent.id, uuid.uuid4()))
