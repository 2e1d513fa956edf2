"""
Unit tests for the renewal request lifecycle handlers.
"""

import asyncio
import uuid

import pytest
import pytest_asyncio

from core.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DeviceNotFoundError,
    RenewalRequestNotFoundError,
    ValidationError,
)
from core.domain.value_objects import RequestStatus, RequestType
from renewals.application.commands.request_commands import (
    ApproveRequestCommand,
    CreateRenewalRequestCommand,
    RejectRequestCommand,
    RespondWithQuoteCommand,
)
from renewals.application.handlers.request_lifecycle_handlers import (
    ApproveRequestHandler,
    CreateRenewalRequestHandler,
    ListRequestsHandler,
    RejectRequestHandler,
    RespondWithQuoteHandler,
)
from renewals.application.queries.request_queries import ListRequestsQuery
from renewals.domain.events import (
    RenewalRequestApproved,
    RenewalRequestCreated,
    RenewalRequestQuoted,
)


@pytest.fixture
def create_handler(requests_repo, orgs, registry, events, clock):
    return CreateRenewalRequestHandler(requests_repo, orgs, registry, event_bus=events, clock=clock)


@pytest.fixture
def approve_handler(requests_repo, orgs, registry, events):
    return ApproveRequestHandler(requests_repo, orgs, registry, event_bus=events)


@pytest.fixture
def reject_handler(requests_repo, orgs, registry, events):
    return RejectRequestHandler(requests_repo, orgs, registry, event_bus=events)


@pytest.fixture
def respond_handler(requests_repo, orgs, registry, events):
    return RespondWithQuoteHandler(requests_repo, orgs, registry, event_bus=events)


@pytest_asyncio.fixture
async def child_request(hierarchy, add_device, create_handler):
    """A pending renewal request from Fabrikam North to Fabrikam Group."""
    device = add_device(hierarchy.direct_child, days=-2)
    command = CreateRenewalRequestCommand(
        actor_id=hierarchy.direct_child.id,
        request_type=RequestType.RENEWAL,
        device_ids=[device.id],
        notes="Branch kiosk expired",
    )
    return await create_handler.handle(command)


def respond_command(actor, request_id, content=b"%PDF-1.4 uploaded"):
    return RespondWithQuoteCommand(
        actor_id=actor.id,
        request_id=request_id,
        content=content,
        content_type="application/pdf",
        filename="quote.pdf",
        message="Quote attached",
    )


@pytest.mark.asyncio
class TestCreateRenewalRequestHandler:
    """Test cases for CreateRenewalRequestHandler."""

    async def test_child_request_goes_to_parent(self, hierarchy, add_device, create_handler, events):
        device = add_device(hierarchy.direct_child, days=-2)

        dto = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.RENEWAL, [device.id])
        )

        assert dto.status == "pending"
        assert dto.type == "renewal"
        assert dto.addressee_id == hierarchy.direct_parent.id
        assert dto.addressee_name == "Fabrikam Group"
        assert dto.device_ids == [device.id]
        assert len(events.of_type(RenewalRequestCreated)) == 1

    async def test_reseller_only_parent_quote_goes_to_reseller(self, hierarchy, add_device, create_handler):
        device = add_device(hierarchy.ro_parent, days=20)

        dto = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.ro_parent.id, RequestType.QUOTE, [device.id])
        )

        assert dto.addressee_id == hierarchy.reseller.id
        assert dto.type == "quote"

    async def test_request_without_devices(self, hierarchy, create_handler):
        dto = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.RENEWAL, notes="all of them")
        )

        assert dto.device_ids == []
        assert dto.notes == "all of them"

    async def test_duplicate_device_ids_collapse(self, hierarchy, add_device, create_handler):
        device = add_device(hierarchy.direct_child, days=5)

        dto = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.RENEWAL, [device.id, device.id])
        )

        assert dto.device_ids == [device.id]

    async def test_parent_files_on_behalf_of_child(self, hierarchy, add_device, create_handler):
        device = add_device(hierarchy.ro_child, days=-1)

        dto = await create_handler.handle(
            CreateRenewalRequestCommand(
                hierarchy.ro_parent.id,
                RequestType.QUOTE,
                [device.id],
                on_behalf_of=hierarchy.ro_child.id,
            )
        )

        assert dto.requester_id == hierarchy.ro_parent.id
        assert dto.subject_id == hierarchy.ro_child.id
        assert dto.addressee_id == hierarchy.reseller.id

    async def test_on_behalf_of_requires_own_child(self, hierarchy, create_handler):
        with pytest.raises(AuthorizationError):
            await create_handler.handle(
                CreateRenewalRequestCommand(
                    hierarchy.ro_parent.id, RequestType.QUOTE, on_behalf_of=hierarchy.direct_child.id
                )
            )

    async def test_devices_must_belong_to_subject(self, hierarchy, add_device, create_handler):
        own = add_device(hierarchy.ro_parent, days=-1)

        with pytest.raises(DeviceNotFoundError):
            await create_handler.handle(
                CreateRenewalRequestCommand(
                    hierarchy.ro_parent.id,
                    RequestType.QUOTE,
                    [own.id],
                    on_behalf_of=hierarchy.ro_child.id,
                )
            )

    async def test_direct_parent_cannot_request(self, hierarchy, create_handler):
        with pytest.raises(AuthorizationError):
            await create_handler.handle(
                CreateRenewalRequestCommand(hierarchy.direct_parent.id, RequestType.RENEWAL)
            )

    async def test_child_cannot_request_quote(self, hierarchy, create_handler):
        with pytest.raises(AuthorizationError):
            await create_handler.handle(
                CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.QUOTE)
            )

    async def test_foreign_device_not_found(self, hierarchy, add_device, create_handler):
        device = add_device(hierarchy.stranger, days=-1)

        with pytest.raises(DeviceNotFoundError):
            await create_handler.handle(
                CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.RENEWAL, [device.id])
            )

    async def test_suspended_device_invalid(self, hierarchy, add_device, create_handler):
        device = add_device(hierarchy.direct_child, suspended=True)

        with pytest.raises(ValidationError):
            await create_handler.handle(
                CreateRenewalRequestCommand(hierarchy.direct_child.id, RequestType.RENEWAL, [device.id])
            )


class TestResolution:
    """Test cases for approve, reject and respond."""

    @pytest.mark.asyncio
    async def test_approve(self, hierarchy, child_request, approve_handler, registry, events):
        before = {d.id: d.expiry_date for d in registry.devices.values()}

        dto = await approve_handler.handle(
            ApproveRequestCommand(hierarchy.direct_parent.id, child_request.id, "Approved")
        )

        assert dto.status == "approved"
        assert dto.response_message == "Approved"
        assert dto.resolved_at is not None
        assert {d.id: d.expiry_date for d in registry.devices.values()} == before
        assert len(events.of_type(RenewalRequestApproved)) == 1

    @pytest.mark.asyncio
    async def test_second_approve_conflicts(self, hierarchy, child_request, approve_handler):
        command = ApproveRequestCommand(hierarchy.direct_parent.id, child_request.id)
        await approve_handler.handle(command)

        with pytest.raises(ConflictError):
            await approve_handler.handle(command)

    @pytest.mark.asyncio
    async def test_concurrent_approvals_one_wins(self, hierarchy, child_request, approve_handler, requests_repo):
        command = ApproveRequestCommand(hierarchy.direct_parent.id, child_request.id)

        results = await asyncio.gather(
            approve_handler.handle(command),
            approve_handler.handle(command),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], ConflictError)
        assert requests_repo.requests[child_request.id].status is RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approve_after_reject_conflicts(self, hierarchy, child_request, approve_handler, reject_handler):
        await reject_handler.handle(RejectRequestCommand(hierarchy.direct_parent.id, child_request.id, "No budget"))

        with pytest.raises(ConflictError):
            await approve_handler.handle(ApproveRequestCommand(hierarchy.direct_parent.id, child_request.id))

    @pytest.mark.asyncio
    async def test_only_addressee_resolves(self, hierarchy, child_request, approve_handler, reject_handler):
        with pytest.raises(AuthorizationError):
            await approve_handler.handle(ApproveRequestCommand(hierarchy.ro_parent.id, child_request.id))
        with pytest.raises(AuthorizationError):
            await reject_handler.handle(RejectRequestCommand(hierarchy.direct_child.id, child_request.id))

    @pytest.mark.asyncio
    async def test_missing_request(self, hierarchy, approve_handler):
        with pytest.raises(RenewalRequestNotFoundError):
            await approve_handler.handle(ApproveRequestCommand(hierarchy.direct_parent.id, uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_reseller_responds_to_quote_request(
        self, hierarchy, add_device, create_handler, respond_handler, approve_handler, requests_repo, events
    ):
        device = add_device(hierarchy.ro_parent, days=-1)
        request = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.ro_parent.id, RequestType.QUOTE, [device.id])
        )

        dto = await respond_handler.handle(respond_command(hierarchy.reseller, request.id))

        assert dto.status == "quoted"
        assert dto.quote_artifact_id is not None
        artifact = requests_repo.artifacts[request.id]
        assert artifact.content == b"%PDF-1.4 uploaded"
        assert artifact.id == dto.quote_artifact_id
        assert len(events.of_type(RenewalRequestQuoted)) == 1

        with pytest.raises(AuthorizationError):
            await approve_handler.handle(ApproveRequestCommand(hierarchy.reseller.id, request.id))
        with pytest.raises(ConflictError):
            await respond_handler.handle(respond_command(hierarchy.reseller, request.id))

    @pytest.mark.asyncio
    async def test_reseller_only_parent_escalates_child_request(
        self, hierarchy, add_device, create_handler, respond_handler
    ):
        device = add_device(hierarchy.ro_child, days=3)
        request = await create_handler.handle(
            CreateRenewalRequestCommand(hierarchy.ro_child.id, RequestType.RENEWAL, [device.id])
        )

        dto = await respond_handler.handle(respond_command(hierarchy.ro_parent, request.id))

        assert dto.status == "quoted"
        assert dto.type == "renewal"

    @pytest.mark.asyncio
    async def test_direct_parent_cannot_respond_with_quote(self, hierarchy, child_request, respond_handler):
        with pytest.raises(AuthorizationError):
            await respond_handler.handle(respond_command(hierarchy.direct_parent, child_request.id))

    @pytest.mark.asyncio
    async def test_empty_document_rejected(self, hierarchy, child_request, respond_handler):
        with pytest.raises(ValidationError):
            await respond_handler.handle(respond_command(hierarchy.ro_parent, child_request.id, content=b""))


@pytest.mark.asyncio
class TestListRequestsHandler:
    """Test cases for ListRequestsHandler."""

    async def test_owner_and_incoming_views(self, hierarchy, add_device, create_handler, requests_repo, orgs):
        device = add_device(hierarchy.ro_child, days=-1)
        on_behalf = await create_handler.handle(
            CreateRenewalRequestCommand(
                hierarchy.ro_parent.id, RequestType.QUOTE, [device.id], on_behalf_of=hierarchy.ro_child.id
            )
        )
        handler = ListRequestsHandler(requests_repo, orgs)

        child_view = await handler.handle(ListRequestsQuery(hierarchy.ro_child.id, "owner"))
        parent_view = await handler.handle(ListRequestsQuery(hierarchy.ro_parent.id, "owner"))
        reseller_view = await handler.handle(ListRequestsQuery(hierarchy.reseller.id, "incoming"))
        reseller_own = await handler.handle(ListRequestsQuery(hierarchy.reseller.id, "owner"))

        assert [r.id for r in child_view] == [on_behalf.id]
        assert [r.id for r in parent_view] == [on_behalf.id]
        assert [r.id for r in reseller_view] == [on_behalf.id]
        assert reseller_own == []

    async def test_unknown_view(self, hierarchy, requests_repo, orgs):
        handler = ListRequestsHandler(requests_repo, orgs)

        with pytest.raises(ValidationError):
            await handler.handle(ListRequestsQuery(hierarchy.reseller.id, "everything"))
