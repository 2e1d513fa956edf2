"""
Renewal request lifecycle handlers.

Handlers that create requests and move them from PENDING to a terminal
state. Every transition is authorized by the policy engine first and then
applied through the repository's compare-and-set, so a request resolved
concurrently by someone else surfaces as ConflictError.
"""
import logging
import uuid
from typing import List

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import Action, require
from core.domain.clock import Clock, utc_now
from core.domain.exceptions import (
    AuthorizationError,
    DeviceNotFoundError,
    OrganizationNotFoundError,
    RenewalRequestNotFoundError,
    ValidationError,
)
from core.domain.value_objects import RequestType
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import renewal_requests_total
from devices.application.resolver import configured_resolver
from devices.ports.device_registry import DeviceRegistry
from organizations.domain.organization import (
    ChildOrganization,
    Organization,
    ParentOrganization,
)
from organizations.ports.organization_repository import OrganizationRepository
from renewals.application.commands.request_commands import (
    ApproveRequestCommand,
    CreateRenewalRequestCommand,
    RejectRequestCommand,
    RespondWithQuoteCommand,
)
from renewals.application.dto.renewal_dto import RenewalRequestDTO
from renewals.application.queries.request_queries import (
    INCOMING_VIEW,
    OWNER_VIEW,
    ListRequestsQuery,
)
from renewals.domain.events import (
    RenewalRequestApproved,
    RenewalRequestCreated,
    RenewalRequestQuoted,
    RenewalRequestRejected,
)
from renewals.domain.quote import QuoteArtifact, RenderedDocument
from renewals.domain.renewal_request import RenewalRequest
from renewals.ports.renewal_request_repository import RenewalRequestRepository

logger = logging.getLogger(__name__)

REQUEST_ACTIONS = {
    RequestType.RENEWAL: Action.REQUEST_RENEWAL,
    RequestType.QUOTE: Action.REQUEST_QUOTE,
}


async def to_dtos(
    requests: List[RenewalRequest],
    organization_repository: OrganizationRepository,
) -> List[RenewalRequestDTO]:
    """Convert requests to DTOs, resolving requester and addressee names."""
    ids = set()
    for request in requests:
        ids.update((request.requester_org_id, request.addressee_org_id))
    names = {org.id: org.name for org in await organization_repository.find_many(ids)}
    return [
        RenewalRequestDTO(
            id=request.id,
            requester_id=request.requester_org_id,
            requester_name=names.get(request.requester_org_id, ""),
            subject_id=request.subject_org_id,
            addressee_id=request.addressee_org_id,
            addressee_name=names.get(request.addressee_org_id, ""),
            device_ids=list(request.device_ids),
            type=request.type.value,
            status=request.status.value,
            notes=request.notes,
            response_message=request.response_message,
            quote_artifact_id=request.quote_artifact_id,
            created_at=request.created_at,
            resolved_at=request.resolved_at,
        )
        for request in requests
    ]


async def load_request(
    repository: RenewalRequestRepository, request_id: uuid.UUID
) -> RenewalRequest:
    request = await repository.find_by_id(request_id)
    if request is None:
        raise RenewalRequestNotFoundError(f"Renewal request {request_id} not found")
    return request


class CreateRenewalRequestHandler:
    """Handler for CreateRenewalRequestCommand."""

    def __init__(
        self,
        request_repository: RenewalRequestRepository,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
        event_bus=None,
        clock: Clock = utc_now,
    ):
        """Initialize handler with repositories."""
        self.request_repository = request_repository
        self.organization_repository = organization_repository
        self.event_bus = event_bus or default_event_bus
        self.clock = clock
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def _subject(self, actor: Organization, on_behalf_of) -> Organization:
        if on_behalf_of is None or on_behalf_of == actor.id:
            return actor
        if not isinstance(actor, ParentOrganization):
            raise AuthorizationError("Only parent organizations can file requests on behalf of others")
        subject = await self.targets.organization(on_behalf_of)
        if not (isinstance(subject, ChildOrganization) and subject.parent_id == actor.id):
            raise AuthorizationError(f"Organization {on_behalf_of} is not one of your children")
        return subject

    async def handle(self, command: CreateRenewalRequestCommand) -> RenewalRequestDTO:
        """
        Handle create renewal request command.

        The addressee comes from the policy decision: a child's request
        goes to its parent, a reseller-billed parent's request goes to its
        reseller. A parent filing for a child is routed as its own.

        Args:
            command: CreateRenewalRequestCommand

        Returns:
            RenewalRequestDTO for the new PENDING request

        Raises:
            AuthorizationError: If the actor may not file this kind of request
            DeviceNotFoundError: If a device is missing or not the subject's
            ValidationError: If a device cannot be renewed
        """
        request_type = RequestType(command.request_type)
        device_ids = list(dict.fromkeys(command.device_ids or []))
        now = self.clock()

        actor = await self.targets.organization(command.actor_id)
        subject = await self._subject(actor, command.on_behalf_of)
        target = await self.targets.device_set_target(device_ids, now)
        decision = require(actor, REQUEST_ACTIONS[request_type], target)

        for item in target.devices:
            if item.device.org_id != subject.id:
                raise DeviceNotFoundError(f"Device {item.device.id} not found")
        if decision.addressee_id is None:
            raise ValidationError(f"{actor.name} has no organization to address requests to")

        request = RenewalRequest.create(
            requester_org_id=actor.id,
            addressee_org_id=decision.addressee_id,
            request_type=request_type,
            device_ids=tuple(device_ids),
            notes=command.notes,
            subject_org_id=subject.id,
        )
        saved = await self.request_repository.add(request)
        renewal_requests_total.labels(request_type=request_type.value, transition="created").inc()
        logger.info(
            "Renewal request created",
            extra={
                "request_id": str(saved.id),
                "requester_id": str(actor.id),
                "addressee_id": str(saved.addressee_org_id),
                "request_type": request_type.value,
            },
        )

        await self.event_bus.publish(
            RenewalRequestCreated(
                request_id=saved.id,
                organization_id=actor.id,
                addressee_id=saved.addressee_org_id,
                request_type=request_type.value,
                device_ids=list(saved.device_ids),
            )
        )
        return (await to_dtos([saved], self.organization_repository))[0]


class _ResolutionHandler:
    """Shared wiring for the handlers that resolve a pending request."""

    def __init__(
        self,
        request_repository: RenewalRequestRepository,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
        event_bus=None,
    ):
        self.request_repository = request_repository
        self.organization_repository = organization_repository
        self.event_bus = event_bus or default_event_bus
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def _authorized(self, actor_id: uuid.UUID, request_id: uuid.UUID, action: Action):
        actor = await self.targets.organization(actor_id)
        request = await load_request(self.request_repository, request_id)
        require(actor, action, await self.targets.request_target(request))
        return actor, request

    async def _applied(self, resolved: RenewalRequest, artifact=None) -> RenewalRequest:
        saved = await self.request_repository.transition(resolved, artifact)
        renewal_requests_total.labels(
            request_type=saved.type.value, transition=saved.status.value
        ).inc()
        logger.info(
            "Renewal request %s",
            saved.status.value,
            extra={"request_id": str(saved.id), "resolved_by": str(saved.resolved_by_org_id)},
        )
        return saved


class ApproveRequestHandler(_ResolutionHandler):
    """Handler for ApproveRequestCommand."""

    async def handle(self, command: ApproveRequestCommand) -> RenewalRequestDTO:
        """
        Approve a child's pending renewal request.

        Approval only records the decision; the parent renews the devices
        separately through a bulk renewal.

        Raises:
            RenewalRequestNotFoundError: If the request does not exist
            AuthorizationError: If the actor may not resolve the request
            ValidationError: If the request is a quote request
            ConflictError: If the request is no longer pending
        """
        actor, request = await self._authorized(
            command.actor_id, command.request_id, Action.APPROVE_REQUEST
        )
        saved = await self._applied(request.approve(actor.id, command.message))
        await self.event_bus.publish(
            RenewalRequestApproved(
                request_id=saved.id,
                organization_id=actor.id,
                request_type=saved.type.value,
                message=saved.response_message,
            )
        )
        return (await to_dtos([saved], self.organization_repository))[0]


class RejectRequestHandler(_ResolutionHandler):
    """Handler for RejectRequestCommand."""

    async def handle(self, command: RejectRequestCommand) -> RenewalRequestDTO:
        """
        Reject a pending request of either type.

        Raises:
            RenewalRequestNotFoundError: If the request does not exist
            AuthorizationError: If the actor may not resolve the request
            ConflictError: If the request is no longer pending
        """
        actor, request = await self._authorized(
            command.actor_id, command.request_id, Action.REJECT_REQUEST
        )
        saved = await self._applied(request.reject(actor.id, command.message))
        await self.event_bus.publish(
            RenewalRequestRejected(
                request_id=saved.id,
                organization_id=actor.id,
                request_type=saved.type.value,
                message=saved.response_message,
            )
        )
        return (await to_dtos([saved], self.organization_repository))[0]


class RespondWithQuoteHandler(_ResolutionHandler):
    """Handler for RespondWithQuoteCommand."""

    async def handle(self, command: RespondWithQuoteCommand) -> RenewalRequestDTO:
        """
        Answer a pending request with an uploaded quote document.

        The artifact is stored in the same transaction as the status
        change.

        Raises:
            ValidationError: If the document is empty
            RenewalRequestNotFoundError: If the request does not exist
            AuthorizationError: If the actor may not process quotes for it
            ConflictError: If the request is no longer pending
        """
        if not command.content:
            raise ValidationError("Quote document cannot be empty")
        actor, request = await self._authorized(
            command.actor_id, command.request_id, Action.PROCESS_QUOTE
        )
        artifact = QuoteArtifact.create(
            request.id,
            RenderedDocument(
                content=command.content,
                content_type=command.content_type or "application/octet-stream",
                filename=command.filename or f"quote-{request.id}",
            ),
        )
        saved = await self._applied(
            request.respond_with_quote(actor.id, artifact.id, command.message), artifact
        )
        await self.event_bus.publish(
            RenewalRequestQuoted(
                request_id=saved.id,
                organization_id=actor.id,
                request_type=saved.type.value,
                quote_artifact_id=artifact.id,
            )
        )
        return (await to_dtos([saved], self.organization_repository))[0]


class ListRequestsHandler:
    """Handler for ListRequestsQuery."""

    def __init__(
        self,
        request_repository: RenewalRequestRepository,
        organization_repository: OrganizationRepository,
    ):
        self.request_repository = request_repository
        self.organization_repository = organization_repository

    async def handle(self, query: ListRequestsQuery) -> List[RenewalRequestDTO]:
        """
        List requests newest first.

        The owner view holds requests the actor filed or that cover its
        devices; the incoming view holds requests it must resolve.

        Raises:
            OrganizationNotFoundError: If the actor does not exist
            ValidationError: If the view is unknown
        """
        actor = await self.organization_repository.find_by_id(query.actor_id)
        if actor is None:
            raise OrganizationNotFoundError(f"Organization {query.actor_id} not found")
        if query.view == OWNER_VIEW:
            requests = await self.request_repository.list_for_organizations([actor.id])
        elif query.view == INCOMING_VIEW:
            requests = await self.request_repository.list_addressed_to(actor.id)
        else:
            raise ValidationError(f"Unknown request view: {query.view}")
        return await to_dtos(requests, self.organization_repository)
