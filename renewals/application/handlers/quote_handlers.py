"""
Quote generation handlers.

The coordinator prices a request's devices, renders the document and
answers the request with it. Prices are frozen into the stored artifact,
so reading a quote later never re-prices from live data.
"""
import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import Action, RequestTarget, require
from core.conf import renewal_setting
from core.domain.exceptions import (
    DeviceNotFoundError,
    OrganizationNotFoundError,
    QuoteArtifactNotFoundError,
    ValidationError,
)
from core.infrastructure.events import event_bus as default_event_bus
from core.infrastructure.providers import get_document_renderer
from core.infrastructure.retry import call_with_retry
from core.metrics import quotes_generated_total
from devices.application.resolver import configured_resolver
from devices.domain.device import Device
from devices.ports.device_registry import DeviceRegistry
from organizations.domain.organization import Organization, ResellerOrganization
from organizations.ports.organization_repository import OrganizationRepository
from renewals.application.commands.generate_quote import GenerateQuoteCommand
from renewals.application.dto.renewal_dto import (
    QuoteArtifactDTO,
    QuoteDTO,
    QuoteLineItemDTO,
    RenewalRequestDTO,
)
from renewals.application.handlers.request_lifecycle_handlers import (
    load_request,
    to_dtos,
)
from renewals.application.queries.request_queries import GetQuoteArtifactQuery, QuotePreviewQuery
from renewals.domain.events import RenewalRequestQuoted
from renewals.domain.quote import Quote, QuoteArtifact, price_devices
from renewals.ports.document_renderer import DocumentRenderer
from renewals.ports.renewal_request_repository import RenewalRequestRepository

logger = logging.getLogger(__name__)


def effective_margin(actor: Organization, margin_percent: Optional[Decimal]) -> Decimal:
    """Explicit margin, else the reseller's default, else the configured default."""
    if margin_percent is not None:
        return Decimal(str(margin_percent))
    if isinstance(actor, ResellerOrganization):
        return actor.default_margin_percent
    return renewal_setting("DEFAULT_MARGIN_PERCENT")


def price(devices: List[Device], margin_percent: Decimal) -> Quote:
    """
    Price devices with the configured base price and currency.

    Raises:
        ValidationError: If there are no devices or the margin is out of range
    """
    try:
        return price_devices(
            devices,
            base_price=renewal_setting("QUOTE_BASE_PRICE"),
            margin_percent=margin_percent,
            currency=renewal_setting("CURRENCY"),
            max_margin_percent=renewal_setting("MAX_MARGIN_PERCENT"),
        )
    except ValueError as e:
        raise ValidationError(str(e), code="INVALID_QUOTE") from e


def quote_to_dto(quote) -> QuoteDTO:
    """Build a QuoteDTO from a Quote or a stored QuoteArtifact."""
    return QuoteDTO(
        margin_percent=quote.margin_percent,
        grand_total=quote.grand_total,
        currency=quote.currency,
        line_items=[
            QuoteLineItemDTO(
                device_id=item.device_id,
                serial_number=item.serial_number,
                description=item.description,
                base_price=item.base_price,
                line_total=item.line_total,
            )
            for item in quote.line_items
        ],
    )


async def devices_of(
    device_registry: DeviceRegistry,
    device_ids: List[uuid.UUID],
    organization_id: uuid.UUID,
) -> List[Device]:
    """
    Load devices in the given order, requiring each to belong to ``organization_id``.

    Raises:
        DeviceNotFoundError: If a device is missing or owned by someone else
    """
    ordered = list(dict.fromkeys(device_ids))
    found = {d.id: d for d in await device_registry.find_many(ordered)}
    for device_id in ordered:
        device = found.get(device_id)
        if device is None or device.org_id != organization_id:
            raise DeviceNotFoundError(f"Device {device_id} not found")
    return [found[device_id] for device_id in ordered]


class GenerateQuoteHandler:
    """Handler for GenerateQuoteCommand."""

    def __init__(
        self,
        request_repository: RenewalRequestRepository,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
        renderer: Optional[DocumentRenderer] = None,
        event_bus=None,
    ):
        """Initialize handler with repositories and the document renderer."""
        self.request_repository = request_repository
        self.organization_repository = organization_repository
        self.device_registry = device_registry
        self.renderer = renderer or get_document_renderer()
        self.event_bus = event_bus or default_event_bus
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def handle(self, command: GenerateQuoteCommand) -> RenewalRequestDTO:
        """
        Price, render and send a quote.

        Args:
            command: GenerateQuoteCommand

        Returns:
            RenewalRequestDTO of the QUOTED request

        Raises:
            RenewalRequestNotFoundError: If the request does not exist
            AuthorizationError: If the actor may not process quotes for it
            DeviceNotFoundError: If a quoted device is missing or foreign
            ValidationError: If there is nothing to price or the margin is invalid
            ExternalServiceError: If rendering fails
            ConflictError: If the request was resolved meanwhile
        """
        actor = await self.targets.organization(command.actor_id)
        request = await load_request(self.request_repository, command.request_id)
        require(actor, Action.PROCESS_QUOTE, await self.targets.request_target(request))

        device_ids = list(request.device_ids) or list(command.device_ids or [])
        if not device_ids:
            raise ValidationError(
                "The request lists no devices; pass device_ids to quote", code="NO_DEVICES"
            )
        devices = await devices_of(self.device_registry, device_ids, request.subject_org_id)
        quote = price(devices, effective_margin(actor, command.margin_percent))

        client = await self.targets.organization(request.subject_org_id)
        reference = str(request.id).split("-")[0].upper()
        document = await call_with_retry(
            "quote.render",
            lambda: self.renderer.render(
                quote,
                reference=reference,
                client_name=client.name,
                issuer_name=actor.name,
                message=command.message,
            ),
        )

        artifact = QuoteArtifact.create(request.id, document, quote)
        saved = await self.request_repository.transition(
            request.respond_with_quote(actor.id, artifact.id, command.message), artifact
        )
        quotes_generated_total.inc()
        logger.info(
            "Quote generated: %s %s for %d device(s)",
            quote.currency,
            quote.grand_total,
            quote.device_count,
            extra={"request_id": str(saved.id), "margin_percent": str(quote.margin_percent)},
        )

        await self.event_bus.publish(
            RenewalRequestQuoted(
                request_id=saved.id,
                organization_id=actor.id,
                request_type=saved.type.value,
                quote_artifact_id=artifact.id,
                grand_total=quote.grand_total,
                currency=quote.currency,
            )
        )
        return (await to_dtos([saved], self.organization_repository))[0]


class QuotePreviewHandler:
    """Handler for QuotePreviewQuery."""

    def __init__(
        self,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
    ):
        self.device_registry = device_registry
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    async def handle(self, query: QuotePreviewQuery) -> QuoteDTO:
        """
        Price a client's devices without rendering or storing anything.

        Without device IDs the client's whole fleet is priced.

        Raises:
            AuthorizationError: If the actor may not process quotes
            OrganizationNotFoundError: If the client is not one the actor serves
            DeviceNotFoundError: If a device is missing or not the client's
            ValidationError: If there is nothing to price or the margin is invalid
        """
        actor = await self.targets.organization(query.actor_id)
        require(actor, Action.PROCESS_QUOTE, await self.targets.organization_target(query.client_id))

        if query.device_ids:
            devices = await devices_of(self.device_registry, query.device_ids, query.client_id)
        else:
            devices = await self.device_registry.list_by_organizations([query.client_id])
        return quote_to_dto(price(devices, effective_margin(actor, query.margin_percent)))


class GetQuoteArtifactHandler:
    """Handler for GetQuoteArtifactQuery."""

    def __init__(
        self,
        request_repository: RenewalRequestRepository,
        organization_repository: OrganizationRepository,
    ):
        self.request_repository = request_repository
        self.organization_repository = organization_repository

    async def _organization(self, organization_id: uuid.UUID) -> Organization:
        organization = await self.organization_repository.find_by_id(organization_id)
        if organization is None:
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")
        return organization

    async def handle(self, query: GetQuoteArtifactQuery) -> QuoteArtifactDTO:
        """
        Return the stored quote exactly as it was issued.

        Raises:
            RenewalRequestNotFoundError: If the request does not exist or the
                actor is not its requester, subject or addressee
            QuoteArtifactNotFoundError: If the request has no quote
        """
        actor = await self._organization(query.actor_id)
        request = await load_request(self.request_repository, query.request_id)
        requester = await self._organization(request.requester_org_id)
        require(actor, Action.VIEW_REQUEST, RequestTarget(request=request, requester=requester))
        artifact = await self.request_repository.find_artifact(request.id)
        if artifact is None:
            raise QuoteArtifactNotFoundError(f"Request {request.id} has no quote")
        return QuoteArtifactDTO(
            id=artifact.id,
            request_id=artifact.request_id,
            content=artifact.content,
            content_type=artifact.content_type,
            filename=artifact.filename,
            checksum=artifact.checksum,
            quote=quote_to_dto(artifact),
            created_at=artifact.created_at,
        )
