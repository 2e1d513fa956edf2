"""
Renewal request API views.

Children and reseller-billed parents file requests here; parents and
resellers resolve them by approving, rejecting or answering with a quote.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from opentelemetry.trace import Status, StatusCode
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.authentication import acting_organization_id
from api.v1.requests.serializers import (
    CreateRenewalRequestSerializer,
    GenerateQuoteSerializer,
    QuoteArtifactSerializer,
    RenewalRequestSerializer,
    RequestViewQuerySerializer,
    ResolutionSerializer,
    RespondWithQuoteSerializer,
)
from core.instrumentation import get_tracer
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)
from renewals.application.commands.generate_quote import GenerateQuoteCommand
from renewals.application.commands.request_commands import (
    ApproveRequestCommand,
    CreateRenewalRequestCommand,
    RejectRequestCommand,
    RespondWithQuoteCommand,
)
from renewals.application.handlers.quote_handlers import (
    GenerateQuoteHandler,
    GetQuoteArtifactHandler,
)
from renewals.application.handlers.request_lifecycle_handlers import (
    ApproveRequestHandler,
    CreateRenewalRequestHandler,
    ListRequestsHandler,
    RejectRequestHandler,
    RespondWithQuoteHandler,
)
from renewals.application.queries.request_queries import (
    INCOMING_VIEW,
    GetQuoteArtifactQuery,
    ListRequestsQuery,
)
from renewals.infrastructure.repositories.django_renewal_request_repository import (
    DjangoRenewalRequestRepository,
)

# Initialize repositories (in production, use DI container)
_request_repo = DjangoRenewalRequestRepository()
_organization_repo = DjangoOrganizationRepository()
_device_registry = DjangoDeviceRegistry()

tracer = get_tracer(__name__)

RESOLUTION_ERRORS = {
    403: {"description": "Not permitted"},
    404: {"description": "Request not found"},
    409: {"description": "Request already resolved"},
}


class RenewalRequestListView(APIView):
    """List or create renewal requests."""

    @extend_schema(
        operation_id="list_requests",
        summary="List Requests",
        description=(
            "Requests newest first. The owner view holds requests the caller filed or "
            "that cover its devices; the incoming view holds requests it must resolve."
        ),
        tags=["Requests"],
        parameters=[
            OpenApiParameter(
                name="view",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=["owner", "incoming"],
            )
        ],
        responses={200: RenewalRequestSerializer(many=True)},
    )
    def get(self, request: Request) -> Response:
        params = RequestViewQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        return async_to_sync(list_requests)(request, params.validated_data["view"])

    @extend_schema(
        operation_id="create_request",
        summary="Create Request",
        description=(
            "File a renewal or quote request. The addressee is chosen by the policy: "
            "a child's request goes to its parent, a reseller-billed parent's to its reseller."
        ),
        tags=["Requests"],
        request=CreateRenewalRequestSerializer,
        responses={
            201: RenewalRequestSerializer,
            400: {"description": "Bad Request"},
            403: {"description": "Not permitted"},
            404: {"description": "Device not found"},
        },
    )
    def post(self, request: Request) -> Response:
        return async_to_sync(self._handle_create)(request)

    async def _handle_create(self, request: Request) -> Response:
        with tracer.start_as_current_span("create_renewal_request") as span:
            serializer = CreateRenewalRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            actor_id = acting_organization_id(request)
            span.set_attribute("organization.id", str(actor_id))
            span.set_attribute("request.type", data["type"])
            span.set_attribute("devices.count", len(data["device_ids"]))

            handler = CreateRenewalRequestHandler(_request_repo, _organization_repo, _device_registry)
            result = await handler.handle(
                CreateRenewalRequestCommand(
                    actor_id=actor_id,
                    request_type=data["type"],
                    device_ids=data["device_ids"],
                    notes=data["notes"],
                    on_behalf_of=data.get("on_behalf_of"),
                )
            )

            span.set_attribute("request.id", str(result.id))
            span.set_attribute("addressee.id", str(result.addressee_id))
            span.set_status(Status(StatusCode.OK))
            return Response(RenewalRequestSerializer(result).data, status=status.HTTP_201_CREATED)


class IncomingRequestListView(APIView):
    """Requests awaiting the caller's decision."""

    @extend_schema(
        operation_id="list_incoming_requests",
        summary="Incoming Requests",
        tags=["Requests"],
        responses={200: RenewalRequestSerializer(many=True)},
    )
    def get(self, request: Request) -> Response:
        return async_to_sync(list_requests)(request, INCOMING_VIEW)


async def list_requests(request: Request, view: str) -> Response:
    with tracer.start_as_current_span("list_requests") as span:
        actor_id = acting_organization_id(request)
        span.set_attribute("organization.id", str(actor_id))
        span.set_attribute("view", view)
        handler = ListRequestsHandler(_request_repo, _organization_repo)
        result = await handler.handle(ListRequestsQuery(actor_id=actor_id, view=view))
        span.set_attribute("requests.count", len(result))
        return Response(RenewalRequestSerializer(result, many=True).data)


class ApproveRequestView(APIView):
    """Approve a child's renewal request."""

    @extend_schema(
        operation_id="approve_request",
        summary="Approve Request",
        description="Record approval of a pending RENEWAL request. Devices are not renewed here.",
        tags=["Requests"],
        request=ResolutionSerializer,
        responses={200: RenewalRequestSerializer, **RESOLUTION_ERRORS},
    )
    def post(self, request: Request, request_id) -> Response:
        return async_to_sync(self._handle_approve)(request, request_id)

    async def _handle_approve(self, request: Request, request_id) -> Response:
        with tracer.start_as_current_span("approve_request") as span:
            serializer = ResolutionSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            span.set_attribute("request.id", str(request_id))
            handler = ApproveRequestHandler(_request_repo, _organization_repo, _device_registry)
            result = await handler.handle(
                ApproveRequestCommand(
                    actor_id=acting_organization_id(request),
                    request_id=request_id,
                    message=serializer.validated_data.get("message"),
                )
            )
            span.set_status(Status(StatusCode.OK))
            return Response(RenewalRequestSerializer(result).data)


class RejectRequestView(APIView):
    """Reject a request of either type."""

    @extend_schema(
        operation_id="reject_request",
        summary="Reject Request",
        tags=["Requests"],
        request=ResolutionSerializer,
        responses={200: RenewalRequestSerializer, **RESOLUTION_ERRORS},
    )
    def post(self, request: Request, request_id) -> Response:
        return async_to_sync(self._handle_reject)(request, request_id)

    async def _handle_reject(self, request: Request, request_id) -> Response:
        with tracer.start_as_current_span("reject_request") as span:
            serializer = ResolutionSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            span.set_attribute("request.id", str(request_id))
            handler = RejectRequestHandler(_request_repo, _organization_repo, _device_registry)
            result = await handler.handle(
                RejectRequestCommand(
                    actor_id=acting_organization_id(request),
                    request_id=request_id,
                    message=serializer.validated_data.get("message"),
                )
            )
            span.set_status(Status(StatusCode.OK))
            return Response(RenewalRequestSerializer(result).data)


class RespondWithQuoteView(APIView):
    """Answer a request with a document prepared outside the service."""

    @extend_schema(
        operation_id="respond_with_quote",
        summary="Respond With Quote",
        description="Attach a base64-encoded quote document and mark the request QUOTED.",
        tags=["Requests"],
        request=RespondWithQuoteSerializer,
        responses={200: RenewalRequestSerializer, 400: {"description": "Bad Request"}, **RESOLUTION_ERRORS},
    )
    def post(self, request: Request, request_id) -> Response:
        return async_to_sync(self._handle_respond)(request, request_id)

    async def _handle_respond(self, request: Request, request_id) -> Response:
        with tracer.start_as_current_span("respond_with_quote") as span:
            serializer = RespondWithQuoteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            span.set_attribute("request.id", str(request_id))
            span.set_attribute("artifact.size", len(data["artifact"]))

            handler = RespondWithQuoteHandler(_request_repo, _organization_repo, _device_registry)
            result = await handler.handle(
                RespondWithQuoteCommand(
                    actor_id=acting_organization_id(request),
                    request_id=request_id,
                    content=data["artifact"],
                    content_type=data["content_type"],
                    filename=data.get("filename") or "",
                    message=data.get("message"),
                )
            )
            span.set_status(Status(StatusCode.OK))
            return Response(RenewalRequestSerializer(result).data)


class GenerateQuoteView(APIView):
    """Price, render and send a quote for a request."""

    @extend_schema(
        operation_id="generate_quote",
        summary="Generate Quote",
        description=(
            "Price the request's devices at the given margin (default: the reseller's), "
            "render the quote document and answer the request with it."
        ),
        tags=["Quotes"],
        request=GenerateQuoteSerializer,
        responses={
            200: RenewalRequestSerializer,
            400: {"description": "Bad Request"},
            502: {"description": "Rendering failed"},
            **RESOLUTION_ERRORS,
        },
    )
    def post(self, request: Request, request_id) -> Response:
        return async_to_sync(self._handle_generate)(request, request_id)

    async def _handle_generate(self, request: Request, request_id) -> Response:
        with tracer.start_as_current_span("generate_quote") as span:
            serializer = GenerateQuoteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            span.set_attribute("request.id", str(request_id))

            handler = GenerateQuoteHandler(_request_repo, _organization_repo, _device_registry)
            result = await handler.handle(
                GenerateQuoteCommand(
                    actor_id=acting_organization_id(request),
                    request_id=request_id,
                    margin_percent=data.get("margin"),
                    device_ids=data["device_ids"],
                    message=data.get("message"),
                )
            )

            span.set_attribute("quote_artifact.id", str(result.quote_artifact_id))
            span.set_status(Status(StatusCode.OK))
            return Response(RenewalRequestSerializer(result).data)


class QuoteArtifactView(APIView):
    """Fetch the stored quote of a request."""

    @extend_schema(
        operation_id="get_quote",
        summary="Get Quote",
        description="The quote document and prices exactly as they were issued.",
        tags=["Quotes"],
        responses={200: QuoteArtifactSerializer, 404: {"description": "Request or quote not found"}},
    )
    def get(self, request: Request, request_id) -> Response:
        return async_to_sync(self._handle_get)(request, request_id)

    async def _handle_get(self, request: Request, request_id) -> Response:
        with tracer.start_as_current_span("get_quote") as span:
            span.set_attribute("request.id", str(request_id))
            handler = GetQuoteArtifactHandler(_request_repo, _organization_repo)
            artifact = await handler.handle(
                GetQuoteArtifactQuery(actor_id=acting_organization_id(request), request_id=request_id)
            )
            span.set_attribute("quote_artifact.id", str(artifact.id))
            return Response(QuoteArtifactSerializer(artifact).data)
