"""
Device API views.

These endpoints let an organization:
- List and register devices in the fleets it can see
- Issue grace tokens and remove devices
- Ask how a device would be renewed
- Renew a batch of devices against a payment token
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from opentelemetry.trace import Status, StatusCode
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.authentication import acting_organization_id
from api.v1.devices.serializers import (
    BulkRenewalResultSerializer,
    BulkRenewRequestSerializer,
    ClientScopeQuerySerializer,
    DeviceRecordSerializer,
    DeviceSerializer,
    RegisterDeviceRequestSerializer,
    RenewalPathSerializer,
)
from core.infrastructure.providers import get_geocoder
from core.instrumentation import get_tracer
from devices.application.commands.device_lifecycle import (
    IssueGraceTokenCommand,
    RemoveDeviceCommand,
)
from devices.application.commands.register_device import RegisterDeviceCommand
from devices.application.handlers.device_lifecycle_handlers import (
    IssueGraceTokenHandler,
    RemoveDeviceHandler,
)
from devices.application.handlers.fleet_query_handlers import (
    ListDevicesHandler,
    RenewalPathHandler,
)
from devices.application.handlers.register_device_handler import RegisterDeviceHandler
from devices.application.queries.fleet_queries import ListDevicesQuery, RenewalPathQuery
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)
from renewals.application.commands.bulk_renew import BulkRenewCommand
from renewals.application.handlers.bulk_renewal_handler import BulkRenewHandler
from renewals.infrastructure.repositories.django_bulk_renewal_ledger import (
    DjangoBulkRenewalLedger,
)

# Initialize repositories (in production, use DI container)
_device_registry = DjangoDeviceRegistry()
_organization_repo = DjangoOrganizationRepository()
_ledger = DjangoBulkRenewalLedger()

tracer = get_tracer(__name__)

CLIENT_ID_PARAMETER = OpenApiParameter(
    name="client_id",
    type=str,
    location=OpenApiParameter.QUERY,
    required=False,
    description="Restrict to one managed client organization",
)


class DeviceListView(APIView):
    """List the visible fleet or register a device."""

    @extend_schema(
        operation_id="list_devices",
        summary="List Devices",
        description=(
            "Devices the calling organization can see, ordered by expiry date. "
            "Each device carries its resolved status and the actions available now."
        ),
        tags=["Devices"],
        parameters=[CLIENT_ID_PARAMETER],
        responses={
            200: DeviceSerializer(many=True),
            401: {"description": "Unauthorized - Missing or invalid API key"},
            404: {"description": "Client not found"},
        },
    )
    def get(self, request: Request) -> Response:
        return async_to_sync(self._handle_list)(request)

    async def _handle_list(self, request: Request) -> Response:
        with tracer.start_as_current_span("list_devices") as span:
            params = ClientScopeQuerySerializer(data=request.query_params)
            params.is_valid(raise_exception=True)
            actor_id = acting_organization_id(request)
            span.set_attribute("organization.id", str(actor_id))

            handler = ListDevicesHandler(_device_registry, _organization_repo)
            result = await handler.handle(
                ListDevicesQuery(actor_id=actor_id, client_id=params.validated_data.get("client_id"))
            )

            span.set_attribute("devices.count", len(result))
            span.set_status(Status(StatusCode.OK))
            return Response(DeviceSerializer(result, many=True).data)

    @extend_schema(
        operation_id="register_device",
        summary="Register Device",
        description=(
            "Add a device to the caller's fleet or a child's fleet. Without coordinates "
            "the location label is geocoded."
        ),
        tags=["Devices"],
        request=RegisterDeviceRequestSerializer,
        responses={
            201: DeviceRecordSerializer,
            400: {"description": "Bad Request"},
            403: {"description": "Not permitted"},
            502: {"description": "Geocoding failed"},
        },
    )
    def post(self, request: Request) -> Response:
        return async_to_sync(self._handle_register)(request)

    async def _handle_register(self, request: Request) -> Response:
        with tracer.start_as_current_span("register_device") as span:
            serializer = RegisterDeviceRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            actor_id = acting_organization_id(request)

            command = RegisterDeviceCommand(
                actor_id=actor_id,
                organization_id=data.get("organization_id") or actor_id,
                serial_number=data["serial_number"],
                name=data.get("name", ""),
                location_label=data["location"],
                expiry_date=data["expiry_date"],
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
            )
            span.set_attribute("organization.id", str(command.organization_id))
            span.set_attribute("geocoded", command.latitude is None)

            handler = RegisterDeviceHandler(_device_registry, _organization_repo, get_geocoder())
            device = await handler.handle(command)

            span.set_attribute("device.id", str(device.id))
            span.set_status(Status(StatusCode.OK))
            return Response(DeviceRecordSerializer(device).data, status=status.HTTP_201_CREATED)


class DeviceDetailView(APIView):
    """Remove a device."""

    @extend_schema(
        operation_id="remove_device",
        summary="Remove Device",
        description="Remove an EXPIRED or SUSPENDED device from the fleet.",
        tags=["Devices"],
        responses={
            204: None,
            400: {"description": "Device is still licensed"},
            403: {"description": "Not permitted"},
            404: {"description": "Device not found"},
        },
    )
    def delete(self, request: Request, device_id) -> Response:
        return async_to_sync(self._handle_remove)(request, device_id)

    async def _handle_remove(self, request: Request, device_id) -> Response:
        with tracer.start_as_current_span("remove_device") as span:
            span.set_attribute("device.id", str(device_id))
            handler = RemoveDeviceHandler(_device_registry, _organization_repo)
            await handler.handle(
                RemoveDeviceCommand(actor_id=acting_organization_id(request), device_id=device_id)
            )
            span.set_status(Status(StatusCode.OK))
            return Response(status=status.HTTP_204_NO_CONTENT)


class GraceTokenView(APIView):
    """Issue a grace token for an expired device."""

    @extend_schema(
        operation_id="issue_grace_token",
        summary="Issue Grace Token",
        description="Keep an EXPIRED device operating for the configured grace period.",
        tags=["Devices"],
        request=None,
        responses={
            200: DeviceRecordSerializer,
            400: {"description": "Device is not expired or already in grace"},
            403: {"description": "Not permitted"},
            404: {"description": "Device not found"},
        },
    )
    def post(self, request: Request, device_id) -> Response:
        return async_to_sync(self._handle_grace)(request, device_id)

    async def _handle_grace(self, request: Request, device_id) -> Response:
        with tracer.start_as_current_span("issue_grace_token") as span:
            span.set_attribute("device.id", str(device_id))
            handler = IssueGraceTokenHandler(_device_registry, _organization_repo)
            device = await handler.handle(
                IssueGraceTokenCommand(actor_id=acting_organization_id(request), device_id=device_id)
            )
            span.set_attribute("grace_token_expiry", device.grace_token_expiry.isoformat())
            span.set_status(Status(StatusCode.OK))
            return Response(DeviceRecordSerializer(device).data)


class RenewalPathView(APIView):
    """Report how the caller would renew a device."""

    @extend_schema(
        operation_id="renewal_path",
        summary="Renewal Path",
        description=(
            "The policy decision for renewing this device: the action, whether it is "
            "allowed, and where a request would be sent."
        ),
        tags=["Devices"],
        responses={200: RenewalPathSerializer, 404: {"description": "Device not found"}},
    )
    def get(self, request: Request, device_id) -> Response:
        return async_to_sync(self._handle_path)(request, device_id)

    async def _handle_path(self, request: Request, device_id) -> Response:
        with tracer.start_as_current_span("renewal_path") as span:
            span.set_attribute("device.id", str(device_id))
            handler = RenewalPathHandler(_device_registry, _organization_repo)
            path = await handler.handle(
                RenewalPathQuery(actor_id=acting_organization_id(request), device_id=device_id)
            )
            span.set_attribute("allowed", path.allowed)
            return Response(RenewalPathSerializer(path).data)


class BulkRenewView(APIView):
    """Renew a batch of devices."""

    @extend_schema(
        operation_id="bulk_renew",
        summary="Bulk Renew",
        description=(
            "Charge the payment token and extend each device's expiry by the given "
            "number of years. Replaying the same token returns the original result "
            "without charging or extending again."
        ),
        tags=["Devices"],
        request=BulkRenewRequestSerializer,
        responses={
            200: BulkRenewalResultSerializer,
            400: {"description": "Bad Request"},
            402: {"description": "Payment declined"},
            403: {"description": "Only directly billed parents renew"},
            404: {"description": "Device not found"},
            409: {"description": "Payment token reused for a different renewal"},
            503: {"description": "Payment gateway unavailable"},
        },
    )
    def post(self, request: Request) -> Response:
        return async_to_sync(self._handle_bulk_renew)(request)

    async def _handle_bulk_renew(self, request: Request) -> Response:
        with tracer.start_as_current_span("bulk_renew") as span:
            serializer = BulkRenewRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            actor_id = acting_organization_id(request)
            span.set_attribute("organization.id", str(actor_id))
            span.set_attribute("devices.count", len(data["device_ids"]))
            span.set_attribute("years", data["years"])

            handler = BulkRenewHandler(_ledger, _organization_repo, _device_registry)
            result = await handler.handle(
                BulkRenewCommand(
                    actor_id=actor_id,
                    device_ids=data["device_ids"],
                    years=data["years"],
                    payment_token=data["payment_token"],
                )
            )

            span.set_attribute("receipt.id", str(result.receipt_id))
            span.set_attribute("replayed", result.replayed)
            span.set_status(Status(StatusCode.OK))
            return Response(BulkRenewalResultSerializer(result).data)
