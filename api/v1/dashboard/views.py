"""
Dashboard API views.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.authentication import acting_organization_id
from api.v1.dashboard.serializers import ClientOverviewSerializer, FleetStatsSerializer
from api.v1.devices.serializers import ClientScopeQuerySerializer
from api.v1.devices.views import CLIENT_ID_PARAMETER
from core.instrumentation import get_tracer
from devices.application.handlers.fleet_query_handlers import (
    ClientOverviewHandler,
    FleetStatsHandler,
)
from devices.application.queries.fleet_queries import ClientOverviewQuery, FleetStatsQuery
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)

_device_registry = DjangoDeviceRegistry()
_organization_repo = DjangoOrganizationRepository()

tracer = get_tracer(__name__)


class FleetStatsView(APIView):
    """Fleet status counts."""

    @extend_schema(
        operation_id="fleet_stats",
        summary="Fleet Statistics",
        description="Device counts per status across the caller's scope or one client.",
        tags=["Dashboard"],
        parameters=[CLIENT_ID_PARAMETER],
        responses={200: FleetStatsSerializer},
    )
    def get(self, request: Request) -> Response:
        return async_to_sync(self._handle_stats)(request)

    async def _handle_stats(self, request: Request) -> Response:
        with tracer.start_as_current_span("fleet_stats") as span:
            params = ClientScopeQuerySerializer(data=request.query_params)
            params.is_valid(raise_exception=True)
            actor_id = acting_organization_id(request)
            span.set_attribute("organization.id", str(actor_id))
            handler = FleetStatsHandler(_device_registry, _organization_repo)
            stats = await handler.handle(
                FleetStatsQuery(actor_id=actor_id, client_id=params.validated_data.get("client_id"))
            )
            return Response(FleetStatsSerializer(stats).data)


class ClientOverviewView(APIView):
    """Per-client totals for parents and resellers."""

    @extend_schema(
        operation_id="client_overview",
        summary="Client Overview",
        description=(
            "A parent's children or a reseller's managed parents, each with its "
            "device count and devices at risk."
        ),
        tags=["Dashboard"],
        responses={200: ClientOverviewSerializer(many=True)},
    )
    def get(self, request: Request) -> Response:
        return async_to_sync(self._handle_clients)(request)

    async def _handle_clients(self, request: Request) -> Response:
        with tracer.start_as_current_span("client_overview") as span:
            actor_id = acting_organization_id(request)
            span.set_attribute("organization.id", str(actor_id))
            handler = ClientOverviewHandler(_device_registry, _organization_repo)
            clients = await handler.handle(ClientOverviewQuery(actor_id=actor_id))
            span.set_attribute("clients.count", len(clients))
            return Response(ClientOverviewSerializer(clients, many=True).data)
