"""
Organization API views.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.authentication import acting_organization_id
from api.v1.organizations.serializers import OrganizationSerializer, QuoteSettingsSerializer
from core.instrumentation import get_tracer
from organizations.application.commands.update_quote_settings import UpdateQuoteSettingsCommand
from organizations.application.handlers.organization_handlers import (
    GetOrganizationHandler,
    UpdateQuoteSettingsHandler,
)
from organizations.application.queries.get_organization import GetOrganizationQuery
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)

_organization_repo = DjangoOrganizationRepository()

tracer = get_tracer(__name__)


class CurrentOrganizationView(APIView):
    """Profile of the organization behind the API key."""

    @extend_schema(
        operation_id="current_organization",
        summary="Current Organization",
        tags=["Organizations"],
        responses={200: OrganizationSerializer},
    )
    def get(self, request: Request) -> Response:
        handler = GetOrganizationHandler(_organization_repo)
        organization = async_to_sync(handler.handle)(
            GetOrganizationQuery(actor_id=acting_organization_id(request))
        )
        return Response(OrganizationSerializer(organization).data)


class QuoteSettingsView(APIView):
    """Reseller quote settings."""

    @extend_schema(
        operation_id="update_quote_settings",
        summary="Update Quote Settings",
        description="Change the default margin used for new quotes. Issued quotes keep theirs.",
        tags=["Organizations"],
        request=QuoteSettingsSerializer,
        responses={
            200: OrganizationSerializer,
            400: {"description": "Bad Request"},
            403: {"description": "Only resellers have quote settings"},
        },
    )
    def patch(self, request: Request) -> Response:
        return async_to_sync(self._handle_update)(request)

    async def _handle_update(self, request: Request) -> Response:
        with tracer.start_as_current_span("update_quote_settings") as span:
            serializer = QuoteSettingsSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            margin = serializer.validated_data["default_margin_percent"]
            span.set_attribute("default_margin_percent", str(margin))
            handler = UpdateQuoteSettingsHandler(_organization_repo)
            organization = await handler.handle(
                UpdateQuoteSettingsCommand(
                    actor_id=acting_organization_id(request),
                    default_margin_percent=margin,
                )
            )
            return Response(OrganizationSerializer(organization).data)
