"""
Quote preview API view.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.authentication import acting_organization_id
from api.v1.quotes.serializers import QuotePreviewRequestSerializer
from api.v1.requests.serializers import QuoteSerializer
from core.instrumentation import get_tracer
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)
from renewals.application.handlers.quote_handlers import QuotePreviewHandler
from renewals.application.queries.request_queries import QuotePreviewQuery

_organization_repo = DjangoOrganizationRepository()
_device_registry = DjangoDeviceRegistry()

tracer = get_tracer(__name__)


class QuotePreviewView(APIView):
    """Price a client's devices without issuing a quote."""

    @extend_schema(
        operation_id="preview_quote",
        summary="Preview Quote",
        description=(
            "Price the given devices (or the client's whole fleet) at a margin. "
            "Nothing is rendered or stored."
        ),
        tags=["Quotes"],
        request=QuotePreviewRequestSerializer,
        responses={
            200: QuoteSerializer,
            400: {"description": "Bad Request"},
            403: {"description": "Not permitted"},
            404: {"description": "Client or device not found"},
        },
    )
    def post(self, request: Request) -> Response:
        return async_to_sync(self._handle_preview)(request)

    async def _handle_preview(self, request: Request) -> Response:
        with tracer.start_as_current_span("preview_quote") as span:
            serializer = QuotePreviewRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            span.set_attribute("client.id", str(data["client_id"]))

            handler = QuotePreviewHandler(_organization_repo, _device_registry)
            quote = await handler.handle(
                QuotePreviewQuery(
                    actor_id=acting_organization_id(request),
                    client_id=data["client_id"],
                    device_ids=data["device_ids"],
                    margin_percent=data.get("margin"),
                )
            )
            span.set_attribute("quote.lines", len(quote.line_items))
            return Response(QuoteSerializer(quote).data)
