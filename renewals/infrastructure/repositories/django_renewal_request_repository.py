"""
Django implementation of RenewalRequestRepository port.

Transitions are conditional UPDATEs (``WHERE status = 'pending'``)
inside a transaction, so exactly one of several concurrent resolvers
succeeds.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, List, Optional

from asgiref.sync import sync_to_async
from django.db import transaction
from django.db.models import Q

from core.domain.exceptions import ConflictError, RenewalRequestNotFoundError
from core.domain.value_objects import RequestStatus, RequestType
from renewals.domain.quote import QuoteArtifact, QuoteLineItem
from renewals.domain.renewal_request import RenewalRequest
from renewals.infrastructure.models import QuoteArtifact as QuoteArtifactModel
from renewals.infrastructure.models import RenewalRequest as RenewalRequestModel
from renewals.ports.renewal_request_repository import RenewalRequestRepository

logger = logging.getLogger(__name__)


class DjangoRenewalRequestRepository(RenewalRequestRepository):
    """
    Django ORM implementation of RenewalRequestRepository.
    """

    def _to_domain(self, model: RenewalRequestModel, artifact_id: Optional[uuid.UUID]) -> RenewalRequest:
        """
        Convert Django model to domain entity.

        Args:
            model: Django RenewalRequest model
            artifact_id: ID of the attached quote artifact, if any

        Returns:
            RenewalRequest domain entity
        """
        return RenewalRequest(
            id=model.id,
            requester_org_id=model.requester_id,
            subject_org_id=model.subject_id,
            addressee_org_id=model.addressee_id,
            device_ids=tuple(uuid.UUID(value) for value in model.device_ids),
            type=RequestType(model.type),
            status=RequestStatus(model.status),
            notes=model.notes,
            response_message=model.response_message,
            quote_artifact_id=artifact_id,
            resolved_by_org_id=model.resolved_by_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
            resolved_at=model.resolved_at,
        )

    def _artifact_to_domain(self, model: QuoteArtifactModel) -> QuoteArtifact:
        return QuoteArtifact(
            id=model.id,
            request_id=model.request_id,
            content=bytes(model.content),
            content_type=model.content_type,
            filename=model.filename,
            checksum=model.checksum,
            margin_percent=Decimal(model.margin_percent) if model.margin_percent is not None else None,
            grand_total=Decimal(model.grand_total) if model.grand_total is not None else None,
            currency=model.currency,
            line_items=tuple(QuoteLineItem.from_dict(item) for item in model.line_items),
            created_at=model.created_at,
        )

    def _artifact_ids(self, request_ids: Iterable[uuid.UUID]) -> dict:
        # pylint: disable=no-member
        return dict(
            QuoteArtifactModel.objects.filter(request_id__in=list(request_ids)).values_list(
                "request_id", "id"
            )
        )

    def _load(self, queryset) -> List[RenewalRequest]:
        models = list(queryset)
        artifacts = self._artifact_ids(model.id for model in models)
        return [self._to_domain(model, artifacts.get(model.id)) for model in models]

    @sync_to_async
    def add(self, request: RenewalRequest) -> RenewalRequest:
        """
        Persist a newly created PENDING request.

        Args:
            request: RenewalRequest entity to insert

        Returns:
            Saved request entity
        """
        # pylint: disable=no-member
        model = RenewalRequestModel.objects.create(
            id=request.id,
            requester_id=request.requester_org_id,
            subject_id=request.subject_org_id,
            addressee_id=request.addressee_org_id,
            device_ids=[str(device_id) for device_id in request.device_ids],
            type=request.type.value,
            status=request.status.value,
            notes=request.notes,
            response_message=request.response_message,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )
        return self._to_domain(model, None)

    @sync_to_async
    def find_by_id(self, request_id: uuid.UUID) -> Optional[RenewalRequest]:
        # pylint: disable=no-member
        found = self._load(RenewalRequestModel.objects.filter(id=request_id))
        return found[0] if found else None

    @sync_to_async
    def transition(
        self,
        resolved: RenewalRequest,
        artifact: Optional[QuoteArtifact] = None,
    ) -> RenewalRequest:
        """
        Atomically move a PENDING request to ``resolved.status``.

        Raises:
            RenewalRequestNotFoundError: If the request does not exist
            ConflictError: If the request is no longer PENDING
        """
        with transaction.atomic():
            # pylint: disable=no-member
            updated = RenewalRequestModel.objects.filter(
                id=resolved.id, status=RequestStatus.PENDING.value
            ).update(
                status=resolved.status.value,
                response_message=resolved.response_message,
                resolved_by_id=resolved.resolved_by_org_id,
                resolved_at=resolved.resolved_at,
                updated_at=resolved.updated_at,
            )
            if updated == 0:
                current = RenewalRequestModel.objects.filter(id=resolved.id).first()
                if current is None:
                    raise RenewalRequestNotFoundError(f"Renewal request {resolved.id} not found")
                logger.info(
                    "Lost transition race on request %s (now %s)", resolved.id, current.status
                )
                raise ConflictError(
                    f"Request {resolved.id} is already {current.status}",
                    code="REQUEST_ALREADY_RESOLVED",
                )

            if artifact is not None:
                QuoteArtifactModel(
                    id=artifact.id,
                    request_id=resolved.id,
                    content=artifact.content,
                    content_type=artifact.content_type,
                    filename=artifact.filename,
                    checksum=artifact.checksum,
                    margin_percent=artifact.margin_percent,
                    grand_total=artifact.grand_total,
                    currency=artifact.currency,
                    line_items=[item.to_dict() for item in artifact.line_items],
                    created_at=artifact.created_at,
                ).save()

            return self._load(RenewalRequestModel.objects.filter(id=resolved.id))[0]

    @sync_to_async
    def list_for_organizations(
        self, organization_ids: Iterable[uuid.UUID]
    ) -> List[RenewalRequest]:
        ids = list(organization_ids)
        # pylint: disable=no-member
        return self._load(
            RenewalRequestModel.objects.filter(Q(requester_id__in=ids) | Q(subject_id__in=ids))
            .distinct()
            .order_by("-created_at")
        )

    @sync_to_async
    def list_addressed_to(self, organization_id: uuid.UUID) -> List[RenewalRequest]:
        # pylint: disable=no-member
        return self._load(
            RenewalRequestModel.objects.filter(addressee_id=organization_id).order_by("-created_at")
        )

    @sync_to_async
    def find_artifact(self, request_id: uuid.UUID) -> Optional[QuoteArtifact]:
        # pylint: disable=no-member
        model = QuoteArtifactModel.objects.filter(request_id=request_id).first()
        return self._artifact_to_domain(model) if model else None
