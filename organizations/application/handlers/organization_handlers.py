"""
Organization profile handlers.
"""
import logging
from decimal import Decimal, InvalidOperation

from authorization.domain.policy import renewal_action_for
from core.conf import renewal_setting
from core.domain.exceptions import (
    AuthorizationError,
    OrganizationNotFoundError,
    ValidationError,
)
from organizations.application.commands.update_quote_settings import UpdateQuoteSettingsCommand
from organizations.application.dto.organization_dto import OrganizationDTO
from organizations.application.queries.get_organization import GetOrganizationQuery
from organizations.domain.organization import (
    ChildOrganization,
    Organization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


def to_dto(organization: Organization) -> OrganizationDTO:
    action = renewal_action_for(organization)
    return OrganizationDTO(
        id=organization.id,
        name=organization.name,
        type=organization.type.value,
        billing_mode=(
            organization.billing_mode.value
            if isinstance(organization, ParentOrganization)
            else None
        ),
        parent_id=organization.parent_id if isinstance(organization, ChildOrganization) else None,
        reseller_id=(
            organization.reseller_id if isinstance(organization, ParentOrganization) else None
        ),
        default_margin_percent=(
            organization.default_margin_percent
            if isinstance(organization, ResellerOrganization)
            else None
        ),
        renewal_action=action.value if action else None,
        created_at=organization.created_at,
    )


async def load_organization(
    repository: OrganizationRepository, organization_id
) -> Organization:
    organization = await repository.find_by_id(organization_id)
    if organization is None:
        raise OrganizationNotFoundError(f"Organization {organization_id} not found")
    return organization


class GetOrganizationHandler:
    """Handler for GetOrganizationQuery."""

    def __init__(self, organization_repository: OrganizationRepository):
        self.organization_repository = organization_repository

    async def handle(self, query: GetOrganizationQuery) -> OrganizationDTO:
        return to_dto(await load_organization(self.organization_repository, query.actor_id))


class UpdateQuoteSettingsHandler:
    """Handler for UpdateQuoteSettingsCommand."""

    def __init__(self, organization_repository: OrganizationRepository):
        self.organization_repository = organization_repository

    async def handle(self, command: UpdateQuoteSettingsCommand) -> OrganizationDTO:
        """
        Change a reseller's default margin.

        Quotes already issued keep the margin they were priced with.

        Raises:
            AuthorizationError: If the actor is not a reseller
            ValidationError: If the margin is outside 0 and the configured maximum
        """
        actor = await load_organization(self.organization_repository, command.actor_id)
        if not isinstance(actor, ResellerOrganization):
            raise AuthorizationError("Only resellers have quote settings")

        try:
            margin = Decimal(str(command.default_margin_percent))
        except InvalidOperation as e:
            raise ValidationError("Margin must be a number", code="INVALID_MARGIN") from e
        max_margin = renewal_setting("MAX_MARGIN_PERCENT")
        if not margin.is_finite() or not Decimal("0") <= margin <= max_margin:
            raise ValidationError(
                f"Margin must be between 0 and {max_margin}", code="INVALID_MARGIN"
            )
        margin = margin.quantize(Decimal("0.01"))

        saved = await self.organization_repository.save(actor.with_default_margin(margin))
        logger.info(
            "Default margin changed from %s to %s",
            actor.default_margin_percent,
            margin,
            extra={"organization_id": str(actor.id)},
        )
        return to_dto(saved)
