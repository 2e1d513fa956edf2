"""
Authorization policy engine.

``decide`` is the single place that answers "may this organization do
this to that target". It is a pure function of its arguments: callers
load the actor, the target and the target's resolved status, then ask.
Every entry point (API views, handlers, device list decorations) goes
through here so that no two surfaces can disagree.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from core.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DeviceNotFoundError,
    DomainException,
    OrganizationNotFoundError,
    RenewalRequestNotFoundError,
    ValidationError,
)
from core.domain.value_objects import DeviceStatus, RequestType
from devices.domain.device import Device
from organizations.domain.organization import (
    ChildOrganization,
    Organization,
    ParentOrganization,
    ResellerOrganization,
)
from renewals.domain.renewal_request import RenewalRequest


class Action(Enum):
    """Actions an organization can attempt."""

    REQUEST_RENEWAL = "request_renewal"
    DIRECT_RENEW = "direct_renew"
    REQUEST_QUOTE = "request_quote"
    APPROVE_REQUEST = "approve_request"
    REJECT_REQUEST = "reject_request"
    PROCESS_QUOTE = "process_quote"
    ISSUE_GRACE = "issue_grace"
    REMOVE_DEVICE = "remove_device"
    BULK_RENEW = "bulk_renew"
    REGISTER_DEVICE = "register_device"
    VIEW_FLEET = "view_fleet"
    VIEW_REQUEST = "view_request"

    def __str__(self) -> str:
        return self.value


RENEWAL_ACTIONS = (Action.REQUEST_RENEWAL, Action.DIRECT_RENEW, Action.REQUEST_QUOTE)
RENEWABLE_STATUSES = (DeviceStatus.ACTIVE, DeviceStatus.EXPIRING_SOON, DeviceStatus.EXPIRED)
REMOVABLE_STATUSES = (DeviceStatus.EXPIRED, DeviceStatus.SUSPENDED)


class NextStep(Enum):
    """What the caller should do once an action is allowed."""

    CREATE_RENEWAL_REQUEST = "create_renewal_request"
    CREATE_QUOTE_REQUEST = "create_quote_request"
    PROCEED_TO_BULK_RENEWAL = "proceed_to_bulk_renewal"
    APPLY_BULK_RENEWAL = "apply_bulk_renewal"
    APPROVE = "approve"
    REJECT = "reject"
    RESPOND_WITH_QUOTE = "respond_with_quote"
    ISSUE_GRACE_TOKEN = "issue_grace_token"
    DELETE_DEVICE = "delete_device"
    REGISTER_DEVICE = "register_device"
    READ_FLEET = "read_fleet"
    READ_REQUEST = "read_request"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Allowed:
    """Positive decision. ``addressee_id`` is set when a request must be routed."""

    next_step: NextStep
    addressee_id: Optional[uuid.UUID] = None
    allowed: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Denied:
    """Negative decision carrying the error the caller should surface."""

    error: DomainException
    allowed: bool = field(default=False, init=False)

    @property
    def reason(self) -> str:
        return self.error.message


Decision = Union[Allowed, Denied]


@dataclass(frozen=True)
class DeviceTarget:
    """
    A device together with the context needed to judge it.

    ``owner_parent`` is only needed when a reseller looks at a child's
    device (the reseller relationship lives on the parent).
    """

    device: Device
    owner: Organization
    status: DeviceStatus
    in_grace: bool = False
    owner_parent: Optional[Organization] = None


@dataclass(frozen=True)
class DeviceSetTarget:
    devices: Tuple[DeviceTarget, ...]


@dataclass(frozen=True)
class RequestTarget:
    request: RenewalRequest
    requester: Organization


@dataclass(frozen=True)
class OrganizationTarget:
    organization: Organization
    parent: Optional[Organization] = None


Target = Union[DeviceTarget, DeviceSetTarget, RequestTarget, OrganizationTarget, None]


class Relationship(Enum):
    SELF = "self"
    CHILD = "child"
    MANAGED = "managed"


def relationship(
    actor: Organization,
    organization: Organization,
    organization_parent: Optional[Organization] = None,
) -> Optional[Relationship]:
    """
    How ``actor`` relates to ``organization``, or None if unrelated.

    A reseller manages the parents that name it and, through them,
    their children.
    """
    if organization.id == actor.id:
        return Relationship.SELF
    if isinstance(actor, ParentOrganization):
        if isinstance(organization, ChildOrganization) and organization.parent_id == actor.id:
            return Relationship.CHILD
        return None
    if isinstance(actor, ResellerOrganization):
        if isinstance(organization, ParentOrganization) and organization.reseller_id == actor.id:
            return Relationship.MANAGED
        if (
            isinstance(organization, ChildOrganization)
            and isinstance(organization_parent, ParentOrganization)
            and organization_parent.id == organization.parent_id
            and organization_parent.reseller_id == actor.id
        ):
            return Relationship.MANAGED
    return None


def owns_fleet_of(actor: Organization, organization: Organization) -> bool:
    """True when ``actor`` may act on devices owned by ``organization``."""
    if isinstance(actor, ResellerOrganization):
        return False
    return relationship(actor, organization) in (Relationship.SELF, Relationship.CHILD)


def renewal_action_for(actor: Organization) -> Optional[Action]:
    """
    The single renewal action that applies to an organization.

    Returns:
        REQUEST_RENEWAL for a child, DIRECT_RENEW for a direct-billed
        parent, REQUEST_QUOTE for a reseller-only parent, None for a
        reseller.
    """
    if isinstance(actor, ChildOrganization):
        return Action.REQUEST_RENEWAL
    if isinstance(actor, ParentOrganization):
        return Action.DIRECT_RENEW if actor.pays_directly else Action.REQUEST_QUOTE
    return None


def _device_targets(target: Target) -> Optional[Tuple[DeviceTarget, ...]]:
    if isinstance(target, DeviceTarget):
        return (target,)
    if isinstance(target, DeviceSetTarget):
        return target.devices
    return None


def _check_fleet(actor: Organization, targets: Iterable[DeviceTarget]) -> Optional[Denied]:
    for item in targets:
        if not owns_fleet_of(actor, item.owner) or item.device.org_id != item.owner.id:
            return Denied(DeviceNotFoundError(f"Device {item.device.id} not found"))
    return None


def _decide_renewal(actor: Organization, action: Action, target: Target) -> Decision:
    if isinstance(actor, ResellerOrganization):
        return Denied(AuthorizationError("Resellers have no fleet to renew"))
    expected = renewal_action_for(actor)
    if action is not expected:
        return Denied(
            AuthorizationError(
                f"{actor.type.value} organizations renew with {expected.value}, not {action.value}"
            )
        )

    targets = _device_targets(target) or ()
    denied = _check_fleet(actor, targets)
    if denied:
        return denied
    for item in targets:
        if item.status not in RENEWABLE_STATUSES:
            return Denied(
                ValidationError(
                    f"Device {item.device.id} is {item.status.value} and cannot be renewed",
                    code="DEVICE_NOT_RENEWABLE",
                )
            )

    if isinstance(actor, ChildOrganization):
        return Allowed(NextStep.CREATE_RENEWAL_REQUEST, addressee_id=actor.parent_id)
    if actor.pays_directly:
        return Allowed(NextStep.PROCEED_TO_BULK_RENEWAL)
    return Allowed(NextStep.CREATE_QUOTE_REQUEST, addressee_id=actor.reseller_id)


def _decide_bulk_renew(actor: Organization, target: Target) -> Decision:
    if not (isinstance(actor, ParentOrganization) and actor.pays_directly):
        return Denied(
            AuthorizationError("Only directly billed parent organizations can bulk renew")
        )
    targets = _device_targets(target)
    if not targets:
        return Denied(ValidationError("Bulk renewal needs at least one device"))
    denied = _check_fleet(actor, targets)
    if denied:
        return denied
    for item in targets:
        if item.status not in RENEWABLE_STATUSES:
            return Denied(
                ValidationError(
                    f"Device {item.device.id} is {item.status.value} and cannot be renewed",
                    code="DEVICE_NOT_RENEWABLE",
                )
            )
    return Allowed(NextStep.APPLY_BULK_RENEWAL)


def _decide_issue_grace(actor: Organization, target: Target) -> Decision:
    if not isinstance(actor, ParentOrganization):
        return Denied(AuthorizationError("Only parent organizations can issue grace tokens"))
    if not isinstance(target, DeviceTarget):
        return Denied(ValidationError("Grace tokens are issued to one device at a time"))
    denied = _check_fleet(actor, (target,))
    if denied:
        return denied
    if target.status is not DeviceStatus.EXPIRED:
        return Denied(
            ValidationError(
                f"Grace tokens can only be issued to expired devices (device is {target.status.value})",
                code="DEVICE_NOT_EXPIRED",
            )
        )
    if target.in_grace:
        return Denied(
            ValidationError(
                "Device already has an active grace token", code="GRACE_TOKEN_ACTIVE"
            )
        )
    return Allowed(NextStep.ISSUE_GRACE_TOKEN)


def _decide_remove(actor: Organization, target: Target) -> Decision:
    if isinstance(actor, ResellerOrganization):
        return Denied(AuthorizationError("Resellers cannot remove devices"))
    if not isinstance(target, DeviceTarget):
        return Denied(ValidationError("Devices are removed one at a time"))
    denied = _check_fleet(actor, (target,))
    if denied:
        return denied
    if target.status not in REMOVABLE_STATUSES:
        return Denied(
            ValidationError(
                f"Only expired or suspended devices can be removed (device is {target.status.value})",
                code="DEVICE_NOT_REMOVABLE",
            )
        )
    return Allowed(NextStep.DELETE_DEVICE)


def _decide_resolution(actor: Organization, action: Action, target: Target) -> Decision:
    if not isinstance(target, RequestTarget):
        return Denied(ValidationError("A renewal request is required"))
    request = target.request
    verb = "approve" if action is Action.APPROVE_REQUEST else "reject"
    if not isinstance(actor, ParentOrganization):
        return Denied(AuthorizationError(f"Only parent organizations can {verb} requests"))
    if request.addressee_org_id != actor.id:
        return Denied(AuthorizationError(f"Request {request.id} is not addressed to you"))
    if not isinstance(target.requester, ChildOrganization):
        return Denied(
            AuthorizationError(f"Only requests filed by child organizations can be {verb}d")
        )
    if action is Action.APPROVE_REQUEST and request.type is not RequestType.RENEWAL:
        return Denied(
            ValidationError(
                "Only renewal requests can be approved; quote requests are answered with a quote",
                code="REQUEST_NOT_APPROVABLE",
            )
        )
    if not request.is_pending:
        return Denied(
            ConflictError(
                f"Request {request.id} is already {request.status.value}",
                code="REQUEST_ALREADY_RESOLVED",
            )
        )
    return Allowed(NextStep.APPROVE if action is Action.APPROVE_REQUEST else NextStep.REJECT)


def _may_process_quotes(actor: Organization) -> bool:
    if isinstance(actor, ResellerOrganization):
        return True
    return isinstance(actor, ParentOrganization) and not actor.pays_directly


def _decide_process_quote(actor: Organization, target: Target) -> Decision:
    if not _may_process_quotes(actor):
        return Denied(
            AuthorizationError(
                "Only resellers and reseller-billed parent organizations can process quotes"
            )
        )
    if isinstance(target, OrganizationTarget):
        # Pricing a client's devices without a request (quote preview)
        related = relationship(actor, target.organization, target.parent)
        allowed = (
            (Relationship.MANAGED,)
            if isinstance(actor, ResellerOrganization)
            else (Relationship.SELF, Relationship.CHILD)
        )
        if related not in allowed:
            return Denied(OrganizationNotFoundError())
        return Allowed(NextStep.RESPOND_WITH_QUOTE)
    if not isinstance(target, RequestTarget):
        return Denied(ValidationError("A renewal request is required"))
    request = target.request
    if request.addressee_org_id != actor.id:
        return Denied(AuthorizationError(f"Request {request.id} is not addressed to you"))
    if not request.is_pending:
        return Denied(
            ConflictError(
                f"Request {request.id} is already {request.status.value}",
                code="REQUEST_ALREADY_RESOLVED",
            )
        )
    return Allowed(NextStep.RESPOND_WITH_QUOTE)


def _decide_register(actor: Organization, target: Target) -> Decision:
    if isinstance(actor, ResellerOrganization):
        return Denied(AuthorizationError("Resellers cannot register devices"))
    if not isinstance(target, OrganizationTarget):
        return Denied(ValidationError("An owning organization is required"))
    if not owns_fleet_of(actor, target.organization):
        return Denied(OrganizationNotFoundError())
    return Allowed(NextStep.REGISTER_DEVICE)


def _decide_view(actor: Organization, target: Target) -> Decision:
    if isinstance(target, DeviceTarget):
        if relationship(actor, target.owner, target.owner_parent) is None:
            return Denied(DeviceNotFoundError(f"Device {target.device.id} not found"))
        return Allowed(NextStep.READ_FLEET)
    if not isinstance(target, OrganizationTarget):
        return Denied(ValidationError("An organization or device is required"))
    if relationship(actor, target.organization, target.parent) is None:
        return Denied(OrganizationNotFoundError())
    return Allowed(NextStep.READ_FLEET)


def _decide_view_request(actor: Organization, target: Target) -> Decision:
    # Requester, subject and addressee may read a request; to anyone else it does not exist
    if not isinstance(target, RequestTarget):
        return Denied(ValidationError("A renewal request is required"))
    request = target.request
    if actor.id not in (request.requester_org_id, request.subject_org_id, request.addressee_org_id):
        return Denied(RenewalRequestNotFoundError(f"Renewal request {request.id} not found"))
    return Allowed(NextStep.READ_REQUEST)


def decide(actor: Organization, action: Action, target: Target = None) -> Decision:
    """
    Decide whether ``actor`` may perform ``action`` on ``target``.

    Args:
        actor: Acting organization
        action: Action being attempted
        target: DeviceTarget, DeviceSetTarget, RequestTarget or
            OrganizationTarget depending on the action

    Returns:
        Allowed(next_step) or Denied(error)
    """
    if action in RENEWAL_ACTIONS:
        return _decide_renewal(actor, action, target)
    if action is Action.BULK_RENEW:
        return _decide_bulk_renew(actor, target)
    if action is Action.ISSUE_GRACE:
        return _decide_issue_grace(actor, target)
    if action is Action.REMOVE_DEVICE:
        return _decide_remove(actor, target)
    if action in (Action.APPROVE_REQUEST, Action.REJECT_REQUEST):
        return _decide_resolution(actor, action, target)
    if action is Action.PROCESS_QUOTE:
        return _decide_process_quote(actor, target)
    if action is Action.REGISTER_DEVICE:
        return _decide_register(actor, target)
    if action is Action.VIEW_FLEET:
        return _decide_view(actor, target)
    if action is Action.VIEW_REQUEST:
        return _decide_view_request(actor, target)
    raise ValueError(f"Unknown action: {action}")


def require(actor: Organization, action: Action, target: Target = None) -> Allowed:
    """
    Like ``decide`` but raises the denial's error.

    Raises:
        DomainException: The error carried by a Denied decision
    """
    decision = decide(actor, action, target)
    if isinstance(decision, Denied):
        raise decision.error
    return decision


def available_actions(actor: Organization, target: DeviceTarget) -> List[Action]:
    """List the single-device actions currently allowed for ``actor``."""
    candidates = [renewal_action_for(actor), Action.ISSUE_GRACE, Action.REMOVE_DEVICE]
    return [
        action
        for action in candidates
        if action is not None and isinstance(decide(actor, action, target), Allowed)
    ]
