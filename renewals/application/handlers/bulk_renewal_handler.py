"""
Bulk renewal handler.

Applies a confirmed payment and extends device expiry dates. The
payment token is the idempotency key: its receipt records how far a
previous attempt got, so a replay never charges twice and never extends
twice.
"""
import logging
from decimal import Decimal
from typing import Optional

from authorization.application.target_loader import TargetLoader
from authorization.domain.policy import Action, require
from core.conf import renewal_setting
from core.domain.clock import Clock, utc_now
from core.domain.exceptions import ConflictError, PaymentDeclinedError, ValidationError
from core.infrastructure.events import event_bus as default_event_bus
from core.infrastructure.providers import get_payment_gateway
from core.infrastructure.retry import call_with_retry
from core.metrics import bulk_renewal_amount_total, bulk_renewals_in_progress, devices_renewed_total
from devices.application.resolver import configured_resolver
from devices.ports.device_registry import DeviceRegistry
from organizations.ports.organization_repository import OrganizationRepository
from renewals.application.commands.bulk_renew import BulkRenewCommand
from renewals.application.dto.renewal_dto import BulkRenewalResultDTO, RenewedDeviceDTO
from renewals.domain.bulk_renewal import BulkRenewalReceipt, ReceiptStatus, normalize_device_ids
from renewals.domain.events import DevicesRenewed
from renewals.domain.quote import to_money
from renewals.ports.bulk_renewal_ledger import BulkRenewalLedger
from renewals.ports.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)


def to_result(receipt: BulkRenewalReceipt, replayed: bool) -> BulkRenewalResultDTO:
    return BulkRenewalResultDTO(
        receipt_id=receipt.id,
        payment_token=receipt.payment_token,
        status=receipt.status.value,
        years=receipt.years,
        amount=receipt.amount,
        currency=receipt.currency,
        charge_reference=receipt.charge_reference,
        devices=[
            RenewedDeviceDTO(
                device_id=device_id,
                previous_expiry=receipt.previous_expiries.get(device_id),
                new_expiry=receipt.new_expiries.get(device_id),
            )
            for device_id in receipt.device_ids
        ],
        replayed=replayed,
    )


class BulkRenewHandler:
    """Handler for BulkRenewCommand."""

    def __init__(
        self,
        ledger: BulkRenewalLedger,
        organization_repository: OrganizationRepository,
        device_registry: DeviceRegistry,
        payment_gateway: Optional[PaymentGateway] = None,
        event_bus=None,
        clock: Clock = utc_now,
    ):
        """Initialize handler with the ledger, repositories and payment gateway."""
        self.ledger = ledger
        self.organization_repository = organization_repository
        self.payment_gateway = payment_gateway or get_payment_gateway()
        self.event_bus = event_bus or default_event_bus
        self.clock = clock
        self.targets = TargetLoader(organization_repository, device_registry, configured_resolver())

    def _validate(self, command: BulkRenewCommand) -> None:
        max_years = int(renewal_setting("MAX_RENEWAL_YEARS"))
        if not command.device_ids:
            raise ValidationError("Bulk renewal needs at least one device")
        if not isinstance(command.years, int) or not 1 <= command.years <= max_years:
            raise ValidationError(f"Years must be between 1 and {max_years}", code="INVALID_YEARS")
        if not (command.payment_token or "").strip():
            raise ValidationError("A payment token is required", code="PAYMENT_TOKEN_REQUIRED")

    async def _charge(self, receipt: BulkRenewalReceipt) -> BulkRenewalReceipt:
        description = f"Renewal of {len(receipt.device_ids)} device(s) for {receipt.years} year(s)"
        try:
            confirmation = await call_with_retry(
                "payment.charge",
                lambda: self.payment_gateway.charge(
                    receipt.payment_token, receipt.amount, receipt.currency, description
                ),
            )
        except PaymentDeclinedError as e:
            await self.ledger.mark_declined(receipt.payment_token, e.message)
            logger.warning(
                "Bulk renewal payment declined: %s",
                e.message,
                extra={"receipt_id": str(receipt.id)},
            )
            raise
        return await self.ledger.mark_charged(receipt.payment_token, confirmation.reference)

    async def handle(self, command: BulkRenewCommand) -> BulkRenewalResultDTO:
        """
        Handle bulk renew command.

        Args:
            command: BulkRenewCommand

        Returns:
            BulkRenewalResultDTO with each device's previous and new expiry

        Raises:
            ValidationError: If the input is invalid or a device cannot be renewed
            AuthorizationError: If the actor is not a directly billed parent
            DeviceNotFoundError: If a device is missing or outside the actor's fleet
            ConflictError: If the token was already used for a different renewal
            PaymentDeclinedError: If the payment is (or was) declined
            TransientExternalServiceError: If the gateway stays unavailable
        """
        self._validate(command)
        now = self.clock()
        token = command.payment_token.strip()
        device_ids = normalize_device_ids(command.device_ids)

        actor = await self.targets.organization(command.actor_id)
        # A finished renewal is replayed as stored, whatever the devices look like now
        previous = await self.ledger.find(token)
        if (
            previous is not None
            and previous.status is ReceiptStatus.COMPLETED
            and previous.matches(actor.id, device_ids, command.years)
        ):
            logger.info("Bulk renewal replayed", extra={"receipt_id": str(previous.id)})
            return to_result(previous, replayed=True)

        require(actor, Action.BULK_RENEW, await self.targets.device_set_target(device_ids, now))

        price = renewal_setting("DIRECT_PRICE_PER_DEVICE_YEAR")
        amount = to_money(Decimal(price) * len(device_ids) * command.years)
        receipt = await self.ledger.claim(
            token, actor.id, device_ids, command.years, amount, renewal_setting("CURRENCY")
        )
        if not receipt.matches(actor.id, device_ids, command.years):
            raise ConflictError(
                f"Payment token {token} was already used for a different renewal",
                code="PAYMENT_TOKEN_REUSED",
            )

        if receipt.status is ReceiptStatus.COMPLETED:
            logger.info("Bulk renewal replayed", extra={"receipt_id": str(receipt.id)})
            return to_result(receipt, replayed=True)
        if receipt.status is ReceiptStatus.DECLINED:
            raise PaymentDeclinedError(receipt.failure_reason or "Payment was declined")
        if receipt.status is ReceiptStatus.PENDING:
            receipt = await self._charge(receipt)

        children = await self.organization_repository.find_children(actor.id)
        allowed_ids = [actor.id] + [child.id for child in children]
        with bulk_renewals_in_progress.track_inprogress():
            receipt, applied = await self.ledger.complete(token, allowed_ids)
        if not applied:
            return to_result(receipt, replayed=True)

        devices_renewed_total.inc(len(receipt.device_ids))
        bulk_renewal_amount_total.labels(currency=receipt.currency).inc(float(receipt.amount))
        logger.info(
            "Bulk renewal applied: %d device(s) for %d year(s)",
            len(receipt.device_ids),
            receipt.years,
            extra={"receipt_id": str(receipt.id), "organization_id": str(actor.id)},
        )

        await self.event_bus.publish(
            DevicesRenewed(
                receipt_id=receipt.id,
                organization_id=actor.id,
                payment_token=receipt.payment_token,
                years=receipt.years,
                amount=receipt.amount,
                currency=receipt.currency,
                new_expiries=receipt.new_expiries,
            )
        )
        return to_result(receipt, replayed=False)
