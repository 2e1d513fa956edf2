"""
Django implementation of BulkRenewalLedger port.

Receipt rows are locked with ``select_for_update`` so a replay of the
same token waits for the first attempt instead of racing it.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.domain.exceptions import ConflictError, NotFoundError
from devices.infrastructure.repositories.django_device_registry import extend_expiry_locked
from renewals.domain.bulk_renewal import BulkRenewalReceipt, ReceiptStatus
from renewals.infrastructure.models import BulkRenewalReceipt as ReceiptModel
from renewals.ports.bulk_renewal_ledger import BulkRenewalLedger

logger = logging.getLogger(__name__)


def _dates(raw: dict) -> dict:
    return {uuid.UUID(key): date.fromisoformat(value) for key, value in raw.items()}


class DjangoBulkRenewalLedger(BulkRenewalLedger):
    """
    Django ORM implementation of BulkRenewalLedger.
    """

    def _to_domain(self, model: ReceiptModel) -> BulkRenewalReceipt:
        return BulkRenewalReceipt(
            id=model.id,
            payment_token=model.payment_token,
            organization_id=model.organization_id,
            device_ids=tuple(uuid.UUID(value) for value in model.device_ids),
            years=model.years,
            amount=Decimal(model.amount),
            currency=model.currency,
            status=ReceiptStatus(model.status),
            charge_reference=model.charge_reference,
            failure_reason=model.failure_reason,
            previous_expiries=_dates(model.previous_expiries),
            new_expiries=_dates(model.new_expiries),
            created_at=model.created_at,
            completed_at=model.completed_at,
        )

    def _locked(self, payment_token: str) -> ReceiptModel:
        try:
            # pylint: disable=no-member
            return ReceiptModel.objects.select_for_update().get(payment_token=payment_token)
        except ReceiptModel.DoesNotExist:  # pylint: disable=no-member
            raise NotFoundError(f"No bulk renewal for token {payment_token}") from None

    @sync_to_async
    def find(self, payment_token: str) -> Optional[BulkRenewalReceipt]:
        # pylint: disable=no-member
        model = ReceiptModel.objects.filter(payment_token=payment_token).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def claim(
        self,
        payment_token: str,
        organization_id: uuid.UUID,
        device_ids: Tuple[uuid.UUID, ...],
        years: int,
        amount: Decimal,
        currency: str,
    ) -> BulkRenewalReceipt:
        """
        Return the receipt for ``payment_token``, creating a PENDING one if none exists.
        """
        try:
            with transaction.atomic():
                # pylint: disable=no-member
                model, created = ReceiptModel.objects.get_or_create(
                    payment_token=payment_token,
                    defaults={
                        "organization_id": organization_id,
                        "device_ids": [str(device_id) for device_id in device_ids],
                        "years": years,
                        "amount": amount,
                        "currency": currency,
                        "status": ReceiptStatus.PENDING.value,
                    },
                )
        except IntegrityError:
            # A concurrent claim inserted the same token first
            model = ReceiptModel.objects.get(payment_token=payment_token)  # pylint: disable=no-member
            created = False
        if created:
            logger.info("Bulk renewal claimed", extra={"receipt_id": str(model.id)})
        return self._to_domain(model)

    @sync_to_async
    def mark_charged(self, payment_token: str, charge_reference: str) -> BulkRenewalReceipt:
        with transaction.atomic():
            model = self._locked(payment_token)
            if model.status == ReceiptStatus.PENDING.value:
                model.status = ReceiptStatus.CHARGED.value
                model.charge_reference = charge_reference
                model.save(update_fields=["status", "charge_reference", "updated_at"])
            return self._to_domain(model)

    @sync_to_async
    def mark_declined(self, payment_token: str, reason: str) -> BulkRenewalReceipt:
        with transaction.atomic():
            model = self._locked(payment_token)
            if model.status == ReceiptStatus.PENDING.value:
                model.status = ReceiptStatus.DECLINED.value
                model.failure_reason = reason
                model.save(update_fields=["status", "failure_reason", "updated_at"])
            return self._to_domain(model)

    @sync_to_async
    def complete(
        self,
        payment_token: str,
        allowed_organization_ids: Iterable[uuid.UUID],
    ) -> Tuple[BulkRenewalReceipt, bool]:
        """
        Extend every device on a CHARGED receipt and mark it COMPLETED, atomically.
        """
        with transaction.atomic():
            model = self._locked(payment_token)
            if model.status == ReceiptStatus.COMPLETED.value:
                return self._to_domain(model), False
            if model.status != ReceiptStatus.CHARGED.value:
                raise ConflictError(
                    f"Bulk renewal {payment_token} is {model.status}, not charged",
                    code="BULK_RENEWAL_NOT_CHARGED",
                )

            changes = extend_expiry_locked(
                [uuid.UUID(value) for value in model.device_ids],
                model.years,
                allowed_organization_ids,
            )
            model.previous_expiries = {
                str(device_id): change["previous"].isoformat() for device_id, change in changes.items()
            }
            model.new_expiries = {
                str(device_id): change["new"].isoformat() for device_id, change in changes.items()
            }
            model.status = ReceiptStatus.COMPLETED.value
            model.completed_at = timezone.now()
            model.save(
                update_fields=[
                    "previous_expiries",
                    "new_expiries",
                    "status",
                    "completed_at",
                    "updated_at",
                ]
            )
            return self._to_domain(model), True
