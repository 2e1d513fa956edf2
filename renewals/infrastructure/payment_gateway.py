"""
HTTP payment gateway.

Confirms charges against a JSON payment API with ``requests``. The
payment token doubles as the ``Idempotency-Key`` header, so re-sending
a confirmation after a timeout never charges twice.
"""

import logging
from decimal import Decimal
from typing import Optional

import requests
from asgiref.sync import sync_to_async

from core.domain.exceptions import (
    ExternalServiceError,
    PaymentDeclinedError,
    TransientExternalServiceError,
)
from renewals.ports.payment_gateway import PaymentConfirmation, PaymentGateway

logger = logging.getLogger(__name__)


class HttpPaymentGateway(PaymentGateway):
    """Payment gateway speaking a small JSON API (``POST /charges``)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def _post_charge(
        self, payment_token: str, amount: Decimal, currency: str, description: str
    ) -> PaymentConfirmation:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": payment_token,
            "User-Agent": "Fleet-Renewal-Service/1.0",
        }
        body = {
            "token": payment_token,
            "amount": str(amount),
            "currency": currency,
            "description": description,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/charges",
                json=body,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("Payment gateway unreachable: %s", e)
            raise TransientExternalServiceError(f"Payment gateway unreachable: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ExternalServiceError(f"Payment request failed: {e}") from e

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientExternalServiceError(
                f"Payment gateway unavailable (HTTP {response.status_code})"
            )
        if response.status_code in (402, 422):
            try:
                reason = response.json().get("message", "declined")
            except ValueError:
                reason = "declined"
            raise PaymentDeclinedError(f"Payment declined: {reason}")
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Payment gateway rejected request (HTTP {response.status_code})"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError("Payment gateway returned malformed JSON") from e
        if data.get("status") not in ("succeeded", "confirmed"):
            raise PaymentDeclinedError(f"Payment not confirmed: {data.get('status')}")

        return PaymentConfirmation(
            reference=str(data["id"]),
            amount=Decimal(str(data.get("amount", amount))),
            currency=data.get("currency", currency),
        )

    async def charge(
        self,
        payment_token: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> PaymentConfirmation:
        """
        Confirm a charge.

        Raises:
            PaymentDeclinedError: On 402/422 or a non-succeeded status
            TransientExternalServiceError: On timeout, connection error, 429 or 5xx
            ExternalServiceError: On any other failure
        """
        return await sync_to_async(self._post_charge, thread_sensitive=False)(
            payment_token, amount, currency, description
        )


class SandboxPaymentGateway(PaymentGateway):
    """
    Offline gateway for development.

    Tokens starting with ``decline`` are declined; every other token is
    confirmed once and then replayed from memory.
    """

    def __init__(self):
        self._confirmed = {}

    async def charge(
        self,
        payment_token: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> PaymentConfirmation:
        if payment_token.startswith("decline"):
            raise PaymentDeclinedError("Payment declined by sandbox")
        if payment_token not in self._confirmed:
            self._confirmed[payment_token] = PaymentConfirmation(
                reference=f"sandbox-{payment_token}", amount=amount, currency=currency
            )
            logger.info("Sandbox charge %s %s for %s", currency, amount, description)
        return self._confirmed[payment_token]
