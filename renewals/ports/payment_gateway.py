"""
Payment gateway port (interface).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PaymentConfirmation:
    """A charge the gateway confirmed."""

    reference: str
    amount: Decimal
    currency: str


class PaymentGateway(ABC):
    """
    Confirms a charge against a client-supplied confirmation token.

    Implementations must be idempotent per token: confirming the same
    token twice returns the original confirmation rather than charging
    again.
    """

    @abstractmethod
    async def charge(
        self,
        payment_token: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> PaymentConfirmation:
        """
        Confirm a charge.

        Args:
            payment_token: Confirmation token from the client
            amount: Amount to charge
            currency: ISO currency code
            description: Statement description

        Returns:
            PaymentConfirmation

        Raises:
            PaymentDeclinedError: If the charge is definitively declined
            TransientExternalServiceError: On timeout or unavailability
            ExternalServiceError: On any other gateway failure
        """
        pass
