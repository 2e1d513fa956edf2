"""
Document renderer port (interface).
"""

from abc import ABC, abstractmethod
from typing import Optional

from renewals.domain.quote import Quote, RenderedDocument


class DocumentRenderer(ABC):
    """Turns a priced quote into an opaque document."""

    @abstractmethod
    async def render(
        self,
        quote: Quote,
        reference: str,
        client_name: str,
        issuer_name: str,
        message: Optional[str] = None,
    ) -> RenderedDocument:
        """
        Render a quote document.

        Args:
            quote: Priced quote
            reference: Human-facing reference (usually the request ID)
            client_name: Organization the quote is addressed to
            issuer_name: Organization issuing the quote
            message: Optional cover message

        Returns:
            RenderedDocument

        Raises:
            ExternalServiceError: If rendering fails
        """
        pass
