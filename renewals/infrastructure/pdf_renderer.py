"""
PDF quote renderer.

Draws the priced line items onto an A4 page with ReportLab's canvas.
"""

import io
import logging
from typing import Optional

from asgiref.sync import sync_to_async
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from core.domain.exceptions import ExternalServiceError
from renewals.domain.quote import Quote, RenderedDocument
from renewals.ports.document_renderer import DocumentRenderer

logger = logging.getLogger(__name__)

W, H = A4
MARGIN = 50
NAVY = HexColor("#1B2A4A")
SLATE = HexColor("#64748B")
RULE = HexColor("#E2E8F0")


class ReportLabQuoteRenderer(DocumentRenderer):
    """Renders quotes as single- or multi-page PDFs."""

    def __init__(self, title: str = "License Renewal Quote"):
        self.title = title

    def _draw(
        self,
        quote: Quote,
        reference: str,
        client_name: str,
        issuer_name: str,
        message: Optional[str],
    ) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        c.setTitle(f"{self.title} {reference}")
        c.setAuthor(issuer_name)

        def header(y: float) -> float:
            c.setFillColor(NAVY)
            c.setFont("Helvetica-Bold", 18)
            c.drawString(MARGIN, y, self.title)
            y -= 22
            c.setFont("Helvetica", 10)
            c.setFillColor(SLATE)
            c.drawString(MARGIN, y, f"Reference: {reference}")
            c.drawRightString(W - MARGIN, y, quote.priced_at.strftime("%d %b %Y"))
            y -= 14
            c.drawString(MARGIN, y, f"From: {issuer_name}")
            y -= 14
            c.drawString(MARGIN, y, f"To: {client_name}")
            return y - 24

        def column_titles(y: float) -> float:
            c.setFillColor(NAVY)
            c.setFont("Helvetica-Bold", 10)
            c.drawString(MARGIN, y, "Device")
            c.drawString(MARGIN + 150, y, "Description")
            c.drawRightString(W - MARGIN - 90, y, "Base")
            c.drawRightString(W - MARGIN, y, "Total")
            y -= 6
            c.setStrokeColor(RULE)
            c.line(MARGIN, y, W - MARGIN, y)
            return y - 14

        y = column_titles(header(H - MARGIN))
        c.setFont("Helvetica", 9)
        for item in quote.line_items:
            if y < MARGIN + 80:
                c.showPage()
                y = column_titles(H - MARGIN)
                c.setFont("Helvetica", 9)
            c.setFillColor(NAVY)
            c.drawString(MARGIN, y, item.serial_number[:28])
            c.drawString(MARGIN + 150, y, item.description[:48])
            c.drawRightString(W - MARGIN - 90, y, f"{item.base_price:.2f}")
            c.drawRightString(W - MARGIN, y, f"{item.line_total:.2f}")
            y -= 16

        y -= 6
        c.setStrokeColor(RULE)
        c.line(MARGIN, y, W - MARGIN, y)
        y -= 18
        c.setFont("Helvetica-Bold", 11)
        c.drawString(MARGIN, y, f"{quote.device_count} device(s), margin {quote.margin_percent}%")
        c.drawRightString(W - MARGIN, y, f"{quote.currency} {quote.grand_total:.2f}")

        if message:
            y -= 30
            c.setFont("Helvetica-Oblique", 9)
            c.setFillColor(SLATE)
            for line in message.splitlines()[:10]:
                c.drawString(MARGIN, y, line[:100])
                y -= 12

        c.showPage()
        c.save()
        return buffer.getvalue()

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

        Returns:
            RenderedDocument with PDF bytes

        Raises:
            ExternalServiceError: If ReportLab fails
        """
        try:
            content = await sync_to_async(self._draw, thread_sensitive=False)(
                quote, reference, client_name, issuer_name, message
            )
        except (ValueError, TypeError, OSError) as e:
            logger.error("Quote rendering failed for %s: %s", reference, e, exc_info=True)
            raise ExternalServiceError(f"Quote rendering failed: {e}") from e
        return RenderedDocument(
            content=content,
            content_type="application/pdf",
            filename=f"quote-{reference}.pdf",
        )
