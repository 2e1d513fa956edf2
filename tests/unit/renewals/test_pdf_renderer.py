"""
Unit tests for ReportLabQuoteRenderer.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from core.domain.value_objects import Location
from devices.domain.device import Device
from renewals.domain.quote import price_devices
from renewals.infrastructure.pdf_renderer import ReportLabQuoteRenderer


def quote_for(count):
    devices = [
        Device.create(
            org_id=uuid.uuid4(),
            serial_number=f"SN-{i:05d}",
            name=f"Kiosk {i}",
            location=Location("Leeds"),
            expiry_date=date(2024, 1, 1),
        )
        for i in range(count)
    ]
    return price_devices(devices, Decimal("100"), Decimal("20"), "GBP")


@pytest.mark.asyncio
class TestReportLabQuoteRenderer:
    """Test cases for ReportLabQuoteRenderer."""

    async def test_renders_pdf(self):
        document = await ReportLabQuoteRenderer().render(
            quote_for(3), reference="AB12CD34", client_name="Contoso", issuer_name="Northwind", message="Thanks"
        )

        assert document.content.startswith(b"%PDF")
        assert document.content_type == "application/pdf"
        assert document.filename == "quote-AB12CD34.pdf"

    async def test_long_quotes_span_pages(self):
        short = await ReportLabQuoteRenderer().render(quote_for(2), "A", "Contoso", "Northwind")
        long = await ReportLabQuoteRenderer().render(quote_for(120), "B", "Contoso", "Northwind")

        assert len(long.content) > len(short.content)
