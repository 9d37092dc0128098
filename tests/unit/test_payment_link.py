"""
Unit tests for the payment link generator.
"""
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from filingdesk.config import Settings
from filingdesk.services.payment_link import PaymentLinkGenerator
from filingdesk.services.receipt_renderer import ReceiptModel, render


@pytest.fixture
def receipt() -> ReceiptModel:
    return render({
        "shipment_id": "SHP1",
        "invoice_no": "INV1",
        "port": "MUM",
        "declared_value": Decimal("100"),
        "status": "Submitted",
        "items": [{"description": "Widget", "quantity": 2, "price": Decimal("25")}],
    })


class TestPaymentLinkGenerator:
    """Tests for PaymentLinkGenerator."""

    def test_disabled_without_payee(self, receipt: ReceiptModel):
        """Test no URI is built when no payee is configured."""
        generator = PaymentLinkGenerator(None)

        assert not generator.enabled
        assert generator.build_uri(receipt) is None

    def test_uri_uses_grand_total(self, receipt: ReceiptModel):
        """Test the URI amount is the items total, not the declared value."""
        uri = PaymentLinkGenerator("filings@upi", "Neximp").build_uri(receipt)
        parsed = urlparse(uri)
        params = parse_qs(parsed.query)

        assert uri.startswith("upi://pay?pa=filings@upi")
        assert params["am"] == ["50.00"]
        assert params["cu"] == ["INR"]
        assert params["pn"] == ["Neximp"]
        assert params["tn"] == ["Filing Payment for SHP1"]

    def test_encode_returns_svg(self, receipt: ReceiptModel):
        """Test the QR code is encoded as SVG bytes."""
        generator = PaymentLinkGenerator("filings@upi")
        image = generator.encode(generator.build_uri(receipt))

        assert isinstance(image, bytes)
        assert b"<svg" in image

    def test_from_settings(self):
        settings = Settings(_env_file=None, payment_payee_vpa="pay@bank", payment_payee_name="Desk")
        generator = PaymentLinkGenerator.from_settings(settings)

        assert generator.enabled
        assert generator.payee_name == "Desk"
