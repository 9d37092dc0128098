"""
Payment link and QR code generation for receipts.

Builds a UPI payment URI for a receipt's items total and encodes it as a QR
code. Used only to decorate receipts; totals are taken from the ReceiptModel.
"""
from typing import Optional
from urllib.parse import urlencode

from reportlab.graphics import renderSVG
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing

from filingdesk.config import Settings
from filingdesk.services.receipt_renderer import ReceiptModel


class PaymentLinkGenerator:
    """Builds payment URIs and QR images for receipts."""

    def __init__(self, payee_vpa: Optional[str], payee_name: str = "FilingDesk", size: float = 90.0):
        self.payee_vpa = payee_vpa
        self.payee_name = payee_name
        self.size = size

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentLinkGenerator":
        return cls(settings.payment_payee_vpa, settings.payment_payee_name)

    @property
    def enabled(self) -> bool:
        return bool(self.payee_vpa)

    def build_uri(self, receipt: ReceiptModel) -> Optional[str]:
        """
        UPI URI for the receipt's grand total.

        Returns None when no payee is configured.
        """
        if not self.enabled:
            return None
        params = {
            "pa": self.payee_vpa,
            "pn": self.payee_name,
            "am": receipt.formatted_grand_total,
            "cu": receipt.currency,
            "tn": f"Filing Payment for {receipt.shipment_id}",
        }
        return "upi://pay?" + urlencode(params, safe="@")

    def drawing(self, payment_uri: str) -> Drawing:
        """QR code as a ReportLab drawing, scaled to self.size points."""
        widget = QrCodeWidget(payment_uri)
        x0, y0, x1, y1 = widget.getBounds()
        width, height = x1 - x0, y1 - y0
        drawing = Drawing(
            self.size,
            self.size,
            transform=[self.size / width, 0, 0, self.size / height, 0, 0],
        )
        drawing.add(widget)
        return drawing

    def encode(self, payment_uri: str) -> bytes:
        """Encode a payment URI as an SVG QR image."""
        svg = renderSVG.drawToString(self.drawing(payment_uri))
        return svg if isinstance(svg, bytes) else svg.encode("utf-8")
