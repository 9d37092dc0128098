"""
Receipt formats.

Formats a ReceiptModel as an HTML email body, a plain-text email body, and
SMS text. All numbers come from the model's formatted_* helpers.
"""
import base64
from typing import Optional

from jinja2 import Environment

from filingdesk.services.receipt_renderer import ReceiptModel

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

RECEIPT_TITLE = "Customs Filing Receipt"

HTML_TEMPLATE = _env.from_string("""
<html>
<body style="font-family: Arial, sans-serif; padding: 20px;">
    <h1 style="color: #1a73e8;">{{ title }}</h1>
    <table style="background: #f4f7ff; padding: 10px; margin-bottom: 16px;">
    {% for label, value in receipt.header_fields() %}
        <tr><td><strong>{{ label }}:</strong></td><td>{{ value }}</td></tr>
    {% endfor %}
    </table>
    <h2 style="color: #1a73e8;">Items Details</h2>
    <table style="border-collapse: collapse; width: 100%;">
        <tr style="background: #e3eaff; color: #1a73e8;">
            <th align="left">Description</th>
            <th align="right">Quantity</th>
            <th align="right">Price ({{ receipt.currency }})</th>
            <th align="right">Subtotal ({{ receipt.currency }})</th>
        </tr>
    {% for line in receipt.lines %}
        <tr>
            <td>{{ line.description }}</td>
            <td align="right">{{ line.quantity }}</td>
            <td align="right">{{ line.formatted_unit_price }}</td>
            <td align="right">{{ line.formatted_subtotal }}</td>
        </tr>
    {% endfor %}
        <tr style="background: #d0ddff; color: #1a73e8; font-weight: bold;">
            <td colspan="3" align="right">Total:</td>
            <td align="right">{{ receipt.formatted_grand_total }}</td>
        </tr>
    </table>
    <p><strong>Declared Value:</strong> {{ receipt.currency }} {{ receipt.formatted_declared_value }}</p>
    {% if not receipt.declared_value_matches_total %}
    <p style="color: #b45309;">Declared value differs from the items total by {{ receipt.formatted_value_difference }}.</p>
    {% endif %}
    {% if payment_uri %}
    <p>
        <a href="{{ payment_uri }}" style="background: #635bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Pay {{ receipt.currency }} {{ receipt.formatted_grand_total }}</a>
    </p>
    {% if qr_data_uri %}
    <p><img src="{{ qr_data_uri }}" alt="Payment QR code" width="90" height="90"></p>
    {% endif %}
    {% endif %}
</body>
</html>
""")


def email_subject(receipt: ReceiptModel) -> str:
    return f"{RECEIPT_TITLE} - {receipt.shipment_id}"


def render_html(
    receipt: ReceiptModel,
    payment_uri: Optional[str] = None,
    qr_image: Optional[bytes] = None,
) -> str:
    """
    HTML email body for a receipt.

    Args:
        receipt: Rendered receipt
        payment_uri: Optional payment link shown as a button
        qr_image: Optional SVG QR code embedded as a data URI
    """
    qr_data_uri = None
    if qr_image:
        qr_data_uri = "data:image/svg+xml;base64," + base64.b64encode(qr_image).decode("ascii")
    return HTML_TEMPLATE.render(
        title=RECEIPT_TITLE,
        receipt=receipt,
        payment_uri=payment_uri,
        qr_data_uri=qr_data_uri,
    )


def render_text(receipt: ReceiptModel, payment_uri: Optional[str] = None) -> str:
    """Plain-text email body for a receipt."""
    lines = [RECEIPT_TITLE.upper(), ""]
    lines.extend(f"{label}: {value}" for label, value in receipt.header_fields())
    lines.extend(["", "Items:"])
    for line in receipt.lines:
        lines.append(
            f"- {line.description} | Qty: {line.quantity} | "
            f"Price: {line.formatted_unit_price} | Subtotal: {line.formatted_subtotal}"
        )
    lines.extend([
        "",
        f"Total: {receipt.formatted_grand_total}",
        f"Declared Value: {receipt.formatted_declared_value}",
        f"Currency: {receipt.currency}",
    ])
    if payment_uri:
        lines.extend(["", f"Pay: {payment_uri}"])
    return "\n".join(lines)


def render_sms(receipt: ReceiptModel) -> str:
    """
    Short plain-text receipt for SMS.

    Item rows are summarised as a count; the totals are the same strings the
    other formats show.
    """
    return "\n".join([
        RECEIPT_TITLE,
        f"Shipment: {receipt.shipment_id}",
        f"Invoice: {receipt.invoice_no}",
        f"Port: {receipt.port}",
        f"Status: {receipt.status}",
        f"Filed: {receipt.formatted_filing_date}",
        f"Items: {receipt.item_count}",
        f"Total: {receipt.formatted_grand_total} {receipt.currency}",
        f"Declared: {receipt.formatted_declared_value} {receipt.currency}",
    ])
