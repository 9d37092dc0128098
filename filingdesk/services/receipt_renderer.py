"""
Receipt renderer.

Turns a filing into a ReceiptModel: the one structured representation of a
receipt that every output format (email, SMS, PDF, preview) consumes.
Formats read the model; they never go back to the raw items.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

import structlog

from filingdesk.exceptions import EmptyItemsError, ValidationError
from filingdesk.services.totals import (
    compute_subtotals,
    format_money,
    quantize_money,
    to_decimal,
)

logger = structlog.get_logger(__name__)

FILING_DATE_FORMAT = "%Y-%m-%d %H:%M UTC"


@dataclass(frozen=True)
class ReceiptLine:
    """One item row of a receipt."""
    description: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @property
    def formatted_unit_price(self) -> str:
        return format_money(self.unit_price)

    @property
    def formatted_subtotal(self) -> str:
        return format_money(self.subtotal)


@dataclass(frozen=True)
class ReceiptModel:
    """
    Medium-agnostic receipt content.

    grand_total is exact; presentation rounding happens through the
    formatted_* helpers so every channel shows the same digits.
    """
    filing_id: Optional[str]
    filing_date: Optional[datetime]
    shipment_id: str
    invoice_no: str
    port: str
    status: str
    lines: Tuple[ReceiptLine, ...]
    grand_total: Decimal
    declared_value: Decimal
    currency: str = "INR"
    generated_at: datetime = field(default_factory=datetime.utcnow, compare=False)

    @property
    def item_count(self) -> int:
        return len(self.lines)

    @property
    def value_difference(self) -> Decimal:
        """Declared value minus grand total."""
        return self.declared_value - self.grand_total

    @property
    def declared_value_matches_total(self) -> bool:
        return quantize_money(self.declared_value) == quantize_money(self.grand_total)

    @property
    def formatted_grand_total(self) -> str:
        return format_money(self.grand_total)

    @property
    def formatted_declared_value(self) -> str:
        return format_money(self.declared_value)

    @property
    def formatted_value_difference(self) -> str:
        return format_money(self.value_difference)

    @property
    def formatted_filing_date(self) -> str:
        if self.filing_date is None:
            return "-"
        return self.filing_date.strftime(FILING_DATE_FORMAT)

    def header_fields(self) -> Tuple[Tuple[str, str], ...]:
        """Header label/value pairs in display order."""
        return (
            ("Filing Date", self.formatted_filing_date),
            ("Shipment ID", self.shipment_id),
            ("Invoice No", self.invoice_no),
            ("Port", self.port),
            ("Status", self.status),
        )


def _get(filing: Any, name: str, default: Any = None) -> Any:
    if isinstance(filing, Mapping):
        return filing.get(name, default)
    return getattr(filing, name, default)


def _declared_value(filing: Any) -> Decimal:
    value = _get(filing, "declared_value")
    if value is None:
        value = _get(filing, "value")
    if value is None:
        raise ValidationError(
            "Filing has no declared value",
            errors=[{"field": "declared_value", "message": "declared_value or value is required"}],
        )
    return to_decimal(value)


def render(filing: Any, currency: str = "INR") -> ReceiptModel:
    """
    Build the ReceiptModel for a filing.

    Accepts ORM rows, read models, or plain mappings so cached or externally
    supplied data can be rendered without a store round trip. Mappings may
    carry the declared value under "value".

    Args:
        filing: Filing with header fields and items
        currency: ISO currency code shown on the receipt

    Returns:
        ReceiptModel

    Raises:
        EmptyItemsError: If the filing has no items
        InvalidItemError: If an item has a fractional or < 1 quantity, or price < 0
        ValidationError: If neither declared_value nor value is present
    """
    filing_id = _get(filing, "id")
    items = list(_get(filing, "items") or [])
    if not items:
        raise EmptyItemsError(filing_id)

    subtotals = compute_subtotals(items)
    lines = tuple(
        ReceiptLine(
            description=str(_get(item, "description")),
            quantity=int(to_decimal(_get(item, "quantity"))),
            unit_price=to_decimal(_get(item, "price")),
            subtotal=subtotal,
        )
        for item, subtotal in zip(items, subtotals)
    )

    receipt = ReceiptModel(
        filing_id=str(filing_id) if filing_id is not None else None,
        filing_date=_get(filing, "submission_date"),
        shipment_id=str(_get(filing, "shipment_id")),
        invoice_no=str(_get(filing, "invoice_no")),
        port=str(_get(filing, "port")),
        status=str(_get(filing, "status") or "Submitted"),
        lines=lines,
        grand_total=sum(subtotals, Decimal("0")),
        declared_value=_declared_value(filing),
        currency=currency,
    )
    logger.debug(
        "receipt_rendered",
        filing_id=receipt.filing_id,
        item_count=receipt.item_count,
        grand_total=receipt.formatted_grand_total,
    )
    return receipt
