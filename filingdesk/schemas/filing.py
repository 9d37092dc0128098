"""
Pydantic schemas for filings.

Defines the input documents accepted by the filing service and the read
models it returns. Field constraints here are the first line of validation;
the totals calculator checks items again before summing.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    computed_field,
)

from filingdesk.exceptions import ValidationError
from filingdesk.services.totals import compute_subtotal, compute_total

# Same precision as the Numeric(20, 4) money columns
MONEY_MAX_DIGITS = 20
MONEY_DECIMAL_PLACES = 4


class ItemIn(BaseModel):
    """A line item as submitted."""

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, description="What the line is for")
    quantity: int = Field(..., ge=1, description="Number of units (>= 1)")
    price: Decimal = Field(
        ..., ge=0, max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, description="Unit price (>= 0)"
    )


class FilingCreate(BaseModel):
    """Request model for creating a filing."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    shipment_id: str = Field(..., min_length=1, description="Shipment reference")
    invoice_no: str = Field(..., min_length=1, description="Invoice number")
    port: str = Field(..., min_length=1, description="Port code or name")
    declared_value: Decimal = Field(
        ...,
        ge=0,
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        validation_alias=AliasChoices("declared_value", "value"),
        description="Declared value of the shipment",
    )
    items: List[ItemIn] = Field(..., min_length=1, description="Line items")


class FilingDocument(FilingCreate):
    """A complete filing document as handed to the store."""

    status: str = Field(..., min_length=1, description="Free-text status")


class FilingUpdate(BaseModel):
    """
    Patch for an existing filing.

    Every field is optional; the patch is merged onto the stored record and
    the result validated as a whole. A supplied submission_date is accepted
    and discarded.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    shipment_id: Optional[str] = None
    invoice_no: Optional[str] = None
    port: Optional[str] = None
    declared_value: Optional[Decimal] = Field(
        None,
        ge=0,
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        validation_alias=AliasChoices("declared_value", "value"),
    )
    items: Optional[List[ItemIn]] = None
    status: Optional[str] = None
    submission_date: Optional[datetime] = None


class ItemRead(BaseModel):
    """Response model for a stored line item."""

    model_config = ConfigDict(from_attributes=True)

    description: str
    quantity: int
    price: Decimal

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return compute_subtotal(self)


class FilingRead(BaseModel):
    """Response model for a stored filing."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Filing identifier")
    shipment_id: str
    invoice_no: str
    port: str
    declared_value: Decimal
    status: str
    submission_date: datetime
    items: List[ItemRead]

    @computed_field
    @property
    def items_total(self) -> Decimal:
        """Sum of item subtotals, unrounded."""
        return compute_total(self.items)


class TotalsPreview(BaseModel):
    """Totals for a set of items that has not been saved."""

    subtotals: List[Decimal]
    total: Decimal


class ReceiptRequest(BaseModel):
    """Request to deliver a receipt."""

    channel: str = Field(..., description="email, sms or document")
    destination: Optional[str] = Field(None, description="Email address or phone number")


class PreviewRequest(BaseModel):
    """Request for a totals preview."""

    items: List[ItemIn] = Field(..., min_length=1)


def to_validation_error(exc: PydanticValidationError, message: str = "Filing validation failed") -> ValidationError:
    """Convert a pydantic error into the service's ValidationError."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return ValidationError(message, errors=errors)


def validate_document(data: Dict[str, Any], model: type = FilingDocument) -> BaseModel:
    """Validate raw data against a schema, raising ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise to_validation_error(exc) from exc
