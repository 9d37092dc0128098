"""
Filing and FilingItem models.

A filing is one customs invoice record; its items are stored in order and
removed together with the filing. Subtotals and totals are never stored.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from filingdesk.database import Base

DEFAULT_STATUS = "Submitted"


class Filing(Base):
    """
    SQLAlchemy model for a customs filing.

    Attributes:
        id: Unique identifier (UUID).
        shipment_id: Shipment reference.
        invoice_no: Commercial invoice number.
        port: Port of entry or exit.
        declared_value: Value declared by the filer (Decimal for precision).
        status: Free-text status, "Submitted" on creation.
        submission_date: Set once at creation, never changed by updates.
        items: Ordered line items.
    """

    __tablename__ = "filings"

    id: uuid.UUID = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )
    shipment_id: str = Column(String(255), nullable=False, index=True)
    invoice_no: str = Column(String(255), nullable=False)
    port: str = Column(String(255), nullable=False)
    declared_value: Decimal = Column(Numeric(precision=20, scale=4), nullable=False)
    status: str = Column(String(100), nullable=False, default=DEFAULT_STATUS)
    submission_date: datetime = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    items = relationship(
        "FilingItem",
        back_populates="filing",
        order_by="FilingItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Filing(id={self.id}, shipment_id='{self.shipment_id}', status='{self.status}')>"


class FilingItem(Base):
    """A single line entry within a filing."""

    __tablename__ = "filing_items"

    id: uuid.UUID = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    filing_id: uuid.UUID = Column(
        Uuid(as_uuid=True),
        ForeignKey("filings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: int = Column(Integer, nullable=False)
    description: str = Column(Text, nullable=False)
    quantity: int = Column(Integer, nullable=False)
    price: Decimal = Column(Numeric(precision=20, scale=4), nullable=False)

    filing = relationship("Filing", back_populates="items")

    def __repr__(self) -> str:
        return f"<FilingItem(description='{self.description}', quantity={self.quantity}, price={self.price})>"
