"""
Filing record store.

SQLAlchemy-backed storage for filing documents. Every write commits as a
unit or is rolled back; callers never see a half-written filing.
"""
import uuid
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filingdesk.exceptions import DatabaseError
from filingdesk.models.filing import Filing, FilingItem
from filingdesk.schemas.filing import FilingDocument

logger = structlog.get_logger(__name__)


class FilingRepository:
    """Create, read, replace and remove filings by identifier."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("filing_store_write_failed", operation=operation, error=str(e))
            raise DatabaseError(
                f"Database operation failed: {operation}",
                details={"operation": operation, "reason": str(e)},
            ) from e

    @staticmethod
    def _build_items(document: FilingDocument) -> List[FilingItem]:
        return [
            FilingItem(
                position=position,
                description=item.description,
                quantity=item.quantity,
                price=item.price,
            )
            for position, item in enumerate(document.items)
        ]

    def insert(self, document: FilingDocument, submission_date: datetime) -> uuid.UUID:
        """
        Store a new filing.

        Args:
            document: Validated filing document
            submission_date: Creation timestamp

        Returns:
            Identifier of the stored filing
        """
        filing = Filing(
            id=uuid.uuid4(),
            shipment_id=document.shipment_id,
            invoice_no=document.invoice_no,
            port=document.port,
            declared_value=document.declared_value,
            status=document.status,
            submission_date=submission_date,
            items=self._build_items(document),
        )
        self.db.add(filing)
        self._commit("insert")
        return filing.id

    def find_all(self) -> List[Filing]:
        """All filings, newest first."""
        stmt = select(Filing).order_by(Filing.submission_date.desc())
        return list(self.db.scalars(stmt).all())

    def find_by_id(self, filing_id: uuid.UUID) -> Optional[Filing]:
        return self.db.get(Filing, filing_id)

    def replace(
        self,
        filing_id: uuid.UUID,
        document: FilingDocument,
        submission_date: datetime,
    ) -> Optional[Filing]:
        """
        Overwrite a stored filing with a full document.

        Returns:
            The updated filing, or None if it does not exist
        """
        filing = self.find_by_id(filing_id)
        if filing is None:
            return None

        filing.shipment_id = document.shipment_id
        filing.invoice_no = document.invoice_no
        filing.port = document.port
        filing.declared_value = document.declared_value
        filing.status = document.status
        filing.submission_date = submission_date
        filing.items = self._build_items(document)
        self._commit("replace")
        self.db.refresh(filing)
        return filing

    def remove(self, filing_id: uuid.UUID) -> bool:
        """Delete a filing and its items. Returns False if it did not exist."""
        filing = self.find_by_id(filing_id)
        if filing is None:
            return False
        self.db.delete(filing)
        self._commit("remove")
        return True
