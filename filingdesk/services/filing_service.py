"""
Filing service.

Orchestrates the record store, totals calculator, receipt renderer and
dispatchers behind a transport-neutral contract. Inputs are plain data,
results are read models, failures are typed FilingDesk errors.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import structlog
from pydantic import BaseModel
from sqlalchemy.orm import Session

from filingdesk.config import DeclaredValuePolicy, Settings, get_settings
from filingdesk.exceptions import InvalidIdentifierError, NotFoundError, ValidationError
from filingdesk.models.filing import DEFAULT_STATUS, Filing
from filingdesk.repositories.filing_repository import FilingRepository
from filingdesk.schemas.filing import (
    FilingCreate,
    FilingDocument,
    FilingRead,
    FilingUpdate,
    PreviewRequest,
    TotalsPreview,
    validate_document,
)
from filingdesk.services.dispatchers import Channel, DeliveryResult, DispatcherRegistry, resolve_channel
from filingdesk.services.receipt_renderer import ReceiptModel, render
from filingdesk.services.totals import compute_subtotals, compute_total, format_money

logger = structlog.get_logger(__name__)

# Called with the new filing's id once it is committed
SubmissionNotifier = Callable[[str], Any]
# Called with (filing_id, channel, destination); returns a task id
ReceiptQueue = Callable[[str, str, Optional[str]], str]


def parse_filing_id(filing_id: Any) -> uuid.UUID:
    """
    Parse a filing identifier.

    Raises:
        InvalidIdentifierError: If the value is not a UUID
    """
    if isinstance(filing_id, uuid.UUID):
        return filing_id
    try:
        return uuid.UUID(str(filing_id))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(filing_id) from None


def enqueue_submission_notice(filing_id: str) -> None:
    """Schedule the post-create notice task."""
    from filingdesk.tasks.filing_tasks import notify_filing_submitted

    settings = get_settings()
    notify_filing_submitted.apply_async(
        args=[filing_id],
        countdown=settings.submission_notice_delay_seconds,
    )


def enqueue_receipt_delivery(filing_id: str, channel: str, destination: Optional[str]) -> str:
    """Schedule a receipt delivery task and return its id."""
    from filingdesk.tasks.filing_tasks import deliver_receipt

    result = deliver_receipt.apply_async(args=[filing_id, channel, destination])
    return result.id


class FilingService:
    """Service for recording filings and issuing their receipts."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        dispatchers: Optional[DispatcherRegistry] = None,
        notifier: Optional[SubmissionNotifier] = None,
        receipt_queue: Optional[ReceiptQueue] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = FilingRepository(db)
        self.dispatchers = dispatchers or DispatcherRegistry.from_settings(self.settings)
        self.notifier = notifier or enqueue_submission_notice
        self.receipt_queue = receipt_queue or enqueue_receipt_delivery

    # ==================== Helpers ====================

    def _load(self, filing_id: Any) -> Filing:
        filing_uuid = parse_filing_id(filing_id)
        filing = self.repository.find_by_id(filing_uuid)
        if filing is None:
            raise NotFoundError(filing_uuid)
        return filing

    def _check_declared_value(self, document: FilingDocument) -> None:
        policy = self.settings.declared_value_policy
        if policy == DeclaredValuePolicy.PRESERVE:
            return

        items_total = compute_total(document.items)
        if format_money(items_total) == format_money(document.declared_value):
            return

        if policy == DeclaredValuePolicy.ENFORCE:
            raise ValidationError(
                "Declared value does not match the items total",
                errors=[{
                    "field": "declared_value",
                    "message": f"expected {format_money(items_total)}, got {format_money(document.declared_value)}",
                }],
            )
        logger.warning(
            "declared_value_mismatch",
            shipment_id=document.shipment_id,
            declared_value=format_money(document.declared_value),
            items_total=format_money(items_total),
        )

    @staticmethod
    def _stored_document(filing: Filing) -> Dict[str, Any]:
        return {
            "shipment_id": filing.shipment_id,
            "invoice_no": filing.invoice_no,
            "port": filing.port,
            "declared_value": filing.declared_value,
            "status": filing.status,
            "items": [
                {"description": item.description, "quantity": item.quantity, "price": item.price}
                for item in filing.items
            ],
        }

    @staticmethod
    def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=True)
        return dict(data)

    # ==================== CRUD ====================

    def create(self, filing_input: Union[FilingCreate, Dict[str, Any]]) -> FilingRead:
        """
        Validate and store a new filing.

        Status is always "Submitted" and submission_date is now, whatever
        the input carries.

        Raises:
            ValidationError: On any invariant violation
        """
        data = self._as_dict(filing_input)
        data["status"] = DEFAULT_STATUS
        document = validate_document(data)
        compute_total(document.items)
        self._check_declared_value(document)

        filing_id = self.repository.insert(document, submission_date=datetime.utcnow())
        filing = self.repository.find_by_id(filing_id)
        logger.info(
            "filing_created",
            filing_id=str(filing_id),
            shipment_id=filing.shipment_id,
            item_count=len(filing.items),
        )

        try:
            self.notifier(str(filing_id))
        except Exception as e:
            # The filing is committed; the notice is reported separately
            logger.error(
                "submission_notice_enqueue_failed",
                filing_id=str(filing_id),
                error=str(e),
                error_type=type(e).__name__,
            )

        return FilingRead.model_validate(filing)

    def list(self) -> List[FilingRead]:
        return [FilingRead.model_validate(f) for f in self.repository.find_all()]

    def get(self, filing_id: Any) -> FilingRead:
        """
        Raises:
            InvalidIdentifierError: If filing_id is malformed
            NotFoundError: If no filing has this id
        """
        return FilingRead.model_validate(self._load(filing_id))

    def update(self, filing_id: Any, patch: Union[FilingUpdate, Dict[str, Any]]) -> FilingRead:
        """
        Merge a patch onto a stored filing and write it back.

        The stored submission_date is always kept.

        Raises:
            InvalidIdentifierError: If filing_id is malformed
            NotFoundError: If no filing has this id
            ValidationError: If the patch or the merged document is invalid
        """
        filing = self._load(filing_id)
        original_submission_date = filing.submission_date

        changes = self._as_dict(validate_document(self._as_dict(patch), FilingUpdate))
        if "submission_date" in changes:
            logger.info("submission_date_change_ignored", filing_id=str(filing.id))
            changes.pop("submission_date")

        merged = self._stored_document(filing)
        merged.update(changes)
        document = validate_document(merged)
        compute_total(document.items)
        self._check_declared_value(document)

        updated = self.repository.replace(filing.id, document, submission_date=original_submission_date)
        if updated is None:
            raise NotFoundError(filing.id)

        logger.info("filing_updated", filing_id=str(updated.id), fields=sorted(changes))
        return FilingRead.model_validate(updated)

    def delete(self, filing_id: Any) -> None:
        """
        Raises:
            InvalidIdentifierError: If filing_id is malformed
            NotFoundError: If no filing has this id
        """
        filing_uuid = parse_filing_id(filing_id)
        if not self.repository.remove(filing_uuid):
            raise NotFoundError(filing_uuid)
        logger.info("filing_deleted", filing_id=str(filing_uuid))

    # ==================== Receipts ====================

    def render_receipt(self, filing_id: Any) -> ReceiptModel:
        return render(self._load(filing_id), currency=self.settings.currency_code)

    def send_receipt(self, filing_id: Any, channel: str, destination: Optional[str] = None) -> DeliveryResult:
        """
        Render a filing's receipt and deliver it through a channel.

        Raises:
            UnsupportedChannelError: If the channel is unknown
            DeliveryError: If the transport fails
        """
        dispatcher = self.dispatchers.get(channel)
        receipt = self.render_receipt(filing_id)
        return dispatcher.dispatch(channel, receipt, destination)

    def export_receipt(self, filing_id: Any) -> bytes:
        """Render a filing's receipt as a PDF document."""
        result = self.send_receipt(filing_id, Channel.DOCUMENT.value)
        return result.document

    def queue_receipt(self, filing_id: Any, channel: str, destination: Optional[str] = None) -> str:
        """
        Check a receipt request now and deliver it in the background.

        Returns:
            Background task id
        """
        resolved = resolve_channel(channel)
        self.dispatchers.get(resolved)
        filing = self._load(filing_id)
        task_id = self.receipt_queue(str(filing.id), resolved.value, destination)
        logger.info("receipt_queued", filing_id=str(filing.id), channel=resolved.value, task_id=task_id)
        return task_id

    def preview_totals(self, items: Iterable[Any]) -> TotalsPreview:
        """Totals for unsaved items, as a form preview shows them."""
        request = validate_document({"items": list(items)}, PreviewRequest)
        subtotals = compute_subtotals(request.items)
        return TotalsPreview(subtotals=subtotals, total=sum(subtotals, Decimal("0")))
