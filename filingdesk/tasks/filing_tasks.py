"""
Filing background tasks.

Celery tasks for the post-submission notice and for queued receipt delivery.
"""
import uuid
from typing import Any, Dict, Optional

import httpx
import structlog
from sqlalchemy.orm import Session

from filingdesk.celery_app import celery_app
from filingdesk.config import get_settings
from filingdesk.database import SessionLocal
from filingdesk.exceptions import DeliveryError, FilingDeskError
from filingdesk.models.filing import Filing
from filingdesk.services.dispatchers import DispatcherRegistry

logger = structlog.get_logger(__name__)

SUBMITTED_EVENT = "filing.submitted"


def get_db_session() -> Session:
    """Get a database session for use in Celery tasks."""
    return SessionLocal()


def get_dispatchers() -> DispatcherRegistry:
    """Dispatchers wired to the configured transports."""
    return DispatcherRegistry.from_settings(get_settings())


def build_submission_event(filing: Filing) -> Dict[str, Any]:
    return {
        "event": SUBMITTED_EVENT,
        "filing_id": str(filing.id),
        "shipment_id": filing.shipment_id,
        "invoice_no": filing.invoice_no,
        "submission_date": filing.submission_date.isoformat() if filing.submission_date else None,
    }


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def notify_filing_submitted(self, filing_id: str) -> Dict[str, Any]:
    """
    Announce a newly submitted filing.

    Logs the EDI/webhook trigger and, when a webhook URL is configured,
    posts the submission event to it.

    Args:
        filing_id: UUID of the stored filing

    Returns:
        Dict with the notice outcome
    """
    settings = get_settings()
    db = get_db_session()

    try:
        filing = db.get(Filing, uuid.UUID(filing_id))
        if filing is None:
            # Deleted before the notice ran
            logger.warning("submission_notice_skipped", filing_id=filing_id, reason="not_found")
            return {"filing_id": filing_id, "status": "skipped"}

        event = build_submission_event(filing)
        logger.info(
            "edi_webhook_triggered",
            filing_id=filing_id,
            shipment_id=filing.shipment_id,
            task_id=self.request.id,
        )

        if not settings.submission_webhook_url:
            return {"filing_id": filing_id, "status": "logged"}

        try:
            with httpx.Client() as client:
                response = client.post(
                    settings.submission_webhook_url,
                    json=event,
                    headers={
                        "X-Webhook-Event": SUBMITTED_EVENT,
                        "User-Agent": "FilingDesk-Webhooks/1.0",
                    },
                    timeout=settings.webhook_timeout_seconds,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "submission_webhook_failed",
                filing_id=filing_id,
                error=str(e),
                attempt=self.request.retries + 1,
            )
            raise self.retry(exc=e)

        logger.info(
            "submission_webhook_delivered",
            filing_id=filing_id,
            status_code=response.status_code,
        )
        return {"filing_id": filing_id, "status": "delivered", "status_code": response.status_code}

    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def deliver_receipt(
    self,
    filing_id: str,
    channel: str,
    destination: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Deliver a filing receipt in the background.

    Transport failures are retried; validation and lookup errors are final.

    Returns:
        The delivery result as a dict
    """
    from filingdesk.services.filing_service import FilingService

    db = get_db_session()

    try:
        service = FilingService(db, settings=get_settings(), dispatchers=get_dispatchers())
        result = service.send_receipt(filing_id, channel, destination)
        logger.info(
            "queued_receipt_delivered",
            filing_id=filing_id,
            channel=result.channel,
            task_id=self.request.id,
        )
        return result.to_dict()

    except DeliveryError as e:
        logger.warning(
            "queued_receipt_retry",
            filing_id=filing_id,
            channel=channel,
            error=e.message,
            attempt=self.request.retries + 1,
        )
        raise self.retry(exc=e)

    except FilingDeskError as e:
        logger.error(
            "queued_receipt_failed",
            filing_id=filing_id,
            channel=channel,
            error_code=e.error_code,
            error=e.message,
        )
        raise

    finally:
        db.close()
