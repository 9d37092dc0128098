"""
Filing API routes.

Thin HTTP adapter over FilingService. Errors propagate as FilingDeskError
and are rendered by the application's exception handlers.
"""
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from filingdesk.database import get_db
from filingdesk.schemas.filing import (
    FilingCreate,
    FilingRead,
    FilingUpdate,
    PreviewRequest,
    ReceiptRequest,
    TotalsPreview,
)
from filingdesk.services.filing_service import FilingService

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class QueuedReceiptResponse(BaseModel):
    """Accepted background delivery."""
    task_id: str
    status: str = "queued"


# =============================================================================
# Dependencies
# =============================================================================

def get_filing_service(db: Session = Depends(get_db)) -> FilingService:
    """FastAPI dependency that provides a FilingService bound to the request session."""
    return FilingService(db)


# =============================================================================
# Filing Endpoints
# =============================================================================

@router.post(
    "",
    response_model=FilingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a filing",
)
def create_filing(
    request: FilingCreate,
    service: FilingService = Depends(get_filing_service),
) -> FilingRead:
    """Record a new filing with status Submitted."""
    return service.create(request)


@router.get("", response_model=List[FilingRead], summary="List filings")
def list_filings(service: FilingService = Depends(get_filing_service)) -> List[FilingRead]:
    return service.list()


@router.post("/preview", response_model=TotalsPreview, summary="Preview item totals")
def preview_totals(
    request: PreviewRequest,
    service: FilingService = Depends(get_filing_service),
) -> TotalsPreview:
    """Compute subtotals and the total for unsaved items."""
    return service.preview_totals(request.items)


@router.get("/{filing_id}", response_model=FilingRead, summary="Get a filing")
def get_filing(filing_id: str, service: FilingService = Depends(get_filing_service)) -> FilingRead:
    return service.get(filing_id)


@router.put("/{filing_id}", response_model=FilingRead, summary="Update a filing")
def update_filing(
    filing_id: str,
    request: FilingUpdate,
    service: FilingService = Depends(get_filing_service),
) -> FilingRead:
    """Merge the supplied fields onto the filing. The submission date never changes."""
    return service.update(filing_id, request)


@router.delete("/{filing_id}", response_model=MessageResponse, summary="Delete a filing")
def delete_filing(filing_id: str, service: FilingService = Depends(get_filing_service)) -> MessageResponse:
    service.delete(filing_id)
    return MessageResponse(message="Filing deleted")


# =============================================================================
# Receipt Endpoints
# =============================================================================

@router.post("/{filing_id}/receipts", summary="Send a receipt")
def send_receipt(
    filing_id: str,
    request: ReceiptRequest,
    service: FilingService = Depends(get_filing_service),
) -> Dict[str, Any]:
    """Deliver the filing's receipt by email, SMS or as a document."""
    result = service.send_receipt(filing_id, request.channel, request.destination)
    return result.to_dict()


@router.post(
    "/{filing_id}/receipts/queue",
    response_model=QueuedReceiptResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a receipt for background delivery",
)
def queue_receipt(
    filing_id: str,
    request: ReceiptRequest,
    service: FilingService = Depends(get_filing_service),
) -> QueuedReceiptResponse:
    task_id = service.queue_receipt(filing_id, request.channel, request.destination)
    return QueuedReceiptResponse(task_id=task_id)


@router.get("/{filing_id}/receipt.pdf", summary="Download the receipt PDF")
def download_receipt(filing_id: str, service: FilingService = Depends(get_filing_service)) -> Response:
    filing = service.get(filing_id)
    document = service.export_receipt(filing.id)
    logger.info("receipt_downloaded", filing_id=str(filing.id), size=len(document))
    return Response(
        content=document,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Filing_{filing.shipment_id}.pdf"'},
    )
