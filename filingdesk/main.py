"""
FastAPI application entry point.

Configures the application with routes, middleware, and error handlers.
"""
import os
import traceback

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from filingdesk import __version__
from filingdesk.api.routes import filings
from filingdesk.config import get_settings
from filingdesk.database import init_db
from filingdesk.exceptions import FilingDeskError, ValidationError
from filingdesk.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
    redact_sensitive_data,
)

settings = get_settings()

# Initialize Sentry for error tracking
sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("APP_VERSION", __version__),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        send_default_pii=False,
        before_send=lambda event, hint: redact_sensitive_data(event),
    )

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="FilingDesk API",
    description="Customs filing records with receipts by email, SMS and PDF.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Filings", "description": "Filing records and receipts"},
        {"name": "Health", "description": "Health checks"},
    ],
)

# Logging middleware (order matters: correlation ID first)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(filings.router, prefix="/api/filings", tags=["Filings"])


@app.exception_handler(FilingDeskError)
async def filingdesk_exception_handler(request: Request, exc: FilingDeskError):
    """Handle all FilingDesk exceptions."""
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        "filingdesk_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request body validation failures like service validation failures."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return await filingdesk_exception_handler(request, ValidationError("Filing validation failed", errors=errors))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    sentry_sdk.capture_exception(exc)

    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "FDK-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Initialize application on startup."""
    logger.info("filingdesk_starting", debug=settings.debug, version=__version__)
    if not sentry_dsn:
        logger.warning("sentry_not_configured")
    init_db()
    logger.info("filingdesk_started")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
