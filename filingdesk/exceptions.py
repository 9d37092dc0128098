"""
Custom exceptions for FilingDesk.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Optional, Dict, Any


class FilingDeskError(Exception):
    """
    Base exception for all FilingDesk errors.

    Attributes:
        error_code: Unique error code (e.g., FDK-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "FDK-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Validation Errors (FDK-1XX)
class ValidationError(FilingDeskError):
    """Input validation failed."""
    error_code = "FDK-100"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: list = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)

    @property
    def errors(self) -> list:
        return self.details["errors"]


class InvalidItemError(ValidationError):
    """A line item cannot be totalled (fractional or < 1 quantity, or price < 0)."""
    error_code = "FDK-101"

    def __init__(self, index: int, reason: str, **kwargs):
        message = f"Invalid item at position {index}: {reason}"
        super().__init__(
            message,
            errors=[{"field": f"items.{index}", "message": reason}],
            **kwargs,
        )
        self.index = index


class InvalidIdentifierError(FilingDeskError):
    """Identifier is not a well-formed filing id."""
    error_code = "FDK-102"
    http_status = 400

    def __init__(self, identifier: Any, **kwargs):
        message = "Invalid filing ID format"
        super().__init__(message, details={"identifier": str(identifier)}, **kwargs)


# Lookup Errors (FDK-2XX)
class NotFoundError(FilingDeskError):
    """Requested record does not exist."""
    error_code = "FDK-200"
    http_status = 404

    def __init__(self, filing_id: Any, **kwargs):
        message = f"Filing {filing_id} not found"
        super().__init__(message, details={"filing_id": str(filing_id)}, **kwargs)


# Receipt Errors (FDK-3XX)
class EmptyItemsError(FilingDeskError):
    """Receipt requested for a filing without items."""
    error_code = "FDK-300"
    http_status = 422

    def __init__(self, filing_id: Any = None, **kwargs):
        message = "Cannot render a receipt for a filing with no items"
        super().__init__(message, details={"filing_id": str(filing_id) if filing_id else None}, **kwargs)


# Delivery Errors (FDK-4XX)
class UnsupportedChannelError(FilingDeskError):
    """Receipt channel is not known."""
    error_code = "FDK-400"
    http_status = 400

    def __init__(self, channel: str, supported: list = None, **kwargs):
        message = f"Unsupported delivery channel: '{channel}'"
        super().__init__(
            message,
            details={"channel": channel, "supported_channels": supported or []},
            **kwargs,
        )
        self.channel = channel


class DeliveryError(FilingDeskError):
    """Transport failed to accept a receipt."""
    error_code = "FDK-401"
    http_status = 502

    def __init__(self, channel: str, cause: BaseException, **kwargs):
        message = f"Receipt delivery via {channel} failed: {cause}"
        super().__init__(
            message,
            details={"channel": channel, "cause": type(cause).__name__},
            **kwargs,
        )
        self.channel = channel
        self.cause = cause


# Database Errors (FDK-8XX)
class DatabaseError(FilingDeskError):
    """Database operation failed."""
    error_code = "FDK-800"
    http_status = 500

    def __init__(self, message: str = "Database operation failed", **kwargs):
        super().__init__(message, **kwargs)
