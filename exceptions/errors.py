"""
Custom exception classes for the application.

Every error raised to an HTTP caller derives from AppError so routes can
render a consistent error body.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_JOB_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# STORE ERRORS
# ===================

class StoreNotFoundError(NotFoundError):
    """Store not found for a shop domain or id."""

    def __init__(self, identifier: str):
        super().__init__(
            resource="Store",
            identifier=identifier,
            code="STORE_NOT_FOUND"
        )


# ===================
# IMPORT JOB ERRORS
# ===================

class ImportJobNotFoundError(NotFoundError):
    """Import job not found."""

    def __init__(self, job_id: int):
        super().__init__(
            resource="Import job",
            identifier=str(job_id),
            code="IMPORT_JOB_NOT_FOUND"
        )


class InvalidStatusTransitionError(ValidationError):
    """Job status may only move forward."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": "Status can only move forward, and completed/failed are terminal"
            }
        )


class JobStatusUpdateError(DatabaseError):
    """The job status RPC rejected an update."""

    def __init__(self, job_id: int, status: str, message: str):
        super().__init__(
            operation="update_import_job_status",
            message=message,
            details={"job_id": job_id, "status": status}
        )


# ===================
# FILE INTAKE ERRORS
# ===================

class FileParseError(ValidationError):
    """Uploaded fitment file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="FILE_PARSE_ERROR",
            message=message,
            details=details
        )


class MissingColumnsError(ValidationError):
    """Required fitment columns are missing from the header row."""

    def __init__(self, problems: list[str]):
        super().__init__(
            code="MISSING_COLUMNS",
            message=f"Header validation failed with {len(problems)} problems",
            details={"problems": problems}
        )


class RowLimitExceededError(ValidationError):
    """Upload has more rows than the billing plan allows."""

    def __init__(self, row_count: int, limit: int):
        super().__init__(
            code="ROW_LIMIT_EXCEEDED",
            message=f"Row limit exceeded ({row_count}/{limit}). Please upgrade your plan.",
            details={"row_count": row_count, "limit": limit}
        )


class RowRejectedError(ValidationError):
    """A spreadsheet row cannot become a fitment."""

    def __init__(self, reason: str, row: Optional[list] = None):
        super().__init__(
            code="ROW_REJECTED",
            message=reason,
            details={"row": row} if row is not None else None
        )


# ===================
# SHOPIFY ERRORS
# ===================

class ShopifyGraphQLError(ExternalServiceError):
    """Shopify Admin GraphQL request failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=message,
            details=details
        )
