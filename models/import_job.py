"""
Import job schemas.

An import job is the persisted record of one fitment file import. Its
status only moves forward: pending → running → completed | failed.
"""

from pydantic import Field, field_validator
from typing import Any, Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, CamelSchema


class ImportJobStatus(str, Enum):
    """Import job status values."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Status order for transition validation (lower index = earlier in flow)
STATUS_ORDER = {
    ImportJobStatus.PENDING: 0,
    ImportJobStatus.RUNNING: 1,
    ImportJobStatus.COMPLETED: 2,
    ImportJobStatus.FAILED: 2,
}

TERMINAL_STATUSES = {ImportJobStatus.COMPLETED, ImportJobStatus.FAILED}

ACTIVE_STATUSES = [ImportJobStatus.PENDING, ImportJobStatus.RUNNING]


def is_valid_status_transition(current: ImportJobStatus, new: ImportJobStatus) -> bool:
    """
    Check if status transition is valid.

    Rules:
    - pending → running, running → completed/failed
    - running → running is allowed (progress checkpoints)
    - completed and failed are terminal
    """
    if current in TERMINAL_STATUSES:
        return False

    if current == ImportJobStatus.RUNNING and new == ImportJobStatus.RUNNING:
        return True

    return STATUS_ORDER[new] == STATUS_ORDER[current] + 1


# ===================
# JOB RECORD SCHEMAS
# ===================

class ImportJobResponse(BaseSchema):
    """Import job as stored in the import_jobs table."""

    id: int = Field(..., description="Job id")
    store_id: int = Field(..., description="Database store id")
    job_type: str = Field(default="fitment_import", description="Job type")
    status: ImportJobStatus = Field(..., description="Lifecycle status")
    total_rows: int = Field(default=0, ge=0, description="Rows in the uploaded file")
    processed_rows: int = Field(default=0, ge=0, description="Rows processed so far")
    error_log: Optional[str] = Field(None, description="Bounded error messages")
    started_at: Optional[datetime] = Field(None, description="When the job started running")
    finished_at: Optional[datetime] = Field(None, description="When the job reached a terminal status")
    created_at: Optional[datetime] = Field(None, description="Created timestamp")

    @property
    def progress_percent(self) -> float:
        """Percent of rows processed."""
        if self.total_rows <= 0:
            return 0.0
        return round(self.processed_rows / self.total_rows * 100, 1)


class ImportJobListResponse(BaseSchema):
    """List of import jobs for a store."""

    data: list[ImportJobResponse]
    total: int


class JobStatusUpdateRequest(BaseSchema):
    """Manual status change requested over HTTP."""

    status: ImportJobStatus = Field(..., description="Target status")
    processed_rows: Optional[int] = Field(None, ge=0)
    error_log: Optional[str] = Field(None)


# ===================
# PIPELINE TRIGGER / RESULT
# ===================

class FileImportRequest(CamelSchema):
    """
    Trigger for the fitment import pipeline.

    The last header names the SKU column; every other column is a fitment
    field (Year, Make, Model, ...).
    """

    job_id: int = Field(..., description="Import job id")
    database_store_id: int = Field(..., description="Database store id")
    headers: list[str] = Field(default_factory=list)
    rows: list[Any] = Field(default_factory=list, description="Data rows; malformed rows are rejected one by one")
    file_name: str = Field(default="", description="Stored file name")
    shop_id: Optional[str] = Field(None, description="Shopify shop id for tag writes")

    @field_validator("headers", mode="before")
    @classmethod
    def none_headers_to_empty(cls, v):
        """Null header cells become empty strings."""
        if isinstance(v, list):
            return ["" if h is None else h for h in v]
        return v

    @field_validator("rows", mode="before")
    @classmethod
    def numeric_cells_to_str(cls, v):
        """Numeric cells become strings. Rows that are not lists pass through untouched."""
        if not isinstance(v, list):
            return v
        return [
            [str(c) if isinstance(c, (int, float)) and not isinstance(c, bool) else c for c in row]
            if isinstance(row, list) else row
            for row in v
        ]


class FileImportResult(CamelSchema):
    """Structured summary returned by every import run, even a failed one."""

    success: bool
    processed_rows: int = 0
    updated_fitments: int = 0
    updated_product_tags: int = 0
    errors: Optional[list[str]] = None
    message: str = ""
