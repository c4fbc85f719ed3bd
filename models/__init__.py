"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    CamelSchema,
)
from models.import_job import (
    ImportJobStatus,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    is_valid_status_transition,
    ImportJobResponse,
    ImportJobListResponse,
    JobStatusUpdateRequest,
    FileImportRequest,
    FileImportResult,
)
from models.fitment import (
    FitmentValue,
    FitmentField,
    FitmentUpsertPayload,
    FitmentUpsertResponse,
)
from models.tags import (
    BulkTagRequest,
    BulkTagUpdateResult,
    BulkTagRemoveResult,
)
from models.variant import (
    VariantSyncRequest,
    StoreVariantPayload,
    VariantSyncResult,
)
from models.store import (
    StoreStatus,
    StoreInstallRequest,
    StoreReinstallRequest,
    StoreUninstallRequest,
    StoreProvisionResult,
)

__all__ = [
    # Base
    "BaseSchema",
    "CamelSchema",

    # Import jobs
    "ImportJobStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "is_valid_status_transition",
    "ImportJobResponse",
    "ImportJobListResponse",
    "JobStatusUpdateRequest",
    "FileImportRequest",
    "FileImportResult",

    # Fitment
    "FitmentValue",
    "FitmentField",
    "FitmentUpsertPayload",
    "FitmentUpsertResponse",

    # Tags
    "BulkTagRequest",
    "BulkTagUpdateResult",
    "BulkTagRemoveResult",

    # Variants
    "VariantSyncRequest",
    "StoreVariantPayload",
    "VariantSyncResult",

    # Stores
    "StoreStatus",
    "StoreInstallRequest",
    "StoreReinstallRequest",
    "StoreUninstallRequest",
    "StoreProvisionResult",
]
