"""
Business logic services.

Each service handles one domain area.
"""

from services.import_job_service import ImportJobService, get_import_job_service
from services.fitment_upsert_service import FitmentUpsertService, RowResult, get_fitment_upsert_service
from services.product_tag_service import ProductTagService, get_product_tag_service
from services.fitment_import_service import FitmentImportService, get_fitment_import_service
from services.store_service import StoreService, get_store_service, plan_row_limit
from services.import_file_service import ImportFileService, get_import_file_service
from services.variant_sync_service import VariantSyncService, get_variant_sync_service

__all__ = [
    "ImportJobService",
    "get_import_job_service",
    "FitmentUpsertService",
    "RowResult",
    "get_fitment_upsert_service",
    "ProductTagService",
    "get_product_tag_service",
    "FitmentImportService",
    "get_fitment_import_service",
    "StoreService",
    "get_store_service",
    "plan_row_limit",
    "ImportFileService",
    "get_import_file_service",
    "VariantSyncService",
    "get_variant_sync_service",
]
