"""
Fitment import pipeline.

Turns an uploaded spreadsheet (headers + rows) into fitment records and
Shopify product tags, tracked through an import_jobs record.

Flow:
    mark job running
    → for each batch of rows (strictly in order):
        upsert every row concurrently, wait for all to settle
        → push tags for rows that matched Shopify products
        → merge results, checkpoint processed_rows
    → finalize job (failed if any error was collected, else completed)

run() never raises: a fatal error is written to the job as "failed" and
returned as a structured FileImportResult.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional
import structlog

from config import settings
from models.import_job import FileImportRequest, FileImportResult, ImportJobStatus
from parsers.row_normalizer import HeaderColumn, build_header_map
from services.fitment_upsert_service import (
    FitmentUpsertService,
    RowResult,
    get_fitment_upsert_service,
)
from services.import_job_service import ImportJobService, get_import_job_service
from services.product_tag_service import ProductTagService, get_product_tag_service
from exceptions import JobStatusUpdateError

logger = structlog.get_logger(__name__)

SHOPIFY_NOT_CONFIGURED = "Shopify is not configured"


class ImportAbortedError(Exception):
    """Raised inside run() for conditions that end the whole import."""
    pass


@dataclass
class ImportTotals:
    """Job-level accumulators. Kept outside the try block so a fatal error still reports them."""
    processed_rows: int = 0
    product_ids: list[int] = field(default_factory=list)
    updated_product_tags: int = 0
    errors: list[str] = field(default_factory=list)


def chunk_rows(rows: list, size: int) -> list[list]:
    """Split rows into consecutive batches of at most `size`."""
    return [rows[i:i + size] for i in range(0, len(rows), size)]


def build_summary_message(totals: ImportTotals) -> str:
    """Human-readable summary stored alongside the result."""
    message = (
        f"Processed {totals.processed_rows} rows, "
        f"updated fitments for {len(totals.product_ids)} products, "
        f"and applied tags to {totals.updated_product_tags} products."
    )
    if totals.errors:
        message += f" {len(totals.errors)} errors encountered."
    return message


class FitmentImportService:
    """
    Batch orchestrator for fitment imports.

    Args:
        jobs: Job store for status and progress writes
        upserts: Per-row fitment upsert client
        tags: Shopify tag writer, or None when Shopify is not configured
        batch_size: Rows per concurrent batch
        error_log_max_messages: Cap on messages persisted to the job
    """

    def __init__(
        self,
        jobs: ImportJobService,
        upserts: FitmentUpsertService,
        tags: Optional[ProductTagService] = None,
        batch_size: Optional[int] = None,
        error_log_max_messages: Optional[int] = None,
    ):
        self.jobs = jobs
        self.upserts = upserts
        self.tags = tags
        self.batch_size = batch_size or settings.import_batch_size
        self.error_log_max_messages = error_log_max_messages or settings.error_log_max_messages

    async def run(self, request: FileImportRequest) -> FileImportResult:
        """
        Run a full import for one job.

        Returns:
            FileImportResult, also on fatal errors
        """
        totals = ImportTotals()
        log = logger.bind(job_id=request.job_id, file_name=request.file_name)

        try:
            shop_id = request.shop_id or settings.shopify_shop_domain
            if not shop_id:
                raise ImportAbortedError("No shop ID found in current session")

            log.info("fitment_import_started", row_count=len(request.rows))

            try:
                await self.jobs.mark_running(request.job_id)
            except JobStatusUpdateError as e:
                raise ImportAbortedError(f"Could not start job: {e.message}") from e

            if not request.headers:
                raise ImportAbortedError("Invalid or missing headers")
            if not request.rows:
                raise ImportAbortedError("Invalid or missing row data")

            header_map = build_header_map(request.headers)
            log.info("header_mapping", headers=[(h.original, h.slug) for h in header_map])

            batches = chunk_rows(request.rows, self.batch_size)
            for batch_index, batch in enumerate(batches):
                log.info(
                    "processing_batch",
                    batch=batch_index + 1,
                    total_batches=len(batches),
                    size=len(batch)
                )
                await self._process_batch(
                    request.database_store_id,
                    shop_id,
                    header_map,
                    batch,
                    totals,
                    log
                )
                await self.jobs.update_progress(request.job_id, totals.processed_rows)

            has_errors = bool(totals.errors)
            message = build_summary_message(totals)
            log.info(
                "fitment_import_completed",
                processed_rows=totals.processed_rows,
                updated_fitments=len(totals.product_ids),
                updated_product_tags=totals.updated_product_tags,
                error_count=len(totals.errors)
            )

            await self.jobs.finalize(
                request.job_id,
                ImportJobStatus.FAILED if has_errors else ImportJobStatus.COMPLETED,
                processed_rows=totals.processed_rows,
                error_log=self._bounded_error_log(totals.errors) if has_errors else None
            )

            return FileImportResult(
                success=bool(totals.product_ids) or not has_errors,
                processed_rows=totals.processed_rows,
                updated_fitments=len(totals.product_ids),
                updated_product_tags=totals.updated_product_tags,
                errors=list(totals.errors) if has_errors else None,
                message=message,
            )

        except Exception as fatal:
            error_message = str(fatal) or type(fatal).__name__
            log.error(
                "fitment_import_fatal_error",
                error=error_message,
                error_type=type(fatal).__name__,
                processed_rows=totals.processed_rows
            )

            await self.jobs.finalize(
                request.job_id,
                ImportJobStatus.FAILED,
                processed_rows=totals.processed_rows,
                error_log=error_message
            )

            return FileImportResult(
                success=False,
                processed_rows=totals.processed_rows,
                updated_fitments=len(totals.product_ids),
                updated_product_tags=totals.updated_product_tags,
                errors=[error_message],
                message=f"Completed with errors: {error_message}",
            )

    async def _process_batch(
        self,
        store_id: int,
        shop_id: str,
        header_map: tuple[HeaderColumn, ...],
        batch: list,
        totals: ImportTotals,
        log,
    ) -> None:
        """Upsert one batch concurrently, push tags, merge into totals."""
        outcomes = await asyncio.gather(
            *(self.upserts.process_row(store_id, header_map, row) for row in batch),
            return_exceptions=True
        )
        results = [self._as_row_result(outcome) for outcome in outcomes]

        tag_candidates = [r for r in results if r.success and r.shopify_product_ids]
        for result in tag_candidates:
            if result.tags:
                await self._propagate_tags(result, shop_id, totals, log)

        totals.product_ids.extend(pid for r in results if r.success for pid in r.product_ids)
        totals.errors.extend(r.error for r in results if not r.success and r.error)
        totals.processed_rows += len(batch)

        log.info(
            "batch_complete",
            succeeded=sum(1 for r in results if r.success),
            size=len(batch),
            tag_candidates=len(tag_candidates)
        )

    @staticmethod
    def _as_row_result(outcome) -> RowResult:
        if isinstance(outcome, RowResult):
            return outcome
        if isinstance(outcome, Exception):
            return RowResult.failure(str(outcome) or type(outcome).__name__)
        raise outcome

    async def _propagate_tags(
        self,
        result: RowResult,
        shop_id: str,
        totals: ImportTotals,
        log,
    ) -> None:
        """
        Push a successful row's tags to its Shopify products.

        Failures are added to the job errors; the row stays successful.
        """
        joined_ids = ", ".join(result.shopify_product_ids)
        if self.tags is None:
            totals.errors.append(f"Error updating tags for products {joined_ids}: {SHOPIFY_NOT_CONFIGURED}")
            return

        try:
            tag_result = await self.tags.bulk_update_tags(
                result.shopify_product_ids,
                result.tags,
                shop_id=shop_id
            )
        except Exception as e:
            message = f"Error updating tags for products {joined_ids}: {getattr(e, 'message', None) or e}"
            log.error("tag_update_failed", error=message)
            totals.errors.append(message)
            return

        if tag_result.errors:
            totals.errors.extend(tag_result.errors)
            log.error("tag_update_reported_errors", error_count=len(tag_result.errors))

        if tag_result.updated_count > 0:
            totals.updated_product_tags += tag_result.updated_count
            log.info(
                "tags_updated",
                product_count=tag_result.updated_count,
                tags=result.tags
            )
        else:
            message = f"Failed to update product tags for products: {joined_ids}"
            log.error("tag_update_empty", error=message)
            totals.errors.append(message)

    def _bounded_error_log(self, errors: list[str]) -> str:
        return "; ".join(errors[:self.error_log_max_messages])


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[FitmentImportService] = None


async def get_fitment_import_service() -> FitmentImportService:
    """Get or create FitmentImportService instance."""
    global _service
    if _service is None:
        tags = await get_product_tag_service()
        _service = FitmentImportService(
            jobs=await get_import_job_service(),
            upserts=await get_fitment_upsert_service(),
            tags=tags,
        )
    return _service
