"""
Import job store.

Reads and writes the import_jobs table. Status changes go through the
update_import_job_status RPC; the pipeline never updates the row directly.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.import_job import (
    ACTIVE_STATUSES,
    ImportJobResponse,
    ImportJobStatus,
    is_valid_status_transition,
)
from exceptions import (
    DatabaseError,
    ImportJobNotFoundError,
    InvalidStatusTransitionError,
    JobStatusUpdateError,
)

logger = structlog.get_logger(__name__)

FAILED_NOT_ALLOWED_PREFIX = "[failed status requested but not allowed]"
FAILED_NOT_ALLOWED_NO_LOG = "[failed status requested but not allowed by constraints]"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ImportJobService:
    """
    Import job persistence.

    Handles:
    - Job creation and lookup
    - Status writes through the update_import_job_status RPC
    - Progress checkpoints that never raise
    - Terminal status writes with a failed → completed fallback
    """

    STATUS_RPC = "update_import_job_status"

    def __init__(self, db):
        self.db = db
        self.table = "import_jobs"

    # ===================
    # READ / CREATE
    # ===================

    async def create_job(self, store_id: int, total_rows: int) -> ImportJobResponse:
        """Insert a pending fitment_import job."""
        try:
            result = await (
                self.db.table(self.table)
                .insert({
                    "store_id": store_id,
                    "job_type": "fitment_import",
                    "status": ImportJobStatus.PENDING.value,
                    "total_rows": total_rows,
                    "processed_rows": 0,
                })
                .execute()
            )
        except Exception as e:
            logger.error("create_import_job_failed", store_id=store_id, error=str(e))
            raise DatabaseError("insert", str(e), {"table": self.table})

        if not result.data:
            raise DatabaseError("insert", "No job returned", {"table": self.table})

        job = ImportJobResponse(**result.data[0])
        logger.info(
            "import_job_created",
            job_id=job.id,
            store_id=store_id,
            total_rows=total_rows
        )
        return job

    async def get_job(self, job_id: int) -> ImportJobResponse:
        """
        Get a job by id.

        Raises:
            ImportJobNotFoundError: If no such job exists
        """
        try:
            result = await (
                self.db.table(self.table)
                .select("*")
                .eq("id", job_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_job_failed", job_id=job_id, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

        if not result.data:
            raise ImportJobNotFoundError(job_id)

        return ImportJobResponse(**result.data[0])

    async def list_jobs(self, store_id: int, limit: int = 20) -> list[ImportJobResponse]:
        """Import history for a store, newest first."""
        result = await (
            self.db.table(self.table)
            .select("*")
            .eq("store_id", store_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [ImportJobResponse(**row) for row in result.data]

    async def find_active_jobs(self, store_id: int) -> list[ImportJobResponse]:
        """Jobs still pending or running for a store."""
        result = await (
            self.db.table(self.table)
            .select("*")
            .eq("store_id", store_id)
            .in_("status", [s.value for s in ACTIVE_STATUSES])
            .order("created_at", desc=True)
            .execute()
        )
        return [ImportJobResponse(**row) for row in result.data]

    # ===================
    # STATUS WRITES
    # ===================

    async def update_status(
        self,
        job_id: int,
        status: ImportJobStatus,
        processed_rows: Optional[int] = None,
        error_log: Optional[str] = None,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        """
        Write a status through the RPC.

        Raises:
            JobStatusUpdateError: If the RPC rejects the update
        """
        status = ImportJobStatus(status)
        try:
            await self.db.rpc(self.STATUS_RPC, {
                "p_job_id": job_id,
                "p_status": status.value,
                "p_processed_rows": processed_rows,
                "p_error_log": error_log,
                "p_started_at": _iso(started_at),
                "p_finished_at": _iso(finished_at),
            }).execute()
        except Exception as e:
            logger.error(
                "job_status_update_failed",
                job_id=job_id,
                status=status.value,
                error=str(e)
            )
            raise JobStatusUpdateError(job_id, status.value, str(e)) from e

        logger.debug(
            "job_status_updated",
            job_id=job_id,
            status=status.value,
            processed_rows=processed_rows
        )

    async def transition(
        self,
        job_id: int,
        new_status: ImportJobStatus,
        processed_rows: Optional[int] = None,
        error_log: Optional[str] = None,
    ) -> ImportJobResponse:
        """
        Validate and apply a manual status change.

        Raises:
            ImportJobNotFoundError: Unknown job
            InvalidStatusTransitionError: Backward or out-of-terminal move
        """
        job = await self.get_job(job_id)
        new_status = ImportJobStatus(new_status)

        if not is_valid_status_transition(job.status, new_status):
            raise InvalidStatusTransitionError(job.status.value, new_status.value)

        if processed_rows is not None and processed_rows < job.processed_rows:
            raise InvalidStatusTransitionError(
                f"{job.status.value} ({job.processed_rows} rows)",
                f"{new_status.value} ({processed_rows} rows)"
            )

        now = datetime.now(timezone.utc)
        await self.update_status(
            job_id,
            new_status,
            processed_rows=processed_rows,
            error_log=error_log,
            started_at=now if new_status == ImportJobStatus.RUNNING and job.started_at is None else None,
            finished_at=now if new_status in (ImportJobStatus.COMPLETED, ImportJobStatus.FAILED) else None,
        )
        return await self.get_job(job_id)

    async def mark_running(self, job_id: int) -> None:
        """Move a job to running. Raises JobStatusUpdateError on rejection."""
        await self.update_status(
            job_id,
            ImportJobStatus.RUNNING,
            started_at=datetime.now(timezone.utc)
        )
        logger.info("job_running", job_id=job_id)

    async def update_progress(self, job_id: int, processed_rows: int) -> None:
        """Checkpoint processed_rows. Failures are logged, never raised."""
        try:
            await self.update_status(
                job_id,
                ImportJobStatus.RUNNING,
                processed_rows=processed_rows
            )
        except JobStatusUpdateError as e:
            logger.warning(
                "job_progress_update_failed",
                job_id=job_id,
                processed_rows=processed_rows,
                error=e.message
            )

    async def finalize(
        self,
        job_id: int,
        status: ImportJobStatus,
        processed_rows: int,
        error_log: Optional[str] = None,
    ) -> Optional[ImportJobStatus]:
        """
        Write the terminal status. Never raises.

        If writing "failed" is rejected, retry once as "completed" with the
        failure reason prefixed into the error log. If that is rejected too,
        give up and log.

        Returns:
            The status actually written, or None if nothing could be written
        """
        status = ImportJobStatus(status)
        finished_at = datetime.now(timezone.utc)

        try:
            await self.update_status(
                job_id,
                status,
                processed_rows=processed_rows,
                error_log=error_log,
                finished_at=finished_at
            )
            logger.info("job_finalized", job_id=job_id, status=status.value)
            return status
        except JobStatusUpdateError as e:
            if status != ImportJobStatus.FAILED:
                logger.error("job_finalize_failed", job_id=job_id, status=status.value, error=e.message)
                return None

        fallback_log = (
            f"{FAILED_NOT_ALLOWED_PREFIX}\n{error_log}" if error_log
            else FAILED_NOT_ALLOWED_NO_LOG
        )
        try:
            await self.update_status(
                job_id,
                ImportJobStatus.COMPLETED,
                processed_rows=processed_rows,
                error_log=fallback_log,
                finished_at=finished_at
            )
            logger.warning("job_finalized_with_fallback", job_id=job_id, requested="failed", written="completed")
            return ImportJobStatus.COMPLETED
        except JobStatusUpdateError as e:
            logger.error("job_finalize_fallback_failed", job_id=job_id, error=e.message)
            return None


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[ImportJobService] = None


async def get_import_job_service() -> ImportJobService:
    """Get or create ImportJobService instance."""
    global _service
    if _service is None:
        _service = ImportJobService(await get_supabase_client())
    return _service
