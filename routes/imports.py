"""
Fitment import API routes.

Upload a fitment sheet, run the import pipeline, and follow job progress.
"""

from fastapi import APIRouter, BackgroundTasks, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse
from typing import Optional
import structlog

from config import settings
from models.import_job import (
    FileImportRequest,
    FileImportResult,
    ImportJobListResponse,
    ImportJobResponse,
    JobStatusUpdateRequest,
)
from parsers.fitment_file_parser import (
    build_sample_template,
    ensure_valid_headers,
    parse_fitment_file,
    validate_upload,
)
from services.fitment_import_service import get_fitment_import_service
from services.import_file_service import build_stored_file_name, get_import_file_service
from services.import_job_service import get_import_job_service
from services.store_service import get_store_service, plan_row_limit
from exceptions import AppError, RowLimitExceededError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/imports", tags=["Imports"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


async def run_import(request: FileImportRequest) -> FileImportResult:
    """Run the pipeline. Used directly and as a background task."""
    service = await get_fitment_import_service()
    return await service.run(request)


# ===================
# ROUTES
# ===================

@router.post("/run", response_model=FileImportResult)
async def run_fitment_import(request: FileImportRequest):
    """
    Run the import pipeline for an existing job and wait for the result.

    Row and tag failures are reported in the result body; this endpoint
    returns 200 even when the job ends as failed.
    """
    logger.info("fitment_import_requested", job_id=request.job_id, rows=len(request.rows))
    return await run_import(request)


@router.post("/upload", response_model=ImportJobResponse, status_code=202)
async def upload_fitment_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    shop_domain: str = Form(...),
    plan: Optional[str] = Form(None),
    shop_id: Optional[str] = Form(None),
):
    """
    Upload a fitment sheet and start importing it in the background.

    Validates the file, the header row and the plan row limit, creates a
    pending job, stores the file, then schedules the pipeline.

    Raises:
        404: Unknown shop
        422: Bad file, missing columns, or row limit exceeded
    """
    logger.info(
        "fitment_upload_started",
        filename=file.filename,
        shop_domain=shop_domain,
        plan=plan
    )

    try:
        content = await file.read()
        validate_upload(file.filename or "", len(content), settings.max_upload_bytes)

        store_service = await get_store_service()
        store = await store_service.get_store_by_domain(shop_domain)
        fields = await store_service.get_fitment_fields(store["id"])

        parsed = parse_fitment_file(content, file.filename or "")
        ensure_valid_headers(parsed.headers, fields)

        limit = plan_row_limit(plan)
        if parsed.row_count > limit:
            raise RowLimitExceededError(parsed.row_count, limit)

        job_service = await get_import_job_service()
        job = await job_service.create_job(store["id"], parsed.row_count)

        file_name = build_stored_file_name(job.id, store["id"], file.filename or "")
        file_service = await get_import_file_service()
        await file_service.store_file(file_name, content)

        background_tasks.add_task(
            run_import,
            FileImportRequest(
                job_id=job.id,
                database_store_id=store["id"],
                headers=parsed.headers,
                rows=parsed.rows,
                file_name=file_name,
                shop_id=shop_id or shop_domain,
            )
        )

        logger.info("fitment_import_scheduled", job_id=job.id, rows=parsed.row_count)
        return job

    except Exception as e:
        return handle_error(e)


@router.get("/template", response_class=PlainTextResponse)
async def download_template(shop_domain: str = Query(...)):
    """Sample CSV built from the store's fitment fields."""
    try:
        store_service = await get_store_service()
        store = await store_service.get_store_by_domain(shop_domain)
        fields = await store_service.get_fitment_fields(store["id"])

        filename = f"fitment_sample_{shop_domain.split('.')[0]}.csv"
        return PlainTextResponse(
            build_sample_template(fields),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )
    except Exception as e:
        return handle_error(e)


@router.get("", response_model=ImportJobListResponse)
async def list_import_jobs(
    store_id: int = Query(..., description="Database store id"),
    limit: int = Query(20, ge=1, le=100),
):
    """Import history for a store, newest first."""
    try:
        service = await get_import_job_service()
        jobs = await service.list_jobs(store_id, limit=limit)
        return ImportJobListResponse(data=jobs, total=len(jobs))
    except Exception as e:
        return handle_error(e)


@router.get("/active", response_model=ImportJobListResponse)
async def list_active_import_jobs(store_id: int = Query(..., description="Database store id")):
    """Jobs still pending or running for a store."""
    try:
        service = await get_import_job_service()
        jobs = await service.find_active_jobs(store_id)
        return ImportJobListResponse(data=jobs, total=len(jobs))
    except Exception as e:
        return handle_error(e)


@router.get("/{job_id}", response_model=ImportJobResponse)
async def get_import_job(job_id: int):
    """
    Get a single import job.

    Raises:
        404: Job not found
    """
    try:
        service = await get_import_job_service()
        return await service.get_job(job_id)
    except Exception as e:
        return handle_error(e)


@router.patch("/{job_id}/status", response_model=ImportJobResponse)
async def update_import_job_status(job_id: int, data: JobStatusUpdateRequest):
    """
    Move a job forward manually (e.g. mark a stuck job failed).

    Raises:
        404: Job not found
        422: Backward or post-terminal transition
    """
    try:
        service = await get_import_job_service()
        return await service.transition(
            job_id,
            data.status,
            processed_rows=data.processed_rows,
            error_log=data.error_log
        )
    except Exception as e:
        return handle_error(e)
