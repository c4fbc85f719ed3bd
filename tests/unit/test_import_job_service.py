"""
Unit tests for the import job store.

Covers status writes through the RPC, progress checkpoints, manual
transitions and the failed → completed finalize fallback.
"""

import pytest

from services.import_job_service import (
    FAILED_NOT_ALLOWED_NO_LOG,
    FAILED_NOT_ALLOWED_PREFIX,
    ImportJobService,
)
from models.import_job import ImportJobStatus, is_valid_status_transition
from exceptions import (
    ImportJobNotFoundError,
    InvalidStatusTransitionError,
    JobStatusUpdateError,
)
from tests.conftest import MockAPIError
from tests.factories import ImportJobFactory

STATUS_RPC = "update_import_job_status"


@pytest.fixture
def job_service(mock_supabase):
    return ImportJobService(mock_supabase)


def reject_status(*statuses):
    """RPC handler that rejects the given statuses."""
    def handler(params):
        if params["p_status"] in statuses:
            raise MockAPIError('new row violates check constraint "import_jobs_status_check"')
        return None
    return handler


# ===================
# TRANSITION RULES
# ===================

class TestStatusTransitions:

    @pytest.mark.parametrize("current,new,expected", [
        ("pending", "running", True),
        ("running", "running", True),
        ("running", "completed", True),
        ("running", "failed", True),
        ("pending", "completed", False),
        ("running", "pending", False),
        ("completed", "failed", False),
        ("failed", "running", False),
        ("completed", "completed", False),
    ])
    def test_is_valid_status_transition(self, current, new, expected):
        assert is_valid_status_transition(ImportJobStatus(current), ImportJobStatus(new)) is expected


# ===================
# READ / CREATE
# ===================

class TestReadCreate:

    @pytest.mark.asyncio
    async def test_create_job_is_pending(self, job_service, mock_supabase):
        job = await job_service.create_job(store_id=7, total_rows=250)

        assert job.status == ImportJobStatus.PENDING
        assert job.total_rows == 250
        assert job.processed_rows == 0
        assert mock_supabase.table("import_jobs").rows[0]["job_type"] == "fitment_import"

    @pytest.mark.asyncio
    async def test_get_job(self, job_service, mock_supabase):
        mock_supabase.set_table_data("import_jobs", [ImportJobFactory.create(id=5, total_rows=200, processed_rows=50)])

        job = await job_service.get_job(5)

        assert job.id == 5
        assert job.progress_percent == 25.0

    @pytest.mark.asyncio
    async def test_get_job_not_found(self, job_service):
        with pytest.raises(ImportJobNotFoundError) as exc:
            await job_service.get_job(404)

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_find_active_jobs(self, job_service, mock_supabase):
        mock_supabase.set_table_data("import_jobs", [
            ImportJobFactory.create(id=1, status="pending"),
            ImportJobFactory.create(id=2, status="running"),
            ImportJobFactory.create(id=3, status="completed"),
            ImportJobFactory.create(id=4, status="running", store_id=99),
        ])

        jobs = await job_service.find_active_jobs(7)

        assert [j.id for j in jobs] == [1, 2]


# ===================
# STATUS WRITES
# ===================

class TestStatusWrites:

    @pytest.mark.asyncio
    async def test_update_status_rpc_params(self, job_service, mock_supabase):
        await job_service.update_status(5, ImportJobStatus.RUNNING, processed_rows=100)

        assert mock_supabase.calls_to(STATUS_RPC) == [{
            "p_job_id": 5,
            "p_status": "running",
            "p_processed_rows": 100,
            "p_error_log": None,
            "p_started_at": None,
            "p_finished_at": None,
        }]

    @pytest.mark.asyncio
    async def test_update_status_raises_on_rejection(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("running"))

        with pytest.raises(JobStatusUpdateError) as exc:
            await job_service.update_status(5, ImportJobStatus.RUNNING)

        assert exc.value.details["job_id"] == 5

    @pytest.mark.asyncio
    async def test_mark_running_sets_started_at(self, job_service, mock_supabase):
        await job_service.mark_running(5)

        params = mock_supabase.calls_to(STATUS_RPC)[0]
        assert params["p_status"] == "running"
        assert params["p_started_at"] is not None

    @pytest.mark.asyncio
    async def test_update_progress_never_raises(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("running"))

        await job_service.update_progress(5, 100)

        assert mock_supabase.calls_to(STATUS_RPC)[0]["p_processed_rows"] == 100


# ===================
# FINALIZE
# ===================

class TestFinalize:

    @pytest.mark.asyncio
    async def test_writes_completed(self, job_service, mock_supabase):
        written = await job_service.finalize(5, ImportJobStatus.COMPLETED, processed_rows=10)

        assert written == ImportJobStatus.COMPLETED
        params = mock_supabase.calls_to(STATUS_RPC)[0]
        assert params["p_status"] == "completed"
        assert params["p_processed_rows"] == 10
        assert params["p_finished_at"] is not None

    @pytest.mark.asyncio
    async def test_failed_rejected_falls_back_to_completed(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("failed"))

        written = await job_service.finalize(5, ImportJobStatus.FAILED, processed_rows=10, error_log="Row 3 broke")

        assert written == ImportJobStatus.COMPLETED
        calls = mock_supabase.calls_to(STATUS_RPC)
        assert [c["p_status"] for c in calls] == ["failed", "completed"]
        assert calls[1]["p_error_log"] == f"{FAILED_NOT_ALLOWED_PREFIX}\nRow 3 broke"
        assert calls[1]["p_error_log"].startswith("[failed status requested but not allowed]")

    @pytest.mark.asyncio
    async def test_fallback_without_error_log(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("failed"))

        await job_service.finalize(5, ImportJobStatus.FAILED, processed_rows=0)

        assert mock_supabase.calls_to(STATUS_RPC)[1]["p_error_log"] == FAILED_NOT_ALLOWED_NO_LOG

    @pytest.mark.asyncio
    async def test_both_writes_rejected_is_swallowed(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("failed", "completed"))

        written = await job_service.finalize(5, ImportJobStatus.FAILED, processed_rows=0, error_log="x")

        assert written is None
        assert len(mock_supabase.calls_to(STATUS_RPC)) == 2

    @pytest.mark.asyncio
    async def test_completed_rejected_does_not_retry(self, job_service, mock_supabase):
        mock_supabase.set_rpc_handler(STATUS_RPC, reject_status("completed"))

        written = await job_service.finalize(5, ImportJobStatus.COMPLETED, processed_rows=3)

        assert written is None
        assert len(mock_supabase.calls_to(STATUS_RPC)) == 1


# ===================
# MANUAL TRANSITION
# ===================

class TestTransition:

    @pytest.mark.asyncio
    async def test_running_to_failed(self, job_service, mock_supabase):
        mock_supabase.set_table_data("import_jobs", [ImportJobFactory.create(id=5, status="running", processed_rows=40)])

        await job_service.transition(5, ImportJobStatus.FAILED, processed_rows=40, error_log="stuck")

        params = mock_supabase.calls_to(STATUS_RPC)[0]
        assert params["p_status"] == "failed"
        assert params["p_finished_at"] is not None

    @pytest.mark.asyncio
    async def test_backward_transition_rejected(self, job_service, mock_supabase):
        mock_supabase.set_table_data("import_jobs", [ImportJobFactory.create(id=5, status="completed")])

        with pytest.raises(InvalidStatusTransitionError):
            await job_service.transition(5, ImportJobStatus.RUNNING)

        assert mock_supabase.calls_to(STATUS_RPC) == []

    @pytest.mark.asyncio
    async def test_processed_rows_cannot_decrease(self, job_service, mock_supabase):
        mock_supabase.set_table_data("import_jobs", [ImportJobFactory.create(id=5, status="running", processed_rows=200)])

        with pytest.raises(InvalidStatusTransitionError):
            await job_service.transition(5, ImportJobStatus.RUNNING, processed_rows=100)
