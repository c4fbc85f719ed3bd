"""
Stores uploaded import files in Supabase Storage.

The stored copy is for the import history download link only; the
pipeline never reads it back, so upload failures are logged and ignored.
"""

from datetime import date
from typing import Optional
import structlog

from config import get_admin_client, get_supabase_client, settings
from parsers.fitment_file_parser import file_extension

logger = structlog.get_logger(__name__)

CONTENT_TYPES = {
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
}


def build_stored_file_name(
    job_id: int,
    store_id: int,
    original_file_name: str,
    on: Optional[date] = None,
) -> str:
    """fitment_import_{store_id}_{job_id}_{YYYY-MM-DD}{ext}"""
    on = on or date.today()
    return f"fitment_import_{store_id}_{job_id}_{on.isoformat()}{file_extension(original_file_name)}"


class ImportFileService:
    """Uploads raw import files to the imports bucket."""

    def __init__(self, db, bucket: Optional[str] = None):
        self.db = db
        self.bucket = bucket or settings.storage_bucket

    async def store_file(self, file_name: str, content: bytes) -> bool:
        """
        Upload a file. Returns False (and logs) on failure.
        """
        content_type = CONTENT_TYPES.get(file_extension(file_name), "application/octet-stream")
        try:
            await self.db.storage.from_(self.bucket).upload(
                file_name,
                content,
                {"content-type": content_type}
            )
        except Exception as e:
            logger.warning(
                "import_file_upload_failed",
                bucket=self.bucket,
                file_name=file_name,
                error=str(e)
            )
            return False

        logger.info("import_file_stored", bucket=self.bucket, file_name=file_name, size=len(content))
        return True


_service: Optional[ImportFileService] = None


async def get_import_file_service() -> ImportFileService:
    """Get or create ImportFileService, preferring the service-role client."""
    global _service
    if _service is None:
        client = await get_admin_client() or await get_supabase_client()
        _service = ImportFileService(client)
    return _service
