"""
Database connection management.

Provides the async Supabase client singleton used by every service.
The import pipeline fans out concurrent RPC calls, so the async client
is the only handle the application hands out.
"""

from supabase import acreate_client, AsyncClient
from typing import Optional
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


_client: Optional[AsyncClient] = None
_admin_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """
    Get cached async Supabase client instance.

    The first call creates the client; later calls reuse it.

    Returns:
        AsyncClient: Supabase client

    Raises:
        DatabaseError: If the client cannot be created
    """
    global _client
    if _client is not None:
        return _client

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        _client = await acreate_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info(
            "supabase_connected",
            status="success"
        )

        return _client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e), {"service": "supabase"}) from e


async def get_admin_client() -> Optional[AsyncClient]:
    """
    Get Supabase client with service role key (admin access).

    Only available if SUPABASE_SERVICE_KEY is configured. Storage uploads
    use it when present because the imports bucket is not writable anonymously.

    Returns:
        AsyncClient: Admin Supabase client, or None if not configured
    """
    global _admin_client
    if not settings.supabase_service_key:
        logger.warning("admin_client_not_configured")
        return None

    if _admin_client is not None:
        return _admin_client

    try:
        _admin_client = await acreate_client(
            settings.supabase_url,
            settings.supabase_service_key
        )
        return _admin_client
    except Exception as e:
        logger.error(
            "admin_client_failed",
            error=str(e)
        )
        return None


# ===================
# HELPER FUNCTIONS
# ===================

async def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = await get_supabase_client()

        stores = await client.table("stores").select("id", count="exact").execute()
        jobs = await client.table("import_jobs").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "stores_count": stores.count,
            "import_jobs_count": jobs.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
