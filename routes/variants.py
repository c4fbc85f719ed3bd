"""
Variant sync API routes.
"""

from fastapi import APIRouter, BackgroundTasks
import structlog

from models.variant import VariantSyncRequest
from services.variant_sync_service import get_variant_sync_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/variants", tags=["Variants"])


async def sync_variant_task(request: VariantSyncRequest) -> None:
    """Background consumer for one variant sync."""
    service = await get_variant_sync_service()
    await service.sync_variant(request)


@router.post("/sync", status_code=202)
async def enqueue_variant_sync(request: VariantSyncRequest, background_tasks: BackgroundTasks):
    """
    Queue a variant for mirroring into store_variants.

    Returns immediately; the sync runs after the response is sent.
    """
    background_tasks.add_task(sync_variant_task, request)
    logger.info(
        "variant_sync_queued",
        variant_id=request.variant_id,
        product_id=request.product_id,
        shop_domain=request.shop_domain
    )
    return {"queued": True, "variantId": request.variant_id, "productId": request.product_id}
