"""
Product tag API routes.

Bulk add/remove of Shopify product tags.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.tags import BulkTagRequest, BulkTagRemoveResult, BulkTagUpdateResult
from services.product_tag_service import get_product_tag_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tags", tags=["Tags"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
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


@router.post("/bulk-update", response_model=BulkTagUpdateResult)
async def bulk_update_product_tags(request: BulkTagRequest):
    """
    Add tags to many products without overwriting existing tags.

    Per-product failures are listed in the response, not raised.

    Raises:
        404: Shop has no store row
        503: No Shopify client for the shop
    """
    try:
        service = await get_product_tag_service()
        return await service.bulk_update_tags(request.product_ids, request.tags, shop_id=request.shop_id)
    except Exception as e:
        return handle_error(e)


@router.post("/bulk-remove", response_model=BulkTagRemoveResult)
async def bulk_remove_product_tags(request: BulkTagRequest):
    """
    Remove tags from many products.

    Raises:
        422: Empty product list or tags
        503: Shopify not configured
    """
    try:
        service = await get_product_tag_service()
        return await service.bulk_remove_tags(request.product_ids, request.tags, shop_id=request.shop_id)
    except Exception as e:
        return handle_error(e)
