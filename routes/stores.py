"""
Store lifecycle API routes.

Called by the Shopify app shell when a shop installs, reinstalls or
uninstalls the app.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.store import (
    StoreInstallRequest,
    StoreProvisionResult,
    StoreReinstallRequest,
    StoreUninstallRequest,
)
from services.product_tag_service import get_product_tag_service
from services.store_service import get_store_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/stores", tags=["Stores"])


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


async def forget_cached_client(shop_domain: str) -> None:
    tags = await get_product_tag_service()
    tags.forget_shop(shop_domain)


@router.post("/install", response_model=StoreProvisionResult)
async def install_store(request: StoreInstallRequest):
    """
    Create the store row for a new shop, with default fitment fields.

    A shop that was installed before is reactivated instead.
    """
    try:
        service = await get_store_service()
        result = await service.provision_store(
            request.shop_domain,
            request.access_token,
            owner_name=request.owner_name,
            owner_email=request.owner_email,
            configured_domain=request.configured_domain,
        )
        await forget_cached_client(request.shop_domain)
        return result
    except Exception as e:
        return handle_error(e)


@router.post("/reinstall", response_model=StoreProvisionResult)
async def reinstall_store(request: StoreReinstallRequest):
    """Reactivate a shop's store row."""
    try:
        service = await get_store_service()
        result = await service.reinstall_store(request.shop_domain, request.access_token)
        await forget_cached_client(request.shop_domain)
        return result
    except Exception as e:
        return handle_error(e)


@router.post("/uninstall", response_model=StoreProvisionResult)
async def uninstall_store(request: StoreUninstallRequest):
    """
    Archive a shop's store row.

    Raises:
        404: Shop has no store row
    """
    try:
        service = await get_store_service()
        result = await service.uninstall_store(request.shop_domain)
        await forget_cached_client(request.shop_domain)
        return result
    except Exception as e:
        return handle_error(e)
