"""
Mirrors Shopify product variants into the store_variants table.

Runs as a background task after a variant webhook. The RPC upserts on
(shopify_variant_id, shopify_product_id), so redelivering the same variant
is harmless.
"""

from datetime import datetime, timezone
from typing import Any, Optional
import structlog

from config import get_supabase_client
from integrations.shopify import ShopifyClient, get_shopify_client
from models.variant import StoreVariantPayload, VariantSyncRequest, VariantSyncResult
from exceptions import DatabaseError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_VARIANT_TITLE = "Default Title"


def _to_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(str(value))
    except ValueError:
        return None


def _to_tag_list(tags: Any) -> list[str]:
    """Shopify returns tags as a list (GraphQL) or a comma string (REST)."""
    if isinstance(tags, list):
        return [str(t) for t in tags]
    if isinstance(tags, str) and tags.strip():
        return [t.strip() for t in tags.split(",") if t.strip()]
    return []


def build_variant_payload(
    request: VariantSyncRequest,
    product: dict,
    now: Optional[datetime] = None,
) -> StoreVariantPayload:
    """
    Combine variant webhook data with its parent product.

    Raises:
        ValidationError: If the product has no handle or title
    """
    if not product.get("handle") or not product.get("title"):
        raise ValidationError(
            f"Product missing required fields - handle: {product.get('handle')}, title: {product.get('title')}",
            code="PRODUCT_INCOMPLETE",
            details={"product_id": request.product_id}
        )

    variant = request.variant_data
    title = product["title"]
    variant_title = variant.get("title")
    if not variant_title or variant_title == DEFAULT_VARIANT_TITLE:
        variant_title = title

    description = product.get("descriptionHtml") or product.get("body") or None
    now = now or datetime.now(timezone.utc)

    return StoreVariantPayload(
        shop_domain=request.shop_domain,
        shopify_product_id=request.product_id,
        shopify_variant_id=request.variant_id,
        handle=product["handle"],
        title=title,
        variant_title=variant_title,
        sku=variant.get("sku") or None,
        description=description,
        seo_title=title,
        seo_description=description,
        product_type=product.get("productType") or None,
        vendor=product.get("vendor") or None,
        available="true" if variant.get("availableForSale") else "false",
        tags=_to_tag_list(product.get("tags")),
        collections=[],
        price=_to_float(variant.get("price")),
        compare_at_price=_to_float(variant.get("compareAtPrice")),
        status=str(product.get("status") or "draft").lower(),
        image_url=variant.get("imageUrl") or None,
        updated_at=now.isoformat(),
    )


class VariantSyncService:
    """Fetches the parent product and upserts the variant row."""

    UPSERT_RPC = "rpc_upsert_store_variant"

    def __init__(self, db, shopify: ShopifyClient):
        self.db = db
        self.shopify = shopify

    async def sync_variant(self, request: VariantSyncRequest) -> VariantSyncResult:
        """
        Sync one variant.

        Raises:
            NotFoundError: Parent product not found in Shopify
            DatabaseError: RPC failed (the background task is marked failed)
        """
        log = logger.bind(
            variant_id=request.variant_id,
            product_id=request.product_id,
            shop_domain=request.shop_domain
        )

        product = await self.shopify.get_product(request.product_id)
        if not product:
            raise NotFoundError("Product", request.product_id, code="PRODUCT_NOT_FOUND")

        payload = build_variant_payload(request, product)

        try:
            result = await self.db.rpc(
                self.UPSERT_RPC,
                {"p": payload.model_dump()}
            ).execute()
        except Exception as e:
            log.error("variant_sync_failed", error=str(e), error_type=type(e).__name__)
            raise DatabaseError(self.UPSERT_RPC, str(e), {"variant_id": request.variant_id})

        log.info("variant_synced")
        return VariantSyncResult(
            success=True,
            variant_id=request.variant_id,
            product_id=request.product_id,
            shop_domain=request.shop_domain,
            synced_at=datetime.now(timezone.utc).isoformat(),
            result=result.data,
        )


_service: Optional[VariantSyncService] = None


async def get_variant_sync_service() -> VariantSyncService:
    """Get or create VariantSyncService instance."""
    global _service
    if _service is None:
        _service = VariantSyncService(await get_supabase_client(), get_shopify_client())
    return _service
