"""
Bulk product tag writes against Shopify.

Products are tagged in small groups: every call in a group runs
concurrently and is allowed to settle, then the service pauses before the
next group to stay under the Admin API rate limit.

Writes go to the shop named by shop_id. The configured shop uses the
settings client; any other shop uses the access token on its stores row.
"""

import asyncio
from typing import Awaitable, Callable, Optional
import structlog

from config import settings
from exceptions import ShopifyGraphQLError, ValidationError
from integrations.shopify import ShopifyClient, format_user_errors, get_shopify_client
from models.tags import BulkTagRemoveResult, BulkTagUpdateResult
from services.store_service import StoreService, get_store_service
from utils.text_utils import dedupe_preserving_order

logger = structlog.get_logger(__name__)

MAX_REPORTED_ERRORS = 10

TagWriter = Callable[[str, list[str]], Awaitable[list[dict]]]


class ProductTagService:
    """
    Adds or removes a tag set on many Shopify products.

    Args:
        shopify: Client for the configured shop, or None
        batch_size: Products per concurrent group
        delay_seconds: Pause between groups
        stores: Store lookup used to reach shops other than the configured one
    """

    def __init__(
        self,
        shopify: Optional[ShopifyClient],
        batch_size: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        stores: Optional[StoreService] = None,
    ):
        self.shopify = shopify
        self.stores = stores
        self.batch_size = batch_size or settings.tag_batch_size
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None
            else settings.tag_batch_delay_ms / 1000
        )
        self._shop_clients: dict[str, ShopifyClient] = {}

    async def _client_for(self, shop_id: Optional[str]) -> ShopifyClient:
        """
        Resolve the Shopify client for a shop.

        Raises:
            ShopifyGraphQLError: No client can be built for the shop
            StoreNotFoundError: The shop has no stores row
        """
        default_domain = self.shopify.shop_domain if self.shopify is not None else None
        if not shop_id or shop_id == default_domain:
            if self.shopify is None:
                raise ShopifyGraphQLError("Shopify is not configured")
            return self.shopify

        if shop_id in self._shop_clients:
            return self._shop_clients[shop_id]

        if self.stores is None:
            raise ShopifyGraphQLError(
                f"Shopify is not configured for shop {shop_id}",
                details={"shop_id": shop_id}
            )

        store = await self.stores.get_store_by_domain(shop_id)
        if not store.get("access_token") or store.get("status") == "archived":
            raise ShopifyGraphQLError(
                f"Shopify is not configured for shop {shop_id}",
                details={"shop_id": shop_id, "status": store.get("status")}
            )

        client = ShopifyClient(shop_domain=store["shop_domain"], access_token=store["access_token"])
        self._shop_clients[shop_id] = client
        logger.info("shop_client_created", shop_id=shop_id)
        return client

    def forget_shop(self, shop_id: str) -> None:
        """Drop a cached shop client so the next write rereads its token."""
        self._shop_clients.pop(shop_id, None)

    async def _apply(
        self,
        writer: TagWriter,
        action: str,
        product_ids: list[str],
        tags: list[str],
    ) -> tuple[int, list[str]]:
        """
        Run writer(product_id, tags) over all products in groups.

        Returns:
            (success_count, errors) with one error string per failed product
        """
        success_count = 0
        errors: list[str] = []
        total_batches = (len(product_ids) + self.batch_size - 1) // self.batch_size

        for start in range(0, len(product_ids), self.batch_size):
            batch = product_ids[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1

            results = await asyncio.gather(
                *(writer(pid, tags) for pid in batch),
                return_exceptions=True
            )

            for pid, outcome in zip(batch, results):
                if isinstance(outcome, BaseException):
                    reason = getattr(outcome, "message", None) or str(outcome) or type(outcome).__name__
                    errors.append(f"Failed to {action} product {pid}: {reason}")
                elif outcome:
                    errors.append(f"UserErrors for product {pid}: {format_user_errors(outcome)}")
                else:
                    success_count += 1

            logger.info(
                "tag_batch_complete",
                action=action,
                batch=batch_number,
                total_batches=total_batches,
                success_count=success_count,
                error_count=len(errors)
            )

            if start + self.batch_size < len(product_ids) and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        return success_count, errors

    async def bulk_update_tags(
        self,
        product_ids: list[str],
        tags: list[str],
        shop_id: Optional[str] = None,
    ) -> BulkTagUpdateResult:
        """
        Add tags to every product, keeping existing tags.

        Per-product failures are collected, not raised. A shop with no
        usable client raises ShopifyGraphQLError before any write.
        """
        product_ids = dedupe_preserving_order(product_ids)
        tags = dedupe_preserving_order(tags)
        if not product_ids or not tags:
            return BulkTagUpdateResult(updated_count=0, errors=[])

        logger.info(
            "bulk_tag_update_started",
            shop_id=shop_id,
            product_count=len(product_ids),
            tags=tags
        )
        client = await self._client_for(shop_id)
        updated, errors = await self._apply(client.add_tags, "update", product_ids, tags)

        return BulkTagUpdateResult(updated_count=updated, errors=errors)

    async def bulk_remove_tags(
        self,
        product_ids: list[str],
        tags: list[str],
        shop_id: Optional[str] = None,
    ) -> BulkTagRemoveResult:
        """
        Remove tags from every product.

        Raises:
            ValidationError: Empty product list or no usable tags
            ShopifyGraphQLError: No Shopify client for the shop
        """
        if not product_ids:
            raise ValidationError("productIds must be a non-empty array", code="INVALID_PRODUCT_IDS")
        if not tags:
            raise ValidationError("tags must be a non-empty array", code="INVALID_TAGS")

        clean_tags = dedupe_preserving_order(tags)
        if not clean_tags:
            raise ValidationError(
                "All provided tags were empty after normalization",
                code="INVALID_TAGS"
            )

        logger.info(
            "bulk_tag_remove_started",
            shop_id=shop_id,
            product_count=len(product_ids),
            tags=clean_tags
        )
        client = await self._client_for(shop_id)
        success_count, errors = await self._apply(
            client.remove_tags, "remove tags from", list(product_ids), clean_tags
        )

        logger.info(
            "bulk_tag_remove_complete",
            total=len(product_ids),
            success_count=success_count,
            error_count=len(errors)
        )
        return BulkTagRemoveResult(
            total_products=len(product_ids),
            success_count=success_count,
            error_count=len(errors),
            errors=errors[:MAX_REPORTED_ERRORS],
            tags=clean_tags,
            shop_id=shop_id,
        )


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[ProductTagService] = None


async def get_product_tag_service() -> ProductTagService:
    """Get or create ProductTagService instance."""
    global _service
    if _service is None:
        shopify = get_shopify_client() if settings.shopify_configured else None
        _service = ProductTagService(shopify, stores=await get_store_service())
    return _service
