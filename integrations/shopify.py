"""
Shopify Admin GraphQL integration.

Thin async client used for product tag writes and product lookups.
"""

import asyncio
from typing import Any, Optional
import aiohttp
import structlog

from config import settings
from exceptions import ShopifyGraphQLError

logger = structlog.get_logger(__name__)

GID_PREFIX = "gid://shopify/Product/"

TAGS_ADD_MUTATION = """
mutation tagsAdd($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    node { id }
    userErrors { field message }
  }
}
"""

TAGS_REMOVE_MUTATION = """
mutation tagsRemove($id: ID!, $tags: [String!]!) {
  tagsRemove(id: $id, tags: $tags) {
    node { id }
    userErrors { field message }
  }
}
"""

PRODUCT_QUERY = """
query product($id: ID!) {
  product(id: $id) {
    id
    title
    handle
    descriptionHtml
    productType
    vendor
    tags
    status
  }
}
"""


def to_product_gid(product_id: str) -> str:
    """
    Convert a numeric product id to a GraphQL gid.

    "123" → "gid://shopify/Product/123"; gids pass through unchanged.
    """
    product_id = str(product_id).strip()
    if product_id.startswith("gid://"):
        return product_id
    return f"{GID_PREFIX}{product_id}"


def format_user_errors(user_errors: list[dict]) -> str:
    """Render Shopify userErrors as "field.path: message | ..."."""
    parts = []
    for err in user_errors:
        path = err.get("field")
        field_name = ".".join(path) if isinstance(path, list) else "field"
        parts.append(f"{field_name}: {err.get('message')}")
    return " | ".join(parts)


class ShopifyClient:
    """
    Shopify Admin API client for one shop.

    Args:
        shop_domain: e.g. "my-store.myshopify.com"
        access_token: Admin API access token
        api_version: Admin API version, e.g. "2024-01"
    """

    def __init__(
        self,
        shop_domain: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_seconds: float = 30,
    ):
        self.shop_domain = shop_domain or settings.shopify_shop_domain
        self.access_token = access_token or settings.shopify_access_token
        self.api_version = api_version or settings.shopify_api_version
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        if not self.shop_domain or not self.access_token:
            raise ShopifyGraphQLError(
                "Shopify is not configured",
                details={"has_domain": bool(self.shop_domain), "has_token": bool(self.access_token)}
            )

    @property
    def graphql_url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"

    async def graphql(self, query: str, variables: Optional[dict] = None) -> dict[str, Any]:
        """
        Run a GraphQL query or mutation.

        Returns:
            The "data" object of the response

        Raises:
            ShopifyGraphQLError: HTTP error status, timeout, or top-level GraphQL errors
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }
        payload = {"query": query, "variables": variables or {}}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.graphql_url, json=payload, headers=headers) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        logger.error(
                            "shopify_http_error",
                            status=resp.status,
                            body=text[:500]
                        )
                        raise ShopifyGraphQLError(
                            f"Shopify returned HTTP {resp.status}",
                            details={"status": resp.status, "body": text[:500]}
                        )
                    body = await resp.json()
        except aiohttp.ClientError as e:
            logger.error("shopify_request_failed", error=str(e))
            raise ShopifyGraphQLError(
                f"Shopify request failed: {e}",
                details={"error_type": type(e).__name__}
            ) from e
        except asyncio.TimeoutError as e:
            logger.error("shopify_request_timeout", timeout_seconds=self.timeout.total)
            raise ShopifyGraphQLError(
                f"Shopify request timed out after {self.timeout.total}s",
                details={"error_type": "TimeoutError"}
            ) from e

        if body.get("errors"):
            logger.error("shopify_graphql_errors", errors=body["errors"])
            raise ShopifyGraphQLError(
                "Shopify GraphQL returned errors",
                details={"errors": body["errors"]}
            )

        return body.get("data") or {}

    async def add_tags(self, product_id: str, tags: list[str]) -> list[dict]:
        """Add tags to a product without overwriting existing ones. Returns userErrors."""
        data = await self.graphql(
            TAGS_ADD_MUTATION,
            {"id": to_product_gid(product_id), "tags": tags}
        )
        return (data.get("tagsAdd") or {}).get("userErrors") or []

    async def remove_tags(self, product_id: str, tags: list[str]) -> list[dict]:
        """Remove tags from a product. Returns userErrors."""
        data = await self.graphql(
            TAGS_REMOVE_MUTATION,
            {"id": to_product_gid(product_id), "tags": tags}
        )
        return (data.get("tagsRemove") or {}).get("userErrors") or []

    async def get_product(self, product_id: str) -> Optional[dict]:
        """Fetch the product fields mirrored into store_variants."""
        data = await self.graphql(PRODUCT_QUERY, {"id": to_product_gid(product_id)})
        return data.get("product")


_client: Optional[ShopifyClient] = None


def get_shopify_client() -> ShopifyClient:
    """Get or create the ShopifyClient for the configured shop."""
    global _client
    if _client is None:
        _client = ShopifyClient()
    return _client
