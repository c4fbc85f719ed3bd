"""
Product variant sync schemas.

Variants are mirrored into the store_variants table so the storefront
widgets can search products without calling Shopify.
"""

from pydantic import Field
from typing import Any, Optional

from models.base import BaseSchema, CamelSchema


class VariantSyncRequest(CamelSchema):
    """Variant webhook data forwarded for mirroring."""

    variant_id: str
    product_id: str
    shop_domain: str
    variant_data: dict[str, Any] = Field(default_factory=dict)


class StoreVariantPayload(BaseSchema):
    """Row written by rpc_upsert_store_variant."""

    shop_domain: str
    shopify_product_id: str
    shopify_variant_id: str
    handle: str
    title: str
    variant_title: str
    sku: Optional[str] = None
    description: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    product_type: Optional[str] = None
    vendor: Optional[str] = None
    available: str = "false"
    tags: list[str] = Field(default_factory=list)
    collections: list[str] = Field(default_factory=list)
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    status: str = "draft"
    image_url: Optional[str] = None
    updated_at: str


class VariantSyncResult(CamelSchema):
    """Outcome of one variant sync."""

    success: bool
    variant_id: str
    product_id: str
    shop_domain: str
    synced_at: str
    result: Optional[Any] = None
