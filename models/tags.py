"""
Product tag schemas for bulk Shopify tag writes.
"""

from pydantic import Field
from typing import Optional

from models.base import CamelSchema


class BulkTagRequest(CamelSchema):
    """Add or remove a tag set on many products."""

    product_ids: list[str] = Field(default_factory=list, description="Shopify product ids or gids")
    tags: list[str] = Field(default_factory=list)
    shop_id: Optional[str] = Field(None, description="Shopify shop id")


class BulkTagUpdateResult(CamelSchema):
    """Outcome of a bulk tag add."""

    updated_count: int = 0
    errors: list[str] = Field(default_factory=list)


class BulkTagRemoveResult(CamelSchema):
    """Outcome of a bulk tag removal."""

    total_products: int
    success_count: int
    error_count: int
    errors: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    shop_id: Optional[str] = None
