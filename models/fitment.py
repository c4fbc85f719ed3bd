"""
Fitment schemas.

A fitment is a vehicle-applicability record (year/make/model/...) linked to
the products whose SKUs it covers. The upsert itself lives in the database
(RPC upsert_fitment_bundle_by_skus); these models describe its contract.
"""

from pydantic import BaseModel, Field
from typing import Any, Literal, Optional, Union

from models.base import BaseSchema


class FitmentValue(BaseModel):
    """One field/value pair of a fitment, e.g. {"field_slug": "make", "value": "Toyota"}."""

    field_slug: str
    value: str


class FitmentField(BaseSchema):
    """Store-defined fitment column (fitment_fields table)."""

    id: int
    store_id: Optional[int] = None
    label: str
    slug: str = ""
    field_type: Literal["int", "string", "range", "boolean"] = "string"
    required: bool = False
    sort_order: int = 0


class FitmentUpsertPayload(BaseModel):
    """Request for one row's fitment upsert."""

    store_id: int
    fitment_set_id: Optional[str] = None
    universal_fit: bool = False
    values: list[FitmentValue] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    skus: list[str] = Field(default_factory=list)

    def to_rpc_params(self) -> dict:
        """Parameter names expected by upsert_fitment_bundle_by_skus."""
        return {
            "p_store_id": self.store_id,
            "p_fitment_set_id": self.fitment_set_id,
            "p_universal_fit": self.universal_fit,
            "p_values": [v.model_dump() for v in self.values],
            "p_tags": self.tags,
            "p_skus": self.skus,
        }


def _clean_id_list(ids: Any) -> list[str]:
    """Drop nulls and blanks, stringify the rest."""
    if not isinstance(ids, list):
        return []
    return [
        str(i) for i in ids
        if i is not None and str(i).strip() != ""
    ]


class FitmentUpsertResponse(BaseModel):
    """Result of upsert_fitment_bundle_by_skus."""

    fitment_set_id: Optional[Union[int, str]] = None
    value_ids: list[int] = Field(default_factory=list)
    tag_ids: list[int] = Field(default_factory=list)
    product_ids: list[int] = Field(default_factory=list)
    shopify_product_ids: list[str] = Field(default_factory=list)
    product_fitment_ids: list[int] = Field(default_factory=list)
    product_tag_rows: Optional[int] = None
    missing_skus: list[str] = Field(default_factory=list)

    @classmethod
    def from_rpc(cls, data: Any) -> "FitmentUpsertResponse":
        """
        Build from raw RPC data.

        The function returns a table, so PostgREST hands back a list with a
        single row. Missing or non-list columns become empty lists.
        """
        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict):
            return cls()

        def _ints(key: str) -> list[int]:
            value = row.get(key)
            return [int(v) for v in value if v is not None] if isinstance(value, list) else []

        return cls(
            fitment_set_id=row.get("out_fitment_set_id"),
            value_ids=_ints("out_value_ids"),
            tag_ids=_ints("out_tag_ids"),
            product_ids=_ints("out_product_ids"),
            shopify_product_ids=_clean_id_list(row.get("out_shopify_product_ids")),
            product_fitment_ids=_ints("out_product_fitment_ids"),
            product_tag_rows=row.get("out_product_tag_rows"),
            missing_skus=_clean_id_list(row.get("out_missing_skus")),
        )
