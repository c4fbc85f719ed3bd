"""
Fitment upsert client.

One RPC call per spreadsheet row. The database function
upsert_fitment_bundle_by_skus creates or updates the fitment set, its values
and tags, and links it to every store product whose SKU matches.

Row failures are returned as RowResult(success=False); nothing raised here
escapes to the batch.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence
import structlog

from config import get_supabase_client
from exceptions import RowRejectedError
from models.fitment import FitmentUpsertPayload, FitmentUpsertResponse
from parsers.row_normalizer import HeaderColumn, normalize_row

logger = structlog.get_logger(__name__)

NO_PRODUCT_IDS = "No product IDs returned from fitment upsert"


@dataclass
class RowResult:
    """Outcome of one row, discarded after the batch is merged."""
    product_ids: list[int] = field(default_factory=list)
    shopify_product_ids: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    missing_skus: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, tags: Optional[list[str]] = None) -> "RowResult":
        return cls(tags=tags or [], success=False, error=error)


class FitmentUpsertService:
    """Calls upsert_fitment_bundle_by_skus for normalized rows."""

    UPSERT_RPC = "upsert_fitment_bundle_by_skus"

    def __init__(self, db):
        self.db = db

    async def upsert(self, payload: FitmentUpsertPayload) -> FitmentUpsertResponse:
        """
        Run the upsert RPC.

        Raises:
            Whatever the Supabase client raises (APIError, transport errors)
        """
        result = await self.db.rpc(self.UPSERT_RPC, payload.to_rpc_params()).execute()
        return FitmentUpsertResponse.from_rpc(result.data)

    async def process_row(
        self,
        store_id: int,
        header_map: Sequence[HeaderColumn],
        row: Optional[Sequence[Optional[str]]],
    ) -> RowResult:
        """
        Normalize and upsert one row.

        Never raises. Missing SKUs reported by the RPC are logged and the row
        still succeeds if at least one product matched.
        """
        try:
            normalized = normalize_row(header_map, row)
        except RowRejectedError as e:
            return RowResult.failure(e.message)

        payload = FitmentUpsertPayload(
            store_id=store_id,
            fitment_set_id=None,
            universal_fit=False,
            values=normalized.values,
            tags=normalized.tags,
            skus=normalized.skus,
        )

        try:
            response = await self.upsert(payload)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "RPC error"
            logger.error(
                "fitment_upsert_failed",
                store_id=store_id,
                skus=normalized.skus,
                error=message,
                error_type=type(e).__name__
            )
            return RowResult.failure(message)

        if not response.product_ids:
            logger.warning(
                "fitment_upsert_no_products",
                store_id=store_id,
                skus=normalized.skus,
                missing_skus=response.missing_skus
            )
            return RowResult.failure(NO_PRODUCT_IDS, tags=normalized.tags)

        if response.missing_skus:
            logger.warning(
                "fitment_missing_skus",
                store_id=store_id,
                missing_skus=response.missing_skus
            )

        return RowResult(
            product_ids=response.product_ids,
            shopify_product_ids=response.shopify_product_ids,
            tags=normalized.tags,
            success=True,
            missing_skus=response.missing_skus,
        )


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[FitmentUpsertService] = None


async def get_fitment_upsert_service() -> FitmentUpsertService:
    """Get or create FitmentUpsertService instance."""
    global _service
    if _service is None:
        _service = FitmentUpsertService(await get_supabase_client())
    return _service
