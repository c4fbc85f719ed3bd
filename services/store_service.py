"""
Store lookup, plan limits and install lifecycle.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.fitment import FitmentField
from models.store import StoreProvisionResult, StoreStatus
from exceptions import DatabaseError, StoreNotFoundError

logger = structlog.get_logger(__name__)

# Fitment rows allowed per import, by billing plan
PLAN_ROW_LIMITS = {
    "starter": 2000,
    "growth": 5000,
    "pro": 10000,
    "elite": 20000,
    "free_trial": 2000,
}


def plan_row_limit(plan_name: Optional[str]) -> int:
    """
    Row limit for a billing plan.

    Plan names look like "Growth - Monthly"; only the part before the
    first "-" counts. Unknown plans get the default limit.
    """
    if not plan_name:
        return settings.default_row_limit
    key = plan_name.split("-")[0].strip().lower()
    return PLAN_ROW_LIMITS.get(key, settings.default_row_limit)


# Fitment columns every new store starts with
DEFAULT_FITMENT_FIELDS = [
    {
        "label": "Year",
        "slug": "year",
        "field_type": "int",
        "required": False,
        "sort_order": 0,
        "localized_json": {"range": {"from": 1990, "to": 2025}, "placeholder": "Select Year"},
    },
    {
        "label": "Make",
        "slug": "make",
        "field_type": "string",
        "required": False,
        "sort_order": 1,
        "localized_json": {"placeholder": "Select Make"},
    },
    {
        "label": "Model",
        "slug": "model",
        "field_type": "string",
        "required": False,
        "sort_order": 2,
        "localized_json": {"placeholder": "Select Model"},
    },
]

DEFAULT_PLAN_ID = 1


class StoreService:
    """Reads and provisions the stores and fitment_fields tables."""

    def __init__(self, db):
        self.db = db

    async def get_store_by_domain(self, shop_domain: str) -> dict:
        """
        Get the store row for a shop domain.

        Raises:
            StoreNotFoundError: If the shop has no store row
        """
        store = await self.find_store(shop_domain)
        if store is None:
            raise StoreNotFoundError(shop_domain)
        return store

    async def get_fitment_fields(self, store_id: int) -> list[FitmentField]:
        """Fitment columns configured for a store, in display order."""
        result = await (
            self.db.table("fitment_fields")
            .select("*")
            .eq("store_id", store_id)
            .order("sort_order")
            .execute()
        )
        fields = [FitmentField(**row) for row in result.data]
        logger.debug("fitment_fields_loaded", store_id=store_id, count=len(fields))
        return fields

    # ===================
    # INSTALL LIFECYCLE
    # ===================

    async def find_store(self, shop_domain: str) -> Optional[dict]:
        """Store row for a shop domain, or None."""
        try:
            result = await (
                self.db.table("stores")
                .select("*")
                .eq("shop_domain", shop_domain)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_store_failed", shop_domain=shop_domain, error=str(e))
            raise DatabaseError("select", str(e), {"table": "stores"})

        return result.data[0] if result.data else None

    async def _update_store(self, store_id: int, changes: dict) -> None:
        try:
            await self.db.table("stores").update(changes).eq("id", store_id).execute()
        except Exception as e:
            logger.error("update_store_failed", store_id=store_id, error=str(e))
            raise DatabaseError("update", str(e), {"table": "stores", "store_id": store_id})

    async def seed_default_fitment_fields(self, store_id: int) -> int:
        """
        Give a store the default Year/Make/Model columns.

        Existing (store_id, slug) pairs are left alone, so this is safe to
        repeat. Returns the number of rows inserted.
        """
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            {**field, "store_id": store_id, "created_at": now, "updated_at": now}
            for field in DEFAULT_FITMENT_FIELDS
        ]
        result = await (
            self.db.table("fitment_fields")
            .upsert(rows, on_conflict="store_id,slug", ignore_duplicates=True)
            .execute()
        )
        seeded = len(result.data or [])
        logger.info("default_fitment_fields_seeded", store_id=store_id, seeded=seeded)
        return seeded

    async def _seed_after_create(self, store_id: int) -> int:
        # A store without columns cannot import, but the install itself stands
        try:
            return await self.seed_default_fitment_fields(store_id)
        except Exception as e:
            logger.error("default_fitment_fields_failed", store_id=store_id, error=str(e))
            return 0

    async def provision_store(
        self,
        shop_domain: str,
        access_token: str,
        owner_name: Optional[str] = None,
        owner_email: Optional[str] = None,
        configured_domain: Optional[str] = None,
    ) -> StoreProvisionResult:
        """
        Create or reactivate the store row for a newly installed shop.

        A known shop is set back to active with the new token and its
        installation count bumped. A new shop gets a store row on the
        default plan plus the default fitment fields.

        Raises:
            DatabaseError: If the store row cannot be read or written
        """
        now = datetime.now(timezone.utc).isoformat()
        existing = await self.find_store(shop_domain)

        if existing:
            count = int(existing.get("installation_count") or 0) + 1
            await self._update_store(existing["id"], {
                "status": StoreStatus.ACTIVE.value,
                "archived_at": None,
                "access_token": access_token,
                "installation_count": count,
                "updated_at": now,
            })
            logger.info("store_reactivated", shop_domain=shop_domain, store_id=existing["id"])
            return StoreProvisionResult(
                store_id=existing["id"],
                shop_domain=shop_domain,
                status=StoreStatus.ACTIVE,
                installation_count=count,
            )

        row = {
            "shop_domain": shop_domain,
            "owner_name": owner_name,
            "owner_email": owner_email,
            "access_token": access_token,
            "plan_id": DEFAULT_PLAN_ID,
            "status": StoreStatus.ACTIVE.value,
            "configured_domain": configured_domain or "",
            "installation_count": 1,
            "shop_name": shop_domain.split(".")[0],
            "language": "en",
            "installed_at": now,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.db.table("stores").insert(row).execute()
        except Exception as e:
            logger.error("create_store_failed", shop_domain=shop_domain, error=str(e))
            raise DatabaseError("insert", str(e), {"table": "stores"})

        if not result.data:
            raise DatabaseError("insert", "No store row returned", {"table": "stores"})

        store_id = result.data[0]["id"]
        logger.info("store_created", shop_domain=shop_domain, store_id=store_id)

        return StoreProvisionResult(
            store_id=store_id,
            shop_domain=shop_domain,
            status=StoreStatus.ACTIVE,
            created=True,
            installation_count=1,
            fitment_fields_seeded=await self._seed_after_create(store_id),
        )

    async def reinstall_store(
        self,
        shop_domain: str,
        access_token: Optional[str] = None,
    ) -> StoreProvisionResult:
        """
        Reactivate a shop's store row, creating it if it was never recorded.

        The token is only replaced when a new one is given.
        """
        now = datetime.now(timezone.utc).isoformat()
        existing = await self.find_store(shop_domain)

        if existing:
            count = int(existing.get("installation_count") or 0) + 1
            changes = {
                "status": StoreStatus.ACTIVE.value,
                "archived_at": None,
                "installation_count": count,
                "updated_at": now,
            }
            if access_token:
                changes["access_token"] = access_token
            await self._update_store(existing["id"], changes)
            logger.info("store_reinstalled", shop_domain=shop_domain, store_id=existing["id"])
            return StoreProvisionResult(
                store_id=existing["id"],
                shop_domain=shop_domain,
                status=StoreStatus.ACTIVE,
                installation_count=count,
            )

        row = {
            "shop_domain": shop_domain,
            "access_token": access_token,
            "plan_id": None,
            "status": StoreStatus.ACTIVE.value,
            "installed_at": now,
            "archived_at": None,
            "installation_count": 1,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.db.table("stores").upsert(row, on_conflict="shop_domain").execute()
        except Exception as e:
            logger.error("reinstall_store_failed", shop_domain=shop_domain, error=str(e))
            raise DatabaseError("upsert", str(e), {"table": "stores"})

        if not result.data:
            raise DatabaseError("upsert", "No store row returned", {"table": "stores"})

        store_id = result.data[0]["id"]
        logger.info("store_created_on_reinstall", shop_domain=shop_domain, store_id=store_id)

        return StoreProvisionResult(
            store_id=store_id,
            shop_domain=shop_domain,
            status=StoreStatus.ACTIVE,
            created=True,
            installation_count=1,
            fitment_fields_seeded=await self._seed_after_create(store_id),
        )

    async def uninstall_store(self, shop_domain: str) -> StoreProvisionResult:
        """
        Archive a shop's store row. Its data is kept for a later reinstall.

        Raises:
            StoreNotFoundError: If the shop has no store row
        """
        existing = await self.find_store(shop_domain)
        if existing is None:
            raise StoreNotFoundError(shop_domain)

        now = datetime.now(timezone.utc).isoformat()
        await self._update_store(existing["id"], {
            "status": StoreStatus.ARCHIVED.value,
            "archived_at": now,
            "updated_at": now,
        })
        logger.info("store_archived", shop_domain=shop_domain, store_id=existing["id"])

        return StoreProvisionResult(
            store_id=existing["id"],
            shop_domain=shop_domain,
            status=StoreStatus.ARCHIVED,
            installation_count=int(existing.get("installation_count") or 0),
        )


_service: Optional[StoreService] = None


async def get_store_service() -> StoreService:
    """Get or create StoreService instance."""
    global _service
    if _service is None:
        _service = StoreService(await get_supabase_client())
    return _service
