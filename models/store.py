"""
Store lifecycle schemas.

A store row is created when the app is installed on a shop and archived
when it is uninstalled; reinstalling reactivates the same row.
"""

from enum import Enum
from pydantic import Field, field_validator
from typing import Optional

from models.base import CamelSchema


class StoreStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class StoreDomainRequest(CamelSchema):
    """Any request naming a shop by its myshopify domain."""

    shop_domain: str = Field(..., description="e.g. my-store.myshopify.com")

    @field_validator("shop_domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("shopDomain must not be empty")
        return v


class StoreInstallRequest(StoreDomainRequest):
    access_token: str = Field(..., min_length=1, description="Offline Admin API token")
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    configured_domain: Optional[str] = Field(None, description="Shop's primary domain host")


class StoreReinstallRequest(StoreDomainRequest):
    access_token: Optional[str] = None


class StoreUninstallRequest(StoreDomainRequest):
    pass


class StoreProvisionResult(CamelSchema):
    """Outcome of an install, reinstall or uninstall."""

    store_id: int
    shop_domain: str
    status: StoreStatus
    created: bool = False
    installation_count: int = 0
    fitment_fields_seeded: int = 0
