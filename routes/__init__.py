"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.imports import router as imports_router
from routes.tags import router as tags_router
from routes.variants import router as variants_router
from routes.stores import router as stores_router

__all__ = [
    "imports_router",
    "tags_router",
    "variants_router",
    "stores_router",
]
