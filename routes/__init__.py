"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.catalog import router as catalog_router
from routes.staged import router as staged_router
from routes.settings import router as settings_router

__all__ = [
    "catalog_router",
    "staged_router",
    "settings_router",
]
