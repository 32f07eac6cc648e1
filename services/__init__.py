"""
Business logic services.

Each service handles one domain area.
"""

from services.inventory_store import InventoryStore
from services.margin_service import compute_margin, parse_currency
from services.staging_service import StagingService, get_staging_service

__all__ = [
    "InventoryStore",
    "compute_margin",
    "parse_currency",
    "StagingService",
    "get_staging_service",
]
