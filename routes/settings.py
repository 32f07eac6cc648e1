"""
Session settings API routes.

Key column, save columns and auxiliary lists. Every change is persisted.
"""

from fastapi import APIRouter
import structlog

from models.staging import StagingSettings, SettingsUpdate
from services.staging_service import get_staging_service
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=StagingSettings)
async def get_settings():
    """Get the active session settings."""
    try:
        return get_staging_service().staging_settings

    except Exception as e:
        return handle_error(e)


@router.put("", response_model=StagingSettings)
async def update_settings(data: SettingsUpdate):
    """
    Update session settings.

    Only provided fields change.

    Raises:
        422: Column not in the catalog, or key column not saved
    """
    try:
        return get_staging_service().update_settings(data)

    except Exception as e:
        return handle_error(e)


@router.post("/save-columns/{column:path}/toggle", response_model=StagingSettings)
async def toggle_save_column(column: str):
    """Add or remove one column from the save columns."""
    try:
        return get_staging_service().toggle_save_column(column)

    except Exception as e:
        return handle_error(e)
