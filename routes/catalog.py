"""
Catalog API routes.

Upload the source inventory CSV and read it back.
"""

from fastapi import APIRouter, Query, UploadFile, File
import structlog

from models.staging import CatalogResponse, CatalogUploadResponse
from models.pricing import MarginResponse
from services.staging_service import get_staging_service
from routes.errors import handle_error, read_upload

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/upload", response_model=CatalogUploadResponse)
async def upload_catalog(
    file: UploadFile = File(..., description="Inventory CSV"),
    preserve_settings: bool = Query(
        False,
        description="Keep the current key and save columns instead of resetting them"
    ),
):
    """
    Upload the main inventory CSV.

    Replaces the catalog. The key column defaults to the first header and
    every column is saved, unless preserve_settings is set.

    Raises:
        422: No headers, parse failure, empty or oversized file
    """
    logger.info(
        "catalog_upload_started",
        filename=file.filename,
        content_type=file.content_type,
        preserve_settings=preserve_settings,
    )

    try:
        content = await read_upload(file)
        service = get_staging_service()
        existing = service.staging_settings if preserve_settings else None
        result = service.import_catalog(content, existing_settings=existing)

        return CatalogUploadResponse(
            success=True,
            records_loaded=len(result.catalog),
            fields=result.fields,
            settings=result.settings,
            skipped_rows=len(result.errors),
            message="Main inventory CSV file loaded and saved",
        )

    except Exception as e:
        return handle_error(e)


@router.get("", response_model=CatalogResponse)
async def get_catalog():
    """Get the uploaded catalog and its headers."""
    try:
        service = get_staging_service()
        return CatalogResponse(
            data=service.catalog,
            total=len(service.catalog),
            fields=service.headers,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/margin", response_model=MarginResponse)
async def get_margin(key: str = Query(..., min_length=1, description="Exact key column value")):
    """
    Price margin view for one record.

    margin is null when the record's Cost is missing or not positive.
    """
    try:
        service = get_staging_service()
        margin = service.margin_for(key)
        return MarginResponse(
            key=key,
            margin=margin,
            message="" if margin else "Cost price is not available or invalid for margin calculation.",
        )

    except Exception as e:
        return handle_error(e)
