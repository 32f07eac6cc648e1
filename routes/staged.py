"""
Staged set ("new inventory") API routes.

Search, stage, create, edit, delete, merge-import and export.
"""

from fastapi import APIRouter, Query, UploadFile, File
from fastapi.responses import Response
import structlog

from config import settings
from models.staging import (
    SearchRequest,
    SearchResult,
    RecordCreate,
    RecordUpdate,
    StageResponse,
    StagedListResponse,
    DeleteResponse,
    MergeImportResponse,
)
from services.staging_service import get_staging_service
from exceptions import NothingToExportError
from routes.errors import handle_error, read_upload

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=StagedListResponse)
async def list_staged(
    newest_first: bool = Query(False, description="Most recently staged first")
):
    """List the staged set."""
    try:
        service = get_staging_service()
        records = service.staged_records(newest_first=newest_first)
        return StagedListResponse(
            data=records,
            total=len(records),
            key_column=service.key_column,
            save_columns=service.save_columns,
        )

    except Exception as e:
        return handle_error(e)


@router.post("/search", response_model=SearchResult)
async def search(request: SearchRequest):
    """
    Search without staging.

    ALREADY_STAGED wins over any catalog match.
    """
    try:
        return get_staging_service().search(request.query)

    except Exception as e:
        return handle_error(e)


@router.post("/lookup", response_model=SearchResult)
async def lookup(request: SearchRequest):
    """
    Search and stage the catalog hit.

    NOT_FOUND returns a prefill for the create form.
    """
    try:
        return get_staging_service().lookup(request.query)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=StageResponse, status_code=201)
async def create_record(request: RecordCreate):
    """
    Create a staged record from form values.

    A key that is already staged is reported with added=false.

    Raises:
        422: Key column value missing
    """
    try:
        service = get_staging_service()
        record, added = service.create_record(request.fields)
        return StageResponse(
            added=added,
            record=record,
            total=len(service.staged),
            message=(
                "New item created and added to new inventory"
                if added else "Item already exists in new inventory"
            ),
        )

    except Exception as e:
        return handle_error(e)


@router.get("/export")
async def export_staged():
    """
    Download the staged set as CSV.

    Raises:
        422: Staged set is empty
    """
    try:
        service = get_staging_service()
        if not service.staged:
            raise NothingToExportError()

        return Response(
            content=service.export_csv(),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f'attachment; filename="{settings.export_filename}"'
            },
        )

    except Exception as e:
        return handle_error(e)


@router.post("/import", response_model=MergeImportResponse)
async def merge_import(file: UploadFile = File(..., description="Previously exported new inventory CSV")):
    """
    Merge a previously exported staged set.

    Rows whose key is empty or already staged are skipped.

    Raises:
        409: No catalog loaded/configured yet
        422: File lacks some of the save columns
    """
    logger.info("merge_import_started", filename=file.filename)

    try:
        content = await read_upload(file)
        result = get_staging_service().merge_import(content)
        return MergeImportResponse(
            added=result.added,
            skipped=result.skipped,
            total=result.total,
            message="New inventory CSV loaded and merged into existing new inventory",
        )

    except Exception as e:
        return handle_error(e)


@router.patch("/{key:path}")
async def edit_record(key: str, request: RecordUpdate):
    """
    Overwrite fields of a staged record.

    Raises:
        404: No staged record with this key
        409: New key already used by another record
    """
    try:
        return get_staging_service().edit(key, request.fields)

    except Exception as e:
        return handle_error(e)


@router.delete("/{key:path}", response_model=DeleteResponse)
async def delete_record(key: str):
    """Delete a staged record. Deleting an absent key is not an error."""
    try:
        service = get_staging_service()
        removed = service.delete(key)
        return DeleteResponse(removed=removed, total=len(service.staged))

    except Exception as e:
        return handle_error(e)
