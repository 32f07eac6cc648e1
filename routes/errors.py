"""
Shared error translation for routes.
"""

from fastapi import UploadFile
from fastapi.responses import JSONResponse
import structlog

from config import settings
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


async def read_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded CSV, enforcing the configured size limit.

    Raises:
        ValidationError: If the file is empty or too large
    """
    content = await file.read()
    if not content:
        raise ValidationError(
            code="FILE_EMPTY",
            message="No file selected",
            details={"filename": file.filename}
        )
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(
            code="FILE_TOO_LARGE",
            message=f"File exceeds {settings.max_upload_mb} MB",
            details={"filename": file.filename, "size": len(content)}
        )
    return content
