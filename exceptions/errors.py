"""
Custom exception classes for the application.

Every error carries a stable code, a one-line message suitable for showing
to the user, and an HTTP status used by the routes.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MISSING_KEY")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper().replace(' ', '_')}_KEY_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class StorageError(AppError):
    """Persisting a value failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="STORAGE_ERROR",
            message=f"Storage {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CSV IMPORT ERRORS
# ===================

class InventoryImportError(ValidationError):
    """CSV could not be turned into records."""
    pass


class NoHeadersError(InventoryImportError):
    """CSV produced zero columns."""

    def __init__(self, source: str = "CSV"):
        super().__init__(
            code="CSV_NO_HEADERS",
            message=f"{source} has no valid headers",
            details={"source": source}
        )


class CSVParseFailureError(InventoryImportError):
    """Underlying CSV parser gave up."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CSV_PARSE_ERROR",
            message=f"Failed to parse CSV: {message}",
            details=details
        )


# ===================
# STAGING ERRORS
# ===================

class MissingKeyError(ValidationError):
    """Record has no value for the key column."""

    def __init__(self, key_column: str):
        super().__init__(
            code="MISSING_KEY",
            message=f"Please provide a value for {key_column}",
            details={"key_column": key_column}
        )


class MissingColumnsError(ValidationError):
    """Imported staged set lacks some of the save columns."""

    def __init__(self, missing: list[str]):
        super().__init__(
            code="MISSING_COLUMNS",
            message=(
                "New inventory CSV is missing required columns: "
                + ", ".join(missing)
            ),
            details={"missing": list(missing)}
        )


class StagedRecordNotFoundError(NotFoundError):
    """No staged record carries the given key."""

    def __init__(self, key: str):
        super().__init__(
            resource="Staged record",
            identifier=key,
            code="STAGED_RECORD_NOT_FOUND"
        )


class StagedKeyExistsError(DuplicateError):
    """Another staged record already uses this key."""

    def __init__(self, key_column: str, key: str):
        super().__init__(
            resource="Staged record",
            field=key_column,
            value=key
        )


class EmptySearchQueryError(ValidationError):
    """Search needs a non-empty query."""

    def __init__(self):
        super().__init__(
            code="SEARCH_QUERY_EMPTY",
            message="Enter a value to search for"
        )


class NothingToExportError(ValidationError):
    """Staged set is empty."""

    def __init__(self):
        super().__init__(
            code="NOTHING_TO_EXPORT",
            message="No items in new inventory to download"
        )


# ===================
# SETTINGS ERRORS
# ===================

class UnknownColumnError(ValidationError):
    """Column is not one of the catalog headers."""

    def __init__(self, column: str, headers: list[str]):
        super().__init__(
            code="UNKNOWN_COLUMN",
            message=f"Column {column!r} is not in the uploaded inventory",
            details={"provided": column, "valid": list(headers)}
        )


class CatalogNotConfiguredError(ConflictError):
    """Operation needs a loaded and configured catalog."""

    def __init__(self):
        super().__init__(
            code="CATALOG_NOT_CONFIGURED",
            message="Please upload and configure the main inventory CSV first"
        )


class KeyColumnNotSavedError(ValidationError):
    """Key column must be one of the save columns."""

    def __init__(self, key_column: str):
        super().__init__(
            code="KEY_COLUMN_NOT_SAVED",
            message=f"{key_column} must stay selected as a column to save",
            details={"key_column": key_column}
        )
