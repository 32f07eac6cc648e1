"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    StorageError,

    # CSV import
    InventoryImportError,
    NoHeadersError,
    CSVParseFailureError,

    # Staging
    MissingKeyError,
    MissingColumnsError,
    StagedRecordNotFoundError,
    StagedKeyExistsError,
    EmptySearchQueryError,
    NothingToExportError,

    # Settings
    UnknownColumnError,
    CatalogNotConfiguredError,
    KeyColumnNotSavedError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "StorageError",

    # CSV import
    "InventoryImportError",
    "NoHeadersError",
    "CSVParseFailureError",

    # Staging
    "MissingKeyError",
    "MissingColumnsError",
    "StagedRecordNotFoundError",
    "StagedKeyExistsError",
    "EmptySearchQueryError",
    "NothingToExportError",

    # Settings
    "UnknownColumnError",
    "CatalogNotConfiguredError",
    "KeyColumnNotSavedError",
]
