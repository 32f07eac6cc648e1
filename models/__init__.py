"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    ColumnSchema,
)
from models.pricing import (
    SuggestedPrice,
    MarginView,
    MarginResponse,
)
from models.staging import (
    Record,
    StagingSettings,
    SettingsUpdate,
    CatalogImportResult,
    CatalogResponse,
    CatalogUploadResponse,
    SearchStatus,
    SearchRequest,
    SearchResult,
    RecordCreate,
    RecordUpdate,
    StageResponse,
    StagedListResponse,
    DeleteResponse,
    MergeResult,
    MergeImportResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "ColumnSchema",

    # Pricing
    "SuggestedPrice",
    "MarginView",
    "MarginResponse",

    # Staging
    "Record",
    "StagingSettings",
    "SettingsUpdate",
    "CatalogImportResult",
    "CatalogResponse",
    "CatalogUploadResponse",
    "SearchStatus",
    "SearchRequest",
    "SearchResult",
    "RecordCreate",
    "RecordUpdate",
    "StageResponse",
    "StagedListResponse",
    "DeleteResponse",
    "MergeResult",
    "MergeImportResponse",
]
