"""
Catalog and staged set schemas for validation and serialization.

Records themselves stay plain dict[str, str]: their columns come from
whatever CSV was uploaded.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from models.base import BaseSchema, ColumnSchema
from models.pricing import MarginView

Record = dict[str, str]


def _dedupe(columns: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for col in columns:
        if col not in seen:
            seen.add(col)
            ordered.append(col)
    return ordered


# ===================
# SETTINGS
# ===================

class StagingSettings(ColumnSchema):
    """
    Session configuration.

    Persisted as {"skuColumn", "saveColumns", "lists"}.
    """

    sku_column: str = Field(
        default="",
        alias="skuColumn",
        description="Column identifying a staged record"
    )
    save_columns: list[str] = Field(
        default_factory=list,
        alias="saveColumns",
        description="Columns kept when a record is staged"
    )
    lists: list[str] = Field(
        default_factory=list,
        description="Auxiliary list names"
    )

    @field_validator("save_columns")
    @classmethod
    def unique_columns(cls, v: list[str]) -> list[str]:
        """Drop repeated column names, keeping first position."""
        return _dedupe(v)

    @property
    def configured(self) -> bool:
        return bool(self.sku_column) and len(self.save_columns) > 0

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)

    @classmethod
    def defaults_for(cls, fields: list[str]) -> "StagingSettings":
        """First column as key, every column saved."""
        return cls(
            sku_column=fields[0] if fields else "",
            save_columns=list(fields),
        )


class SettingsUpdate(ColumnSchema):
    """
    Update session settings.

    All fields optional - only provided fields are updated.
    """

    sku_column: Optional[str] = Field(None, alias="skuColumn")
    save_columns: Optional[list[str]] = Field(None, alias="saveColumns")
    lists: Optional[list[str]] = None


# ===================
# CATALOG
# ===================

class CatalogImportResult(ColumnSchema):
    """Outcome of a catalog upload."""

    catalog: list[Record]
    fields: list[str]
    settings: StagingSettings
    errors: list[dict] = Field(default_factory=list)


class CatalogResponse(ColumnSchema):
    """Full catalog with its headers."""

    data: list[Record]
    total: int
    fields: list[str]


class CatalogUploadResponse(ColumnSchema):
    """Catalog upload response."""

    success: bool
    records_loaded: int
    fields: list[str]
    settings: StagingSettings
    skipped_rows: int = 0
    message: str


# ===================
# SEARCH
# ===================

class SearchStatus(str, Enum):
    """Outcome of a key search."""
    ALREADY_STAGED = "ALREADY_STAGED"
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"


class SearchRequest(BaseSchema):
    """Search by key column value."""

    query: str = Field(..., max_length=500, description="Key value or fragment")


class SearchResult(ColumnSchema):
    """
    Search outcome.

    FOUND carries the catalog record (and its margin view when Cost is
    usable). NOT_FOUND carries a create-form prefill {key_column: query}.
    """

    status: SearchStatus
    query: str
    key_column: str
    record: Optional[Record] = None
    prefill: Optional[Record] = None
    margin: Optional[MarginView] = None
    staged: bool = Field(
        default=False,
        description="True when a lookup added the record to the staged set"
    )
    message: str = ""


# ===================
# STAGED SET
# ===================

class RecordCreate(ColumnSchema):
    """Field values for a new staged record."""

    fields: Record = Field(default_factory=dict)


class RecordUpdate(ColumnSchema):
    """Fields to overwrite on a staged record."""

    fields: Record = Field(..., description="Patch; other fields are kept")


class StageResponse(ColumnSchema):
    """Result of adding a record to the staged set."""

    added: bool
    record: Record
    total: int
    message: str


class StagedListResponse(ColumnSchema):
    """Staged set with the columns it is projected on."""

    data: list[Record]
    total: int
    key_column: str
    save_columns: list[str]


class DeleteResponse(BaseSchema):
    """Delete outcome."""

    removed: int
    total: int


class MergeResult(BaseSchema):
    """Counts from a merge-import."""

    added: int
    skipped: int
    total: int


class MergeImportResponse(MergeResult):
    """Merge-import response."""

    success: bool = True
    message: str = ""
