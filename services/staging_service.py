"""
Staging service — the inventory staging pipeline.

Owns the catalog (uploaded source inventory) and the staged set (the
curated "new inventory") and every transition between them: import,
search, stage, create, edit, delete, merge-import and export.

Collections are small; key uniqueness in the staged set is enforced with
an explicit scan before each insert. Every mutation computes a new list,
persists it whole, and only then replaces the in-memory copy.
"""

from typing import Optional, Union
import structlog

from models.pricing import MarginView
from models.staging import (
    Record,
    StagingSettings,
    SettingsUpdate,
    CatalogImportResult,
    SearchStatus,
    SearchResult,
    MergeResult,
)
from parsers.csv_parser import parse_csv, unparse_csv, normalize_cell
from integrations.print_queue import PrintQueueClient
from services.inventory_store import InventoryStore
from services.margin_service import compute_margin
from exceptions import (
    NoHeadersError,
    MissingKeyError,
    MissingColumnsError,
    StagedRecordNotFoundError,
    StagedKeyExistsError,
    EmptySearchQueryError,
    UnknownColumnError,
    CatalogNotConfiguredError,
    KeyColumnNotSavedError,
    NotFoundError,
    StorageError,
)

logger = structlog.get_logger(__name__)


# ===================
# RECORD OPERATIONS
# ===================

def key_of(record: Record, key_column: str) -> str:
    """Key column value of a record, "" when absent."""
    return normalize_cell(record.get(key_column))


def is_blank_key(key: str) -> bool:
    """Empty or whitespace-only keys cannot identify a staged record."""
    return not key.strip()


def project_record(record: Record, save_columns: list[str]) -> Record:
    """
    Keep exactly the save columns, in save-column order.

    Columns the record lacks are filled with "".
    """
    return {col: normalize_cell(record.get(col)) for col in save_columns}


def find_staged_index(
    staged: list[Record],
    key_column: str,
    key: str,
) -> Optional[int]:
    """Position of the first staged record whose key equals `key` exactly."""
    for index, record in enumerate(staged):
        if key_of(record, key_column) == key:
            return index
    return None


def contains_key(staged: list[Record], key_column: str, key: str) -> bool:
    return find_staged_index(staged, key_column, key) is not None


def search_records(
    catalog: list[Record],
    staged: list[Record],
    key_column: str,
    query: str,
) -> tuple[SearchStatus, Optional[Record]]:
    """
    Look a query up against the staged set, then the catalog.

    The staged set is checked first with a case-insensitive exact match;
    a hit there short-circuits the catalog. The catalog is scanned in
    upload order with a case-insensitive substring match and the first
    hit wins, so later duplicates are never reported.
    """
    needle = query.lower()

    for record in staged:
        if key_of(record, key_column).lower() == needle:
            return SearchStatus.ALREADY_STAGED, None

    for record in catalog:
        if needle in key_of(record, key_column).lower():
            return SearchStatus.FOUND, record

    return SearchStatus.NOT_FOUND, None


def stage_record(
    staged: list[Record],
    record: Record,
    key_column: str,
    save_columns: list[str],
) -> tuple[list[Record], bool]:
    """
    Append the projected record unless its key is already staged.

    Returns:
        (new staged list, whether the record was added)
    """
    projected = project_record(record, save_columns)
    if contains_key(staged, key_column, key_of(projected, key_column)):
        return staged, False
    return [*staged, projected], True


def build_record(
    field_values: dict,
    key_column: str,
    save_columns: list[str],
) -> Record:
    """
    Build a new record from form values.

    Raises:
        MissingKeyError: If the key column value is empty or only whitespace
    """
    if is_blank_key(normalize_cell(field_values.get(key_column))):
        raise MissingKeyError(key_column)
    return project_record(field_values, save_columns)


def edit_record(
    staged: list[Record],
    key_column: str,
    target_key: str,
    patch: dict,
    save_columns: list[str],
) -> tuple[list[Record], Record]:
    """
    Overwrite fields of the staged record keyed `target_key`.

    Patch columns outside the record and the save columns are ignored.
    Renaming the key is allowed as long as the new key is non-empty and
    not used by another staged record.

    Raises:
        StagedRecordNotFoundError: If no staged record has that key
        MissingKeyError: If the patch blanks the key
        StagedKeyExistsError: If the new key belongs to another record
    """
    index = find_staged_index(staged, key_column, target_key)
    if index is None:
        raise StagedRecordNotFoundError(target_key)

    current = staged[index]
    allowed = set(current) | set(save_columns)
    updated = {
        **current,
        **{
            str(col): normalize_cell(value)
            for col, value in patch.items()
            if col in allowed
        },
    }

    new_key = key_of(updated, key_column)
    if is_blank_key(new_key):
        raise MissingKeyError(key_column)
    if new_key != target_key:
        other = find_staged_index(staged, key_column, new_key)
        if other is not None and other != index:
            raise StagedKeyExistsError(key_column, new_key)

    new_staged = list(staged)
    new_staged[index] = updated
    return new_staged, updated


def delete_records(
    staged: list[Record],
    key_column: str,
    target_key: str,
) -> list[Record]:
    """Drop every staged record keyed `target_key`."""
    return [r for r in staged if key_of(r, key_column) != target_key]


def missing_columns(columns: list[str], save_columns: list[str]) -> list[str]:
    present = set(columns)
    return [col for col in save_columns if col not in present]


def merge_rows(
    staged: list[Record],
    rows: list[Record],
    columns: list[str],
    key_column: str,
    save_columns: list[str],
) -> tuple[list[Record], list[Record], int]:
    """
    Merge a previously exported staged set back in.

    Rows with a blank key or a key already staged (including one added
    earlier in the same import) are skipped. Input order is kept.

    Returns:
        (new staged list, records added, rows skipped)

    Raises:
        MissingColumnsError: If `columns` lacks any save column
    """
    missing = missing_columns(columns, save_columns)
    if missing:
        raise MissingColumnsError(missing)

    merged = list(staged)
    added: list[Record] = []
    skipped = 0
    for row in rows:
        key = key_of(row, key_column)
        if is_blank_key(key) or contains_key(merged, key_column, key):
            skipped += 1
            continue
        projected = project_record(row, save_columns)
        merged.append(projected)
        added.append(projected)

    return merged, added, skipped


def reconcile_settings(
    existing: StagingSettings,
    fields: list[str],
) -> StagingSettings:
    """
    Fit previously saved settings onto a freshly uploaded header row.

    Unknown save columns are dropped; an unknown key column falls back to
    the first field; an empty projection falls back to all fields.
    """
    sku_column = existing.sku_column if existing.sku_column in fields else fields[0]
    save_columns = [col for col in existing.save_columns if col in fields] or list(fields)
    if sku_column not in save_columns:
        save_columns = [sku_column, *save_columns]
    return StagingSettings(
        sku_column=sku_column,
        save_columns=save_columns,
        lists=list(existing.lists),
    )


class StagingService:
    """
    Inventory staging pipeline with persistence.

    State is restored from the store on construction, so a fresh instance
    picks up where the previous session left off.
    """

    def __init__(
        self,
        store: Optional[InventoryStore] = None,
        print_queue: Optional[PrintQueueClient] = None,
    ):
        self.store = store if store is not None else InventoryStore()
        self.print_queue = print_queue if print_queue is not None else PrintQueueClient()
        self.catalog: list[Record] = []
        self.headers: list[str] = []
        self.staged: list[Record] = []
        self.staging_settings = StagingSettings()
        self.restore()

    # ===================
    # SESSION
    # ===================

    def restore(self) -> None:
        """Reload catalog, staged set and settings from the store."""
        self.catalog = self.store.load_catalog()
        self.headers = list(self.catalog[0].keys()) if self.catalog else []
        self.staged = self.store.load_staged()

        defaults = StagingSettings.defaults_for(self.headers)
        stored = self.store.load_settings()
        if stored is None:
            self.staging_settings = defaults
        else:
            self.staging_settings = StagingSettings(
                sku_column=stored.sku_column or defaults.sku_column,
                save_columns=stored.save_columns or defaults.save_columns,
                lists=stored.lists,
            )

        logger.info(
            "session_restored",
            catalog=len(self.catalog),
            staged=len(self.staged),
            sku_column=self.staging_settings.sku_column,
        )

    @property
    def catalog_loaded(self) -> bool:
        return len(self.headers) > 0

    @property
    def key_column(self) -> str:
        return self.staging_settings.sku_column

    @property
    def save_columns(self) -> list[str]:
        return list(self.staging_settings.save_columns)

    def _require_configured(self) -> None:
        if not self.staging_settings.configured:
            raise CatalogNotConfiguredError()

    def _commit_staged(self, staged: list[Record]) -> None:
        self.store.save_staged(staged)
        self.staged = staged

    # ===================
    # CATALOG
    # ===================

    def import_catalog(
        self,
        content: Union[str, bytes],
        existing_settings: Optional[StagingSettings] = None,
    ) -> CatalogImportResult:
        """
        Replace the catalog with an uploaded CSV.

        Args:
            content: CSV text or raw bytes
            existing_settings: Settings to keep instead of the defaults
                (first column as key, all columns saved)

        Returns:
            CatalogImportResult with records, fields and active settings

        Raises:
            NoHeadersError: If no columns were found
            CSVParseFailureError: If the CSV cannot be parsed
        """
        parsed = parse_csv(content)
        if not parsed.has_headers:
            logger.warning("catalog_import_rejected", reason="no_headers")
            raise NoHeadersError("CSV")

        if existing_settings is not None and existing_settings.sku_column:
            new_settings = reconcile_settings(existing_settings, parsed.fields)
        else:
            new_settings = StagingSettings.defaults_for(parsed.fields)
            if existing_settings is not None:
                new_settings.lists = list(existing_settings.lists)

        # Catalog and settings are stored under separate keys. A failed
        # settings write puts the previous catalog back so the two stored
        # values keep describing the same upload.
        self.store.save_catalog(parsed.rows)
        try:
            self.store.save_settings(new_settings)
        except StorageError:
            logger.error("catalog_import_rolled_back", records=len(parsed.rows))
            self.store.save_catalog(self.catalog)
            raise
        self.catalog = parsed.rows
        self.headers = list(parsed.fields)
        self.staging_settings = new_settings

        logger.info(
            "catalog_imported",
            records=len(parsed.rows),
            fields=len(parsed.fields),
            skipped_rows=len(parsed.errors),
            sku_column=new_settings.sku_column,
        )

        return CatalogImportResult(
            catalog=parsed.rows,
            fields=parsed.fields,
            settings=new_settings,
            errors=parsed.to_dict()["errors"],
        )

    # ===================
    # SEARCH
    # ===================

    def search(self, query: str) -> SearchResult:
        """
        Search the staged set, then the catalog, by key column.

        Raises:
            EmptySearchQueryError: If the query is blank
            CatalogNotConfiguredError: If no key column is set
        """
        if not query or not query.strip():
            raise EmptySearchQueryError()
        if not self.key_column:
            raise CatalogNotConfiguredError()

        key_column = self.key_column
        status, record = search_records(self.catalog, self.staged, key_column, query)

        logger.info("search_completed", query=query, status=status.value)

        if status == SearchStatus.ALREADY_STAGED:
            return SearchResult(
                status=status,
                query=query,
                key_column=key_column,
                message=f'Item with {key_column} "{query}" already exists in new inventory',
            )

        if status == SearchStatus.FOUND:
            return SearchResult(
                status=status,
                query=query,
                key_column=key_column,
                record=record,
                margin=compute_margin(record),
                message=f"Found product: {record.get('Name') or 'Unknown'}",
            )

        return SearchResult(
            status=status,
            query=query,
            key_column=key_column,
            prefill={key_column: query},
            message="No product found. Create a new item below.",
        )

    def lookup(self, query: str) -> SearchResult:
        """
        Search and stage the catalog hit in one step.

        A FOUND record whose exact key is already staged (the query was
        only a fragment of it) is reported with staged=False.
        """
        result = self.search(query)
        if result.status != SearchStatus.FOUND:
            return result

        added = self.stage(result.record)
        result.staged = added
        if not added:
            result.message = "Item already exists in new inventory"
        return result

    def margin_for(self, key: str) -> Optional[MarginView]:
        """
        Margin view for a staged or catalog record with this exact key.

        Raises:
            NotFoundError: If neither collection has the key
        """
        self._require_configured()
        index = find_staged_index(self.staged, self.key_column, key)
        if index is not None:
            return compute_margin(self.staged[index])
        for record in self.catalog:
            if key_of(record, self.key_column) == key:
                return compute_margin(record)
        raise NotFoundError("Record", key, code="RECORD_NOT_FOUND")

    # ===================
    # STAGED SET
    # ===================

    def staged_records(self, newest_first: bool = False) -> list[Record]:
        records = list(self.staged)
        if newest_first:
            records.reverse()
        return records

    def stage(self, record: Record) -> bool:
        """
        Copy a record into the staged set.

        Returns:
            True if added, False if its key was already staged
        """
        self._require_configured()
        new_staged, added = stage_record(
            self.staged, record, self.key_column, self.save_columns
        )
        key = key_of(record, self.key_column)
        if not added:
            logger.warning("record_already_staged", key=key)
            return False

        self._commit_staged(new_staged)
        logger.info("record_staged", key=key, total=len(new_staged))
        self.print_queue.notify_staged(key)
        return True

    def create_record(self, field_values: dict) -> tuple[Record, bool]:
        """
        Create a record from form values and stage it.

        Returns:
            (the built record, whether it was added)

        Raises:
            MissingKeyError: If the key column value is empty or only whitespace
        """
        self._require_configured()
        record = build_record(field_values, self.key_column, self.save_columns)
        new_staged, added = stage_record(
            self.staged, record, self.key_column, self.save_columns
        )
        key = key_of(record, self.key_column)
        if not added:
            logger.warning("created_record_already_staged", key=key)
            return record, False

        self._commit_staged(new_staged)
        logger.info("record_created", key=key, total=len(new_staged))
        self.print_queue.notify_staged(key)
        return record, True

    def edit(self, target_key: str, patch: dict) -> Record:
        """
        Overwrite fields of a staged record.

        Raises:
            StagedRecordNotFoundError: If no staged record has that key
            MissingKeyError: If the patch blanks the key
            StagedKeyExistsError: If the patch renames onto another key
        """
        self._require_configured()
        new_staged, updated = edit_record(
            self.staged, self.key_column, target_key, patch, self.save_columns
        )
        self._commit_staged(new_staged)
        logger.info("record_updated", key=target_key, fields=sorted(patch.keys()))
        return updated

    def delete(self, target_key: str) -> int:
        """
        Remove every staged record with this key. Idempotent.

        Returns:
            Number of records removed
        """
        self._require_configured()
        new_staged = delete_records(self.staged, self.key_column, target_key)
        removed = len(self.staged) - len(new_staged)
        self._commit_staged(new_staged)
        logger.info("record_deleted", key=target_key, removed=removed)
        return removed

    def merge_import(self, content: Union[str, bytes]) -> MergeResult:
        """
        Merge a previously exported staged set CSV.

        Raises:
            CatalogNotConfiguredError: If no catalog is loaded/configured
            NoHeadersError: If the file has no columns
            MissingColumnsError: If any save column is missing
        """
        if not self.catalog_loaded:
            raise CatalogNotConfiguredError()
        self._require_configured()

        parsed = parse_csv(content)
        if not parsed.has_headers:
            raise NoHeadersError("New inventory CSV")

        try:
            new_staged, added, skipped = merge_rows(
                self.staged,
                parsed.rows,
                parsed.fields,
                self.key_column,
                self.save_columns,
            )
        except MissingColumnsError as e:
            logger.warning("merge_import_rejected", missing=e.details["missing"])
            raise

        self._commit_staged(new_staged)
        for record in added:
            self.print_queue.notify_staged(key_of(record, self.key_column))

        logger.info(
            "merge_import_completed",
            added=len(added),
            skipped=skipped,
            total=len(new_staged),
        )
        return MergeResult(added=len(added), skipped=skipped, total=len(new_staged))

    def export_csv(self) -> str:
        """Staged set as CSV, columns in save-column order."""
        text = unparse_csv(self.staged, self.save_columns)
        logger.info("staged_exported", records=len(self.staged))
        return text

    # ===================
    # SETTINGS
    # ===================

    def _validate_columns(self, columns: list[str]) -> None:
        if not self.headers:
            return
        for col in columns:
            if col not in self.headers:
                raise UnknownColumnError(col, self.headers)

    def update_settings(self, update: SettingsUpdate) -> StagingSettings:
        """
        Change key column, save columns or lists.

        Raises:
            UnknownColumnError: If a column is not a catalog header
            KeyColumnNotSavedError: If the key column would not be saved
        """
        current = self.staging_settings
        candidate = StagingSettings(
            sku_column=update.sku_column if update.sku_column is not None else current.sku_column,
            save_columns=update.save_columns if update.save_columns is not None else current.save_columns,
            lists=update.lists if update.lists is not None else current.lists,
        )

        if candidate.sku_column:
            self._validate_columns([candidate.sku_column])
        self._validate_columns(candidate.save_columns)
        if candidate.sku_column and candidate.sku_column not in candidate.save_columns:
            raise KeyColumnNotSavedError(candidate.sku_column)

        self.store.save_settings(candidate)
        self.staging_settings = candidate
        logger.info(
            "settings_updated",
            sku_column=candidate.sku_column,
            save_columns=len(candidate.save_columns),
            lists=len(candidate.lists),
        )
        return candidate

    def toggle_save_column(self, column: str) -> StagingSettings:
        """Add the column to the save columns, or remove it if present."""
        columns = self.save_columns
        if column in columns:
            columns.remove(column)
        else:
            columns.append(column)
        return self.update_settings(SettingsUpdate(save_columns=columns))


# Singleton instance
_staging_service: Optional[StagingService] = None


def get_staging_service() -> StagingService:
    """Get or create StagingService instance."""
    global _staging_service
    if _staging_service is None:
        _staging_service = StagingService()
    return _staging_service
