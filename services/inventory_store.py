"""
Typed persistence for the catalog, the staged set and session settings.

Each collection lives under its own key and is read and written whole.
A value that cannot be decoded is logged and treated as absent, without
touching the other keys.
"""

from typing import Any, Optional
import structlog

from config import get_store, KeyValueStore, StoreError
from models.staging import Record, StagingSettings
from parsers.csv_parser import normalize_record
from exceptions import StorageError

logger = structlog.get_logger(__name__)

CATALOG_KEY = "inventoryData"
STAGED_KEY = "newInventory"
SETTINGS_KEY = "settings"


class InventoryStore:
    """
    Repository over a KeyValueStore.

    Loads never raise for bad data; saves raise StorageError.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else get_store()

    # ===================
    # INTERNAL
    # ===================

    def _read(self, key: str) -> Any:
        try:
            return self.store.get_json(key)
        except (ValueError, StoreError) as e:
            logger.warning("stored_value_unreadable", key=key, error=str(e))
            return None

    def _write(self, key: str, value: Any) -> None:
        try:
            self.store.set_json(key, value)
        except StoreError as e:
            raise StorageError("write", str(e), details={"key": key})

    def _read_records(self, key: str) -> list[Record]:
        data = self._read(key)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("stored_value_wrong_shape", key=key, type=type(data).__name__)
            return []
        return [normalize_record(row) for row in data if isinstance(row, dict)]

    # ===================
    # CATALOG
    # ===================

    def load_catalog(self) -> list[Record]:
        return self._read_records(CATALOG_KEY)

    def save_catalog(self, catalog: list[Record]) -> None:
        self._write(CATALOG_KEY, catalog)
        logger.debug("catalog_saved", count=len(catalog))

    # ===================
    # STAGED SET
    # ===================

    def load_staged(self) -> list[Record]:
        return self._read_records(STAGED_KEY)

    def save_staged(self, staged: list[Record]) -> None:
        self._write(STAGED_KEY, staged)
        logger.debug("staged_saved", count=len(staged))

    # ===================
    # SETTINGS
    # ===================

    def load_settings(self) -> Optional[StagingSettings]:
        """Stored settings, or None when never saved or unreadable."""
        data = self._read(SETTINGS_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return StagingSettings.model_validate(data)
        except ValueError as e:
            logger.warning("stored_settings_invalid", error=str(e))
            return None

    def save_settings(self, staging_settings: StagingSettings) -> None:
        self._write(SETTINGS_KEY, staging_settings.to_storage())
